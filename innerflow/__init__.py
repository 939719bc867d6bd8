"""
Application factory module.
"""
import atexit
import logging
from typing import Optional, Dict, Any

from flask import Flask, jsonify
from flask_cors import CORS

# Environment files must be loaded before the config classes read os.environ
from .config.env_manager import load_environment
load_environment()

from .config.config import get_config  # noqa: E402
from .utils.logger import configure_logging  # noqa: E402
from .services import EXTENSION_KEY, build_services  # noqa: E402

logger = logging.getLogger(__name__)


def _start_background_migration(app: Flask, services) -> None:
    """Push local entries written while offline once the remote store is reachable."""
    orchestrator = services.orchestrator
    if not app.config.get('SYNC_ON_STARTUP') or not orchestrator.remote_enabled():
        return

    def schedule():
        orchestrator.tasks.spawn('migrate', orchestrator.migrate_local_to_remote)

    try:
        services.call(schedule)
        app.logger.info("Scheduled upload of local entries to the remote store")
    except Exception as e:
        app.logger.error(f"Could not schedule startup sync: {e}")


def create_app(test_config: Optional[Dict[str, Any]] = None, supabase_client=None) -> Flask:
    """Application factory for creating a Flask app instance.

    Args:
        test_config: Optional configuration overrides for testing.
        supabase_client: Optional pre-built async Supabase client.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__, instance_relative_config=True)

    app.config.from_object(get_config())
    if test_config is not None:
        app.config.from_mapping(test_config)

    configure_logging(app)

    services = build_services(app.config, supabase_client=supabase_client)
    app.extensions[EXTENSION_KEY] = services
    if not app.config.get('TESTING'):
        atexit.register(services.shutdown)

    if services.orchestrator.remote_enabled():
        app.logger.info("Remote journal sync enabled")
    else:
        app.logger.info("Remote journal sync disabled, running local-only")

    # A failed startup sync only disables that feature
    _start_background_migration(app, services)

    cors_origins = app.config.get('CORS_ORIGINS') or []
    if isinstance(cors_origins, str):
        cors_origins = [origin.strip() for origin in cors_origins.split(',') if origin.strip()]
    app.logger.info(f"Configuring CORS with origins: {cors_origins}")
    CORS(app, resources={r"/api/*": {
        "origins": cors_origins,
        "methods": ["GET", "POST", "OPTIONS"],
        "allow_headers": ["Content-Type"],
    }})

    @app.route('/health')
    def health_check():
        """Simple health check endpoint."""
        return {
            "status": "ok",
            "remote_sync": services.orchestrator.remote_enabled(),
            "background_tasks": services.call(len, services.orchestrator.tasks),
        }, 200

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not found"}), 404

    from .api.journals import journals_bp
    from .cli import journal_cli

    app.register_blueprint(journals_bp, url_prefix='/api')
    app.cli.add_command(journal_cli)

    @app.shell_context_processor
    def ctx():
        return {'app': app, 'journal': services.orchestrator}

    return app
