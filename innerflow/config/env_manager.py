"""
Environment file loading for the journal service.

Files are looked up in the working directory. The first file that defines a
variable wins and variables already present in the process environment are
never overwritten, so a deployment can always override a checked-in file.
"""
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_ENV = 'development'
SHARED_ENV_FILE = '.env.shared'


def env_file_candidates(env: str) -> List[str]:
    """Environment files for ``env``, highest priority first."""
    return [f".env.{env}.local", f".env.{env}", ".env.local", ".env", SHARED_ENV_FILE]


def _redact(value: str) -> str:
    if len(value) <= 15:
        return "set"
    return f"{value[:10]}...{value[-5:]}"


def describe_environment() -> None:
    """Log where entries are stored and whether remote sync can be enabled."""
    logger.info(f"FLASK_ENV: {os.environ.get('FLASK_ENV', DEFAULT_ENV)}")
    logger.info(f"Local store: {os.environ.get('LOCAL_STORE_URL', 'sqlite:///innerflow.db')}")

    supabase_url = os.environ.get('SUPABASE_URL')
    if supabase_url and os.environ.get('SUPABASE_KEY'):
        logger.info(f"Remote sync target: {_redact(supabase_url)}")
    elif supabase_url:
        logger.warning("SUPABASE_URL is set without SUPABASE_KEY, remote sync stays off")
    else:
        logger.info("No Supabase project configured, entries stay on this device")


def load_environment(env: Optional[str] = None) -> List[str]:
    """Load the environment files for ``env`` (defaults to FLASK_ENV).

    Returns:
        The files that were found and loaded, in load order.
    """
    env = env or os.environ.get('FLASK_ENV', DEFAULT_ENV)

    loaded = []
    for env_file in env_file_candidates(env):
        if os.path.isfile(env_file):
            load_dotenv(env_file, override=False)
            loaded.append(env_file)

    if loaded:
        logger.info(f"Loaded {env} environment from: {', '.join(loaded)}")
    else:
        logger.debug(f"No environment files for {env}, using the process environment")

    describe_environment()
    return loaded
