"""
Wiring of the journal components.

The application factory builds one ``JournalServices`` per app and stores it
in ``app.extensions``; views and CLI commands reach it through
``get_services()`` instead of module globals.
"""
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from flask import current_app

from .storage.kv_store import KeyValueStore
from .storage.local_store import LocalStore
from .sync.orchestrator import SyncOrchestrator
from .sync.remote_store import RemoteStore
from .sync.runner import LoopRunner
from .utils.identity import IdentityProvider
from .utils.insight_service import InsightService
from .utils.supabase_client import SupabaseManager

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'innerflow'


@dataclass
class JournalServices:
    """Everything the HTTP and CLI surfaces need, created once per app."""
    orchestrator: SyncOrchestrator
    identity: IdentityProvider
    insight_service: InsightService
    runner: LoopRunner

    def call(self, func, *args):
        """Run an orchestrator call on the sync loop thread."""
        return self.runner.call(func, *args)

    def run(self, coro):
        return self.runner.run(coro)

    def shutdown(self) -> None:
        self.runner.stop(drain=self.orchestrator.drain)


def build_services(config: Mapping[str, Any], supabase_client=None) -> JournalServices:
    """Create the journal components from application configuration.

    Args:
        config: Flask config (or any mapping with the same keys).
        supabase_client: Already created async Supabase client, used instead
            of creating one from SUPABASE_URL / SUPABASE_KEY.
    """
    kv_store = KeyValueStore.from_url(config['LOCAL_STORE_URL'])
    local_store = LocalStore(kv_store, config['ENTRIES_STORAGE_KEY'])
    identity = IdentityProvider(
        kv_store,
        storage_key=config['USER_ID_STORAGE_KEY'],
        lock_key=config['IDENTITY_LOCK_KEY'],
        poll_interval=config['IDENTITY_LOCK_POLL_INTERVAL'],
        lock_timeout=config['IDENTITY_LOCK_TIMEOUT'],
    )

    remote: Optional[RemoteStore] = None
    supabase = SupabaseManager(config.get('SUPABASE_URL'), config.get('SUPABASE_KEY'), client=supabase_client)
    if supabase.is_available():
        remote = RemoteStore(supabase, local_store)

    orchestrator = SyncOrchestrator(local_store, remote=remote, identity=identity)
    insight_service = InsightService(
        api_key=config.get('HUGGINGFACE_API_KEY'),
        model_name=config['GENERATION_MODEL_NAME'],
        locale=config.get('INSIGHT_LOCALE', 'en'),
    )

    return JournalServices(
        orchestrator=orchestrator,
        identity=identity,
        insight_service=insight_service,
        runner=LoopRunner().start(),
    )


def get_services() -> JournalServices:
    return current_app.extensions[EXTENSION_KEY]
