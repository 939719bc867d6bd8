import os
from datetime import date

import pytest

# Keep developer .env files from changing the test configuration
os.environ.setdefault('FLASK_ENV', 'testing')

from innerflow import create_app  # noqa: E402
from innerflow.config.config import TestingConfig  # noqa: E402
from innerflow.models.journal import JournalEntry  # noqa: E402
from innerflow.services import get_services  # noqa: E402
from innerflow.storage.kv_store import KeyValueStore  # noqa: E402
from innerflow.storage.local_store import LocalStore  # noqa: E402
from innerflow.sync.orchestrator import SyncOrchestrator  # noqa: E402
from innerflow.sync.remote_store import RemoteStore  # noqa: E402
from innerflow.utils.identity import IdentityProvider  # noqa: E402
from innerflow.utils.supabase_client import SupabaseManager  # noqa: E402

from fakes import FakeSupabase  # noqa: E402

TODAY = date(2024, 1, 2)


@pytest.fixture
def kv_store():
    return KeyValueStore.from_url('sqlite://')


@pytest.fixture
def local_store(kv_store):
    return LocalStore(kv_store)


@pytest.fixture
def identity(kv_store):
    return IdentityProvider(kv_store, poll_interval=0.01, lock_timeout=0.05)


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def remote_store(fake_supabase, local_store):
    return RemoteStore(SupabaseManager(client=fake_supabase), local_store)


@pytest.fixture
def orchestrator(local_store, remote_store, identity):
    """Orchestrator syncing to the fake Supabase client, with a fixed clock."""
    return SyncOrchestrator(local_store, remote=remote_store, identity=identity, today=lambda: TODAY)


@pytest.fixture
def local_orchestrator(local_store, identity):
    """Orchestrator without a remote store."""
    return SyncOrchestrator(local_store, identity=identity, today=lambda: TODAY)


@pytest.fixture
def make_entry():
    def factory(day='2024-01-01', **values) -> JournalEntry:
        return JournalEntry.new(day=date.fromisoformat(day), **values)
    return factory


def _testing_config():
    return {key: getattr(TestingConfig, key) for key in dir(TestingConfig) if key.isupper()}


@pytest.fixture
def app():
    """Local-only application."""
    app = create_app(_testing_config())
    yield app
    with app.app_context():
        get_services().shutdown()


@pytest.fixture
def synced_app(fake_supabase):
    """Application syncing to the fake Supabase client."""
    app = create_app(_testing_config(), supabase_client=fake_supabase)
    yield app
    with app.app_context():
        get_services().shutdown()


@pytest.fixture
def client(app):
    return app.test_client()
