"""
Offline-first journal synchronization between the local store and Supabase.
"""
from .migration import MigrationResult, migrate_local_to_remote
from .orchestrator import SyncOrchestrator, merge_remote
from .remote_store import RemoteStore, SyncResult
from .runner import LoopRunner
from .tasks import BackgroundTasks

__all__ = ['MigrationResult', 'migrate_local_to_remote', 'SyncOrchestrator', 'merge_remote',
           'RemoteStore', 'SyncResult', 'LoopRunner', 'BackgroundTasks']
