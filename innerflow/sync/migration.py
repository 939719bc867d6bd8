"""
One-shot upload of every locally stored entry to the remote store.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..models.journal import JournalEntry
from ..storage.local_store import LocalStore
from .remote_store import RemoteStore, SyncResult

logger = logging.getLogger(__name__)

REMOTE_NOT_CONFIGURED = "Remote store is not configured"

Upsert = Callable[[JournalEntry, str], Awaitable[SyncResult]]


@dataclass
class MigrationResult:
    succeeded: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"succeeded": self.succeeded, "failed": self.failed, "errors": list(self.errors)}


async def migrate_local_to_remote(local_store: LocalStore, remote: Optional[RemoteStore],
                                  user_id: str, upsert: Optional[Upsert] = None) -> MigrationResult:
    """Upload all local entries, one at a time.

    Entries are pushed sequentially so the remote store sees one request at a
    time and the error list follows the local order. A failing entry is
    recorded and the run continues.

    Args:
        local_store: Source of the entries.
        remote: Destination, or None when no remote store is configured.
        user_id: Owner of the entries.
        upsert: Coroutine used to push one entry. Defaults to the remote
                store's own upsert; the orchestrator passes one that waits
                for other pushes of the same date.

    Returns:
        MigrationResult with per-entry counts and error messages. When the
        remote store is unavailable every entry is counted as failed under a
        single message.
    """
    entries = local_store.get_all()
    if not entries:
        return MigrationResult()

    if remote is None or not remote.is_available():
        logger.warning(f"Cannot migrate {len(entries)} entries: {REMOTE_NOT_CONFIGURED}")
        return MigrationResult(failed=len(entries), errors=[REMOTE_NOT_CONFIGURED])

    upsert = upsert or remote.upsert_entry
    result = MigrationResult()
    for entry in entries:
        try:
            outcome = await upsert(entry, user_id)
            error = None if outcome.success else outcome.error
        except Exception as e:
            error = str(e) or type(e).__name__

        if error is None:
            result.succeeded += 1
        else:
            result.failed += 1
            result.errors.append(f"Entry {entry.id} failed to sync: {error}")

    logger.info(f"Migrated local entries to remote store: {result.succeeded} succeeded, {result.failed} failed")
    return result
