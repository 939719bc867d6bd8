"""
Sync orchestrator: the journal API used by the rest of the application.

Every read and write goes to the local store first and returns without
waiting on the network. When a remote store is configured, writes are pushed
and reads are reconciled in the background:

- ``save`` writes locally, then upserts remotely. A failed upsert is logged;
  the local write stands.
- ``get_all`` / ``get_today`` / ``get_by_relative_day`` return local data now
  and refresh the local cache from the remote store for the next read. Two
  reads in a row may therefore return different data. A single day is only
  fetched when there is no local entry for it.

Background work is keyed: one fetch per key is in flight at a time, and one
upsert per calendar date, with the newest queued entry pushed once the
running upsert finishes. Migration pushes take the same per-date turn, so two
writes of one date never reach the remote store at the same time. Dates being
pushed, or whose last push failed, keep their local entries when remote data
is folded in.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional, Set

from ..models.journal import JournalEntry, is_valid
from ..storage.local_store import LocalStore
from ..utils.identity import IdentityProvider
from .migration import MigrationResult, migrate_local_to_remote
from .remote_store import RemoteStore, SyncResult
from .tasks import BackgroundTasks

logger = logging.getLogger(__name__)

FETCH_ALL_KEY = 'fetch_all'


def _fetch_key(day: date) -> str:
    return f"fetch:{day.isoformat()}"


def _upsert_key(day: date) -> str:
    return f"upsert:{day.isoformat()}"


def merge_remote(local_entries: List[JournalEntry], remote_entries: List[JournalEntry],
                 keep_local_dates: Iterable[date] = ()) -> List[JournalEntry]:
    """Fold remote entries into the local collection.

    Remote entries replace every local entry of the same calendar date. Local
    entries for dates the remote store does not have are kept; nothing is
    deleted remotely, so those are writes that have not been pushed yet. AI
    insights are not stored remotely and are carried over from the local
    entry of the same date. Dates in ``keep_local_dates`` keep their local
    entries untouched.

    Returns:
        The merged collection, newest date first.
    """
    keep = set(keep_local_dates)
    remote_by_date = {entry.date: entry for entry in remote_entries if entry.date not in keep}

    local_by_date: Dict[date, JournalEntry] = {}
    for entry in local_entries:
        local_by_date.setdefault(entry.date, entry)

    merged = []
    for day, remote_entry in remote_by_date.items():
        local_entry = local_by_date.get(day)
        if local_entry is not None and remote_entry.ai_insight is None and local_entry.ai_insight:
            remote_entry = remote_entry.with_insight(local_entry.ai_insight, local_entry.ai_mood)
        merged.append(remote_entry)

    merged.extend(entry for entry in local_entries if entry.date not in remote_by_date)
    return sorted(merged, key=lambda entry: entry.date, reverse=True)


class SyncOrchestrator:
    """Local-first journal repository with best-effort remote sync."""

    def __init__(self, local_store: LocalStore,
                 remote: Optional[RemoteStore] = None,
                 identity: Optional[IdentityProvider] = None,
                 tasks: Optional[BackgroundTasks] = None,
                 today: Callable[[], date] = date.today):
        """Initialize the orchestrator.

        Args:
            local_store: Authoritative on-device store.
            remote: Remote store adapter, or None for local-only operation.
            identity: Source of the user id used for remote calls.
            tasks: Registry of background work.
            today: Clock returning the current calendar date.
        """
        self.local_store = local_store
        self.remote = remote
        self.identity = identity
        self.tasks = tasks or BackgroundTasks()
        self.today = today
        self._pending_upserts: Dict[str, JournalEntry] = {}
        # Pushes running or waiting per date, and the lock they take turns on
        self._pushing: Dict[date, int] = {}
        self._push_locks: Dict[date, asyncio.Lock] = {}
        # Dates whose local entry is newer than what the remote store holds
        self._unpushed: Set[date] = set()

        if remote is not None and identity is None:
            raise ValueError("An identity provider is required for remote sync")

    def remote_enabled(self) -> bool:
        return self.remote is not None and self.remote.is_available()

    # Writes

    def save(self, entry: JournalEntry) -> None:
        """Save an entry locally now and push it to the remote store later.

        Never raises because of the remote store.
        """
        self.local_store.save(entry)

        if not self.remote_enabled():
            return

        key = _upsert_key(entry.date)
        self._pending_upserts[key] = entry
        if self.tasks.spawn(key, lambda: self._push_upserts(key)) is None:
            self._pending_upserts.pop(key, None)
            self._unpushed.add(entry.date)

    @asynccontextmanager
    async def _date_turn(self, day: date) -> AsyncIterator[None]:
        self._pushing[day] = self._pushing.get(day, 0) + 1
        lock = self._push_locks.get(day)
        if lock is None:
            lock = self._push_locks[day] = asyncio.Lock()
        try:
            async with lock:
                yield
        finally:
            self._pushing[day] -= 1
            if not self._pushing[day]:
                del self._pushing[day]
                del self._push_locks[day]

    async def _push(self, entry: JournalEntry, user_id: str) -> SyncResult:
        result = await self.remote.upsert_entry(entry, user_id)
        if result.success:
            self._unpushed.discard(entry.date)
        else:
            self._unpushed.add(entry.date)
        return result

    async def _push_upserts(self, key: str) -> None:
        user_id = await self.identity.get_or_create_user_id()
        while key in self._pending_upserts:
            async with self._date_turn(self._pending_upserts[key].date):
                # Take the newest entry once it is this date's turn
                entry = self._pending_upserts.pop(key)
                result = await self._push(entry, user_id)
            if not result.success:
                logger.warning(f"Remote sync of entry {entry.id} failed, kept locally: {result.error}")

    def save_with_insight(self, entry: JournalEntry, insight_service) -> None:
        """Save an entry, then attach a generated insight when it is ready.

        The entry is persisted before the insight is requested; a slow or
        failing insight service only delays or skips the attachment.
        """
        self.save(entry)
        self.tasks.spawn(f"insight:{entry.id}", lambda: self._attach_insight(entry, insight_service))

    async def _attach_insight(self, entry: JournalEntry, insight_service) -> None:
        insight = await asyncio.to_thread(insight_service.generate, entry)

        current = self._find_by_id(entry.id) or self.local_store.find_by_date(entry.date)
        if current is None or current.ai_insight:
            return
        # Insights are not part of the remote projection, so this stays local
        self.local_store.save(current.with_insight(insight.text, insight.mood))

    def _find_by_id(self, entry_id: str) -> Optional[JournalEntry]:
        for entry in self.local_store.get_all():
            if entry.id == entry_id:
                return entry
        return None

    # Reads

    def get_all(self) -> List[JournalEntry]:
        """Get all entries from the local store, newest date first."""
        entries = self.local_store.get_all()
        if self.remote_enabled():
            self.tasks.spawn(FETCH_ALL_KEY, self._reconcile_all)
        return entries

    def get_by_relative_day(self, offset: int) -> Optional[JournalEntry]:
        """Get the local entry ``offset`` days from today (0 today, -1 yesterday)."""
        day = self.today() + timedelta(days=offset)
        entry = self.local_store.find_by_date(day)
        if entry is None and self.remote_enabled():
            self.tasks.spawn(_fetch_key(day), lambda: self._reconcile_day(day))
        return entry

    def get_today(self) -> Optional[JournalEntry]:
        return self.get_by_relative_day(0)

    def get_yesterday(self) -> Optional[JournalEntry]:
        return self.get_by_relative_day(-1)

    def _dates_being_pushed(self) -> Set[date]:
        # Local entries of these dates are newer than the remote ones
        pending = {entry.date for entry in self._pending_upserts.values()}
        return pending | set(self._pushing) | self._unpushed

    async def _reconcile_all(self) -> None:
        user_id = await self.identity.get_or_create_user_id()
        try:
            remote_entries = await self.remote.fetch_all_remote(user_id)
        except Exception as e:
            logger.warning(f"Background sync of all entries failed: {e}")
            return

        if not remote_entries:
            logger.debug("Remote store has no entries, keeping local cache")
            return

        merged = merge_remote(self.local_store.get_all(), remote_entries, self._dates_being_pushed())
        self.local_store.replace_all(merged)
        logger.debug(f"Reconciled local cache with {len(remote_entries)} remote entries")

    async def _reconcile_day(self, day: date) -> None:
        user_id = await self.identity.get_or_create_user_id()
        try:
            remote_entry = await self.remote.fetch_entry(day, user_id)
        except Exception as e:
            logger.warning(f"Background sync of entry for {day.isoformat()} failed: {e}")
            return

        if remote_entry is None:
            return

        merged = merge_remote(self.local_store.get_all(), [remote_entry], self._dates_being_pushed())
        self.local_store.replace_all(merged)

    # Derived views, recomputed on every call

    @staticmethod
    def is_valid(entry: Optional[JournalEntry]) -> bool:
        return is_valid(entry)

    def get_valid_entries(self) -> List[JournalEntry]:
        return [entry for entry in self.get_all() if is_valid(entry)]

    def count_recorded_days(self) -> int:
        """Number of distinct calendar dates with at least one valid entry."""
        return len({entry.date for entry in self.get_valid_entries()})

    # Maintenance

    async def migrate_local_to_remote(self) -> MigrationResult:
        """Push every local entry to the remote store, one at a time."""
        user_id = await self.identity.get_or_create_user_id() if self.identity else ''
        return await migrate_local_to_remote(self.local_store, self.remote, user_id, self._push_for_migration)

    async def _push_for_migration(self, entry: JournalEntry, user_id: str) -> SyncResult:
        async with self._date_turn(entry.date):
            current = self._find_by_id(entry.id)
            if current is None:
                # Replaced by remote data since the run started, nothing to push
                return SyncResult(success=True)
            return await self._push(current, user_id)

    async def drain(self) -> None:
        """Wait for all background sync work to finish."""
        await self.tasks.drain()

    def reset(self) -> None:
        """Clear the local journal and the user id. Remote data is left alone."""
        self.local_store.clear()
        self._unpushed.clear()
        if self.identity is not None:
            self.identity.clear_user_id()
