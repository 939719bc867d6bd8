"""
Remote journal store adapter.

Maps journal entries onto the ``journal_entries`` / ``journal_items`` tables of
the Supabase project and back.

Writes are not transactional: ``upsert_entry`` upserts the parent row, deletes
its items and inserts the new ones as three separate requests. A reader that
lands between the delete and the insert sees the entry with no items, and a
failed insert leaves it that way until the next successful upsert. The local
store stays authoritative for the entry in both cases.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from ..models.journal import JournalEntry
from ..storage.local_store import LocalStore
from ..utils.supabase_client import SupabaseManager
from .rows import decompose, group_items, recompose

logger = logging.getLogger(__name__)

ENTRIES_TABLE = 'journal_entries'
ITEMS_TABLE = 'journal_items'
UPSERT_CONFLICT_TARGET = 'user_id,date'


@dataclass
class SyncResult:
    success: bool
    error: Optional[str] = None


class RemoteStore:
    """Reads and writes journal entries in the remote relational store."""

    def __init__(self, supabase: SupabaseManager, local_store: LocalStore):
        """Initialize the adapter.

        Args:
            supabase: Manager of the Supabase client.
            local_store: Local entries, returned when the remote cannot be read.
        """
        self.supabase = supabase
        self.local_store = local_store

    def is_available(self) -> bool:
        return self.supabase.is_available()

    async def upsert_entry(self, entry: JournalEntry, user_id: str) -> SyncResult:
        """Write an entry to the remote store.

        The parent row is keyed by (user_id, date): the last writer for a
        calendar date wins, whatever the local entry id. Its items are then
        replaced wholesale.

        Args:
            entry: Entry to write.
            user_id: Owner of the entry.

        Returns:
            SyncResult telling whether every step succeeded.
        """
        if not self.is_available():
            return SyncResult(False, "Remote store is not configured")

        entry_row, items = decompose(entry, user_id)
        step = 'journal_entries upsert'
        try:
            entries = await self.supabase.table(ENTRIES_TABLE)
            response = await entries.upsert(entry_row, on_conflict=UPSERT_CONFLICT_TARGET).execute()
            if not response.data:
                logger.error(f"Upsert of entry for {entry_row['date']} returned no row")
                return SyncResult(False, "Upsert returned no row")
            entry_id = response.data[0]['id']

            step = 'journal_items delete'
            item_table = await self.supabase.table(ITEMS_TABLE)
            await item_table.delete().eq('journal_entry_id', entry_id).execute()

            if items:
                step = 'journal_items insert'
                rows = [dict(item, journal_entry_id=entry_id) for item in items]
                item_table = await self.supabase.table(ITEMS_TABLE)
                await item_table.insert(rows).execute()

            logger.debug(f"Synced entry {entry.id} ({entry_row['date']}) with {len(items)} items")
            return SyncResult(True)
        except Exception as e:
            logger.error(f"Failed to sync entry {entry.id} at {step}: {e}")
            return SyncResult(False, str(e) or type(e).__name__)

    async def fetch_entry(self, day: date, user_id: str) -> Optional[JournalEntry]:
        """Read the entry of one calendar date.

        Returns:
            The entry, or None if there is no row for that date.

        Raises:
            Exception: Whatever the client raises when the remote cannot be read.
        """
        entries = await self.supabase.table(ENTRIES_TABLE)
        response = await (
            entries.select('*')
            .eq('user_id', user_id)
            .eq('date', day.isoformat())
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        entry_row = response.data[0]

        item_table = await self.supabase.table(ITEMS_TABLE)
        items = await (
            item_table.select('*')
            .eq('journal_entry_id', entry_row['id'])
            .order('created_at')
            .execute()
        )
        return recompose(entry_row, items.data or [])

    async def fetch_all_remote(self, user_id: str) -> List[JournalEntry]:
        """Read every entry of a user, newest date first.

        Parent rows and items are read with one query each.

        Raises:
            Exception: Whatever the client raises when the remote cannot be read.
        """
        entries = await self.supabase.table(ENTRIES_TABLE)
        response = await (
            entries.select('*')
            .eq('user_id', user_id)
            .order('date', desc=True)
            .execute()
        )
        entry_rows = response.data or []
        if not entry_rows:
            return []

        item_table = await self.supabase.table(ITEMS_TABLE)
        items = await (
            item_table.select('*')
            .in_('journal_entry_id', [row['id'] for row in entry_rows])
            .order('created_at')
            .execute()
        )
        items_by_entry = group_items(items.data or [])

        return [recompose(row, items_by_entry.get(str(row['id']), [])) for row in entry_rows]

    async def fetch_all_entries(self, user_id: str) -> List[JournalEntry]:
        """Read every entry of a user, falling back to the local store.

        Returns:
            Remote entries, or the local entries if the remote is not
            configured or cannot be read.
        """
        if not self.is_available():
            return self.local_store.get_all()

        try:
            return await self.fetch_all_remote(user_id)
        except Exception as e:
            logger.warning(f"Failed to fetch entries from remote store, using local entries: {e}")
            return self.local_store.get_all()
