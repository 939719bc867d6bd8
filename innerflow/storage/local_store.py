"""
Local journal store.
Keeps the whole entry collection as one JSON array under a single storage key.
Every write serializes the full collection; there is no incremental path.
"""
import json
import logging
from datetime import date
from typing import Iterable, List, Optional

from marshmallow import ValidationError

from ..models.journal import JournalEntry, JournalEntrySchema
from .kv_store import KeyValueStore

logger = logging.getLogger(__name__)

ENTRIES_STORAGE_KEY = 'innerflow_entries'


class LocalStore:
    """Synchronous on-device store of journal entries."""

    def __init__(self, kv_store: KeyValueStore, storage_key: str = ENTRIES_STORAGE_KEY):
        self.kv_store = kv_store
        self.storage_key = storage_key
        self._schema = JournalEntrySchema()

    def _read(self) -> List[JournalEntry]:
        raw = self.kv_store.get(self.storage_key)
        if not raw:
            return []

        try:
            parsed = json.loads(raw)
        except ValueError as e:
            logger.error(f"Failed to parse stored journal entries, treating as empty: {e}")
            return []

        if not isinstance(parsed, list):
            logger.error(f"Stored journal entries are not a list ({type(parsed).__name__}), treating as empty")
            return []

        entries = []
        for index, item in enumerate(parsed):
            try:
                entries.append(self._schema.load(item))
            except (ValidationError, TypeError) as e:
                logger.warning(f"Skipping malformed stored entry at position {index}: {e}")
        return entries

    def _write(self, entries: Iterable[JournalEntry]) -> bool:
        payload = json.dumps(self._schema.dump(list(entries), many=True), ensure_ascii=False)
        return self.kv_store.set(self.storage_key, payload)

    def get_all(self) -> List[JournalEntry]:
        """Get all stored entries, newest calendar date first.

        Returns:
            The stored entries. Missing or corrupt data yields an empty list.
        """
        # Stable sort keeps the most recently saved entry first within a date
        return sorted(self._read(), key=lambda entry: entry.date, reverse=True)

    def save(self, entry: JournalEntry) -> bool:
        """Save an entry, replacing any stored entry with the same id.

        Args:
            entry: Entry to store.

        Returns:
            True if the collection was written.
        """
        existing = [stored for stored in self._read() if stored.id != entry.id]
        saved = self._write([entry] + existing)
        if saved:
            logger.debug(f"Saved entry {entry.id} for {entry.date.isoformat()} locally")
        return saved

    def find_by_date(self, day: date) -> Optional[JournalEntry]:
        for entry in self.get_all():
            if entry.date == day:
                return entry
        return None

    def replace_all(self, entries: List[JournalEntry]) -> bool:
        """Overwrite the whole collection, used when reconciling with the remote store."""
        return self._write(entries)

    def clear(self) -> bool:
        logger.info("Clearing local journal entries")
        return self.kv_store.remove(self.storage_key)
