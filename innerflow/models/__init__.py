"""
Models package: the client-side journal entry and the remote table schema.
"""
from .journal import (
    JournalEntry, JournalEntrySchema, NewJournalEntrySchema, is_valid, next_day_prefill,
    DRAINER_LEVELS, AI_MOODS
)
from .tables import Base, JournalEntryRow, JournalItemRow

__all__ = ['JournalEntry', 'JournalEntrySchema', 'NewJournalEntrySchema', 'is_valid',
           'next_day_prefill', 'DRAINER_LEVELS', 'AI_MOODS',
           'Base', 'JournalEntryRow', 'JournalItemRow']
