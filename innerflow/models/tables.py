"""
Relational projection of journal entries as stored in the remote database.

The column names here are the wire format used by the remote store adapter
and must not change.
"""
from uuid import uuid4

from sqlalchemy import (
    Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, Index, String, Text,
    UniqueConstraint, func
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _uuid() -> str:
    return str(uuid4())


class JournalEntryRow(Base):
    """One day's state for one user. Owns its items."""
    __tablename__ = 'journal_entries'
    __table_args__ = (
        UniqueConstraint('user_id', 'date', name='journal_entries_user_id_date_key'),
        CheckConstraint(
            "drainer_level IS NULL OR drainer_level IN ('none', 'low', 'high')",
            name='journal_entries_drainer_level_check'
        ),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(Text, nullable=False)
    date = Column(Date, nullable=False)
    drainer_level = Column(String(8))
    drainer_note = Column(Text)
    today_mit_description = Column(Text)
    mit_completed = Column(Boolean, nullable=False, default=False)
    mit_reason = Column(Text)
    tomorrow_mit = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    items = relationship('JournalItemRow', back_populates='entry',
                         cascade='all, delete-orphan', passive_deletes=True)

    def __repr__(self) -> str:
        return f"<JournalEntryRow {self.user_id} {self.date}>"


class JournalItemRow(Base):
    """An achievement or happiness line belonging to a journal entry."""
    __tablename__ = 'journal_items'
    __table_args__ = (
        CheckConstraint("type IN ('achievement', 'happiness')", name='journal_items_type_check'),
        Index('journal_items_journal_entry_id_idx', 'journal_entry_id'),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    journal_entry_id = Column(String(36), ForeignKey('journal_entries.id', ondelete='CASCADE'), nullable=False)
    type = Column(String(16), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    entry = relationship('JournalEntryRow', back_populates='items')

    def __repr__(self) -> str:
        return f"<JournalItemRow {self.type}: {self.content[:20]}>"
