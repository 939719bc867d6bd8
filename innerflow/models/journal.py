"""
Journal entry model for daily moments.
"""
import time
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Dict, Any, List, Optional
from uuid import uuid4

from marshmallow import EXCLUDE, Schema, fields, validate, post_load, ValidationError

DRAINER_LEVELS = ('none', 'low', 'high')
AI_MOODS = ('positive', 'neutral', 'needs-care')
MAX_ITEMS_PER_TYPE = 3


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class JournalEntry:
    """One calendar day's journal record, as the client keeps it."""
    id: str
    date: date
    timestamp: int
    achievements: List[str] = field(default_factory=list)
    happiness: List[str] = field(default_factory=list)
    drainer_level: str = 'none'
    drainer_note: Optional[str] = None
    today_mit_description: str = ''
    mit_completed: bool = False
    mit_reason: Optional[str] = None
    tomorrow_mit: str = ''
    ai_insight: Optional[str] = None
    ai_mood: Optional[str] = None

    @classmethod
    def new(cls, day: Optional[date] = None, **values) -> 'JournalEntry':
        """Create an entry with a fresh id and the current timestamp.

        Args:
            day: Calendar date the entry belongs to, defaults to today.
            **values: Any other field of the entry.

        Returns:
            The new, unsaved entry.
        """
        return cls(
            id=str(uuid4()),
            date=day or date.today(),
            timestamp=_now_ms(),
            **values
        )

    def with_insight(self, text: str, mood: str) -> 'JournalEntry':
        return replace(self, ai_insight=text, ai_mood=mood)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the entry to its camelCase JSON representation.

        Returns:
            Dictionary representation of the entry.
        """
        return JournalEntrySchema().dump(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'JournalEntry':
        """Build an entry from its JSON representation.

        Raises:
            marshmallow.ValidationError: If the data is not a valid entry.
        """
        return JournalEntrySchema().load(data)

    def __repr__(self) -> str:
        return f"<JournalEntry {self.id} {self.date.isoformat()}>"


def _has_content(values: Optional[List[str]]) -> bool:
    return bool(values) and any(value and value.strip() for value in values)


def is_valid(entry: Optional[JournalEntry]) -> bool:
    """Whether an entry counts toward history and recorded days.

    A draft auto-save with nothing filled in is stored but not valid.
    """
    if entry is None:
        return False

    return (
        _has_content(entry.achievements)
        or _has_content(entry.happiness)
        or entry.drainer_level != 'none'
        or entry.mit_completed is True
    )


def next_day_prefill(entry: Optional[JournalEntry]) -> str:
    """The MIT planned yesterday, used to pre-fill today's MIT description."""
    if entry is None:
        return ''
    return entry.tomorrow_mit or ''


class CalendarDate(fields.Field):
    """Calendar date stored as YYYY-MM-DD.

    The web client writes full ISO datetimes (2024-01-01T00:00:00.000Z); only
    the date part is kept when loading those.
    """

    default_error_messages = {"invalid": "Not a valid calendar date."}

    def _serialize(self, value, attr, obj, **kwargs):
        if value is None:
            return None
        return value.isoformat()

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if not isinstance(value, str):
            raise self.make_error("invalid")
        try:
            return date.fromisoformat(value.split('T')[0])
        except ValueError as error:
            raise self.make_error("invalid") from error


class JournalEntrySchema(Schema):
    """Schema for the locally stored (camelCase) entry shape.

    Stored and reconciled entries are loaded without the per-type item limit,
    which only applies to entries posted by the front end.
    """
    id = fields.String(required=True, validate=validate.Length(min=1))
    date = CalendarDate(required=True)
    timestamp = fields.Integer(load_default=_now_ms)
    achievements = fields.List(fields.String(), load_default=list)
    happiness = fields.List(fields.String(), load_default=list)
    drainer_level = fields.String(data_key='drainerLevel', load_default='none',
                                  validate=validate.OneOf(DRAINER_LEVELS))
    drainer_note = fields.String(data_key='drainerNote', allow_none=True, load_default=None)
    today_mit_description = fields.String(data_key='todayMitDescription', load_default='')
    mit_completed = fields.Boolean(data_key='mitCompleted', load_default=False)
    mit_reason = fields.String(data_key='mitReason', allow_none=True, load_default=None)
    tomorrow_mit = fields.String(data_key='tomorrowMit', load_default='')
    ai_insight = fields.String(data_key='aiInsight', allow_none=True, load_default=None)
    ai_mood = fields.String(data_key='aiMood', allow_none=True, load_default=None,
                            validate=validate.OneOf(AI_MOODS))

    class Meta:
        # Collections written by newer clients may carry extra keys
        unknown = EXCLUDE

    @post_load
    def make_entry(self, data, **kwargs) -> JournalEntry:
        return JournalEntry(**data)


class NewJournalEntrySchema(JournalEntrySchema):
    """Schema for entries posted by the front end; id and date may be omitted."""
    id = fields.String(load_default=lambda: str(uuid4()), validate=validate.Length(min=1))
    date = CalendarDate(load_default=date.today)
    achievements = fields.List(fields.String(), load_default=list,
                               validate=validate.Length(max=MAX_ITEMS_PER_TYPE))
    happiness = fields.List(fields.String(), load_default=list,
                            validate=validate.Length(max=MAX_ITEMS_PER_TYPE))


__all__ = [
    'JournalEntry', 'JournalEntrySchema', 'NewJournalEntrySchema', 'ValidationError',
    'is_valid', 'next_day_prefill', 'DRAINER_LEVELS', 'AI_MOODS'
]
