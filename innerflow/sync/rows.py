"""
Conversion between the client-side journal entry and its two-table remote form.

``journal_entries`` holds one row per user and calendar date; ``journal_items``
holds one row per non-blank achievement or happiness line.
"""
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from ..models.journal import MAX_ITEMS_PER_TYPE, JournalEntry

ITEM_ACHIEVEMENT = 'achievement'
ITEM_HAPPINESS = 'happiness'

_FRACTION = re.compile(r'\.(\d+)')


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse a timestamptz value as returned by PostgREST.

    Accepts a trailing ``Z`` and any number of fractional digits.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip().replace(' ', 'T', 1)
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        text = _FRACTION.sub(lambda match: '.' + match.group(1)[:6].ljust(6, '0'), text, count=1)
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.split('T')[0])


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    return value if value else None


def decompose(entry: JournalEntry, user_id: str,
              now: Optional[datetime] = None) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """Split an entry into its parent row and its item rows.

    Item rows carry no ``journal_entry_id``; it is only known once the parent
    row has been upserted. Each item gets a ``created_at`` one microsecond
    after the previous one so ordering by ``created_at`` gives back the slot
    order even when all items are inserted in one statement.

    Args:
        entry: The entry to convert.
        user_id: Owner of the entry.
        now: Base instant for the item timestamps, defaults to the current time.

    Returns:
        Tuple of the ``journal_entries`` row and the ``journal_items`` rows.
    """
    now = now or datetime.now(timezone.utc)

    entry_row = {
        'user_id': user_id,
        'date': entry.date.isoformat(),
        'drainer_level': entry.drainer_level or None,
        'drainer_note': _blank_to_none(entry.drainer_note),
        'today_mit_description': _blank_to_none(entry.today_mit_description),
        'mit_completed': bool(entry.mit_completed),
        'mit_reason': _blank_to_none(entry.mit_reason),
        'tomorrow_mit': _blank_to_none(entry.tomorrow_mit),
        'updated_at': now.isoformat(),
    }

    contents = [(ITEM_ACHIEVEMENT, content) for content in entry.achievements]
    contents += [(ITEM_HAPPINESS, content) for content in entry.happiness]

    items = []
    for item_type, content in contents:
        if not content or not content.strip():
            continue
        items.append({
            'type': item_type,
            'content': content.strip(),
            'created_at': (now + timedelta(microseconds=len(items))).isoformat(),
        })

    return entry_row, items


def _item_contents(ordered: List[Dict[str, Any]], item_type: str) -> List[str]:
    # Overlapping child replacements can leave a date with its items twice
    contents: List[str] = []
    for item in ordered:
        if item['type'] == item_type and item['content'] not in contents:
            contents.append(item['content'])
    return contents[:MAX_ITEMS_PER_TYPE]


def recompose(entry_row: Dict[str, Any], item_rows: List[Dict[str, Any]]) -> JournalEntry:
    """Rebuild a client-side entry from a parent row and its item rows.

    The remote projection does not keep AI insights, so those come back empty.
    Repeated item contents are dropped and each list is capped at
    MAX_ITEMS_PER_TYPE, oldest items first.
    """
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    ordered = sorted(item_rows, key=lambda item: parse_timestamp(item.get('created_at')) or epoch)

    created_at = parse_timestamp(entry_row.get('created_at')) or datetime.now(timezone.utc)

    return JournalEntry(
        id=str(entry_row['id']),
        date=_parse_date(entry_row['date']),
        timestamp=int(round(created_at.timestamp() * 1000)),
        achievements=_item_contents(ordered, ITEM_ACHIEVEMENT),
        happiness=_item_contents(ordered, ITEM_HAPPINESS),
        drainer_level=entry_row.get('drainer_level') or 'none',
        drainer_note=entry_row.get('drainer_note') or None,
        today_mit_description=entry_row.get('today_mit_description') or '',
        mit_completed=bool(entry_row.get('mit_completed')),
        mit_reason=entry_row.get('mit_reason') or None,
        tomorrow_mit=entry_row.get('tomorrow_mit') or '',
    )


def group_items(item_rows: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Group item rows by the id of the entry that owns them."""
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for item in item_rows:
        grouped.setdefault(str(item['journal_entry_id']), []).append(item)
    return grouped
