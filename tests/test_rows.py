import random
from datetime import date, datetime, timedelta, timezone

import pytest

from innerflow.models.journal import JournalEntry
from innerflow.sync.rows import decompose, group_items, parse_timestamp, recompose

NOW = datetime(2024, 1, 1, 20, 30, tzinfo=timezone.utc)


def remote_rows(entry, user_id='u1'):
    """What the remote store would hand back after upserting ``entry``."""
    entry_row, items = decompose(entry, user_id, now=NOW)
    created_at = datetime.fromtimestamp(entry.timestamp / 1000, tz=timezone.utc)
    entry_row = dict(entry_row, id=entry.id, created_at=created_at.isoformat())
    return entry_row, [dict(item, journal_entry_id=entry.id) for item in items]


def test_decompose_drops_blank_items_and_trims():
    entry = JournalEntry.new(day=date(2024, 1, 1), achievements=['did X', '', '  '],
                             happiness=['  sunshine ', '', ''], mit_completed=True)

    entry_row, items = decompose(entry, 'u1', now=NOW)

    assert entry_row['user_id'] == 'u1'
    assert entry_row['date'] == '2024-01-01'
    assert entry_row['mit_completed'] is True
    assert entry_row['drainer_level'] == 'none'
    assert entry_row['today_mit_description'] is None
    assert 'id' not in entry_row
    assert [(item['type'], item['content']) for item in items] == [
        ('achievement', 'did X'), ('happiness', 'sunshine'),
    ]


def test_decompose_item_timestamps_follow_slot_order():
    entry = JournalEntry.new(day=date(2024, 1, 1), achievements=['a', 'b', 'c'], happiness=['d'])

    _, items = decompose(entry, 'u1', now=NOW)

    stamps = [parse_timestamp(item['created_at']) for item in items]
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == len(stamps)


@pytest.mark.parametrize('achievements,happiness', [
    ([], []),
    (['one'], []),
    (['one', 'two', 'three'], ['x', 'y', 'z']),
    ([], ['only happiness', 'second']),
])
def test_recompose_restores_decomposed_entry(achievements, happiness):
    entry = JournalEntry(
        id='entry-1', date=date(2024, 1, 1), timestamp=1704140000123,
        achievements=achievements, happiness=happiness,
        drainer_level='low', drainer_note='late meeting',
        today_mit_description='finish draft', mit_completed=False,
        mit_reason='interrupted', tomorrow_mit='send draft',
    )

    entry_row, items = remote_rows(entry)
    random.shuffle(items)

    assert recompose(entry_row, items) == entry


def test_recompose_drops_items_inserted_twice():
    entry = JournalEntry(id='entry-1', date=date(2024, 1, 1), timestamp=1704140000123,
                         achievements=['a', 'b', 'c'], happiness=['x'])
    entry_row, first_insert = remote_rows(entry)
    _, second_insert = decompose(entry, 'u1', now=NOW + timedelta(seconds=1))
    second_insert = [dict(item, journal_entry_id=entry.id) for item in second_insert]

    restored = recompose(entry_row, second_insert + first_insert)

    assert restored.achievements == ['a', 'b', 'c']
    assert restored.happiness == ['x']


def test_recompose_keeps_oldest_items_per_type():
    items = [
        {'type': 'achievement', 'content': f"item {n}", 'created_at': f"2024-01-01T08:00:0{n}Z"}
        for n in (4, 2, 3, 1)
    ]

    entry = recompose({'id': 'e', 'date': '2024-01-01'}, items)

    assert entry.achievements == ['item 1', 'item 2', 'item 3']


def test_recompose_defaults_for_null_columns():
    entry = recompose({
        'id': 7, 'date': '2024-01-01', 'created_at': '2024-01-01T08:00:00Z',
        'drainer_level': None, 'drainer_note': None, 'today_mit_description': None,
        'mit_completed': None, 'mit_reason': None, 'tomorrow_mit': None,
    }, [])

    assert entry.id == '7'
    assert entry.drainer_level == 'none'
    assert entry.today_mit_description == ''
    assert entry.tomorrow_mit == ''
    assert entry.mit_completed is False
    assert entry.timestamp == 1704096000000
    assert entry.ai_insight is None


@pytest.mark.parametrize('value,expected', [
    ('2024-01-01T08:00:00Z', datetime(2024, 1, 1, 8, tzinfo=timezone.utc)),
    ('2024-01-01T08:00:00.5+00:00', datetime(2024, 1, 1, 8, 0, 0, 500000, tzinfo=timezone.utc)),
    ('2024-01-01 08:00:00.123456789+00:00', datetime(2024, 1, 1, 8, 0, 0, 123456, tzinfo=timezone.utc)),
    ('2024-01-01T08:00:00', datetime(2024, 1, 1, 8, tzinfo=timezone.utc)),
])
def test_parse_timestamp(value, expected):
    assert parse_timestamp(value) == expected


def test_parse_timestamp_none():
    assert parse_timestamp(None) is None


def test_group_items():
    grouped = group_items([
        {'journal_entry_id': 1, 'content': 'a'},
        {'journal_entry_id': '2', 'content': 'b'},
        {'journal_entry_id': 1, 'content': 'c'},
    ])
    assert [item['content'] for item in grouped['1']] == ['a', 'c']
    assert [item['content'] for item in grouped['2']] == ['b']
