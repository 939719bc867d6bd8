import asyncio
from datetime import date

from innerflow.sync.remote_store import RemoteStore
from innerflow.utils.supabase_client import SupabaseManager


def test_upsert_writes_parent_and_items(remote_store, fake_supabase, make_entry):
    entry = make_entry(achievements=['did X', '', ''], happiness=['tea'], mit_completed=True)

    result = asyncio.run(remote_store.upsert_entry(entry, 'u1'))

    assert result.success is True
    [row] = fake_supabase.rows('journal_entries')
    assert row['user_id'] == 'u1'
    assert row['date'] == '2024-01-01'
    items = fake_supabase.rows('journal_items')
    assert sorted(item['content'] for item in items) == ['did X', 'tea']
    assert all(item['journal_entry_id'] == row['id'] for item in items)


def test_upsert_replaces_items_of_same_date(remote_store, fake_supabase, make_entry):
    asyncio.run(remote_store.upsert_entry(make_entry(achievements=['old', 'older']), 'u1'))
    asyncio.run(remote_store.upsert_entry(make_entry(achievements=['new']), 'u1'))

    assert len(fake_supabase.rows('journal_entries')) == 1
    assert [item['content'] for item in fake_supabase.rows('journal_items')] == ['new']


def test_upsert_keeps_users_apart(remote_store, fake_supabase, make_entry):
    asyncio.run(remote_store.upsert_entry(make_entry(), 'u1'))
    asyncio.run(remote_store.upsert_entry(make_entry(), 'u2'))

    assert len(fake_supabase.rows('journal_entries')) == 2


def test_upsert_failure_is_reported_not_raised(remote_store, fake_supabase, make_entry):
    fake_supabase.fail('journal_items', 'insert', message='items table locked')

    result = asyncio.run(remote_store.upsert_entry(make_entry(achievements=['a']), 'u1'))

    assert result.success is False
    assert result.error == 'items table locked'
    # The parent row and the item delete already went through
    assert len(fake_supabase.rows('journal_entries')) == 1
    assert fake_supabase.rows('journal_items') == []


def test_upsert_without_remote_configured(local_store, make_entry):
    remote = RemoteStore(SupabaseManager(), local_store)

    result = asyncio.run(remote.upsert_entry(make_entry(), 'u1'))

    assert result.success is False
    assert result.error == 'Remote store is not configured'


def test_fetch_entry_round_trip(remote_store, make_entry):
    entry = make_entry(achievements=['one', 'two', 'three'], happiness=['x'],
                       drainer_level='high', drainer_note='commute', tomorrow_mit='plan')

    async def scenario():
        await remote_store.upsert_entry(entry, 'u1')
        return await remote_store.fetch_entry(date(2024, 1, 1), 'u1')

    fetched = asyncio.run(scenario())

    assert fetched.date == entry.date
    assert fetched.achievements == ['one', 'two', 'three']
    assert fetched.happiness == ['x']
    assert fetched.drainer_level == 'high'
    assert fetched.drainer_note == 'commute'
    assert fetched.tomorrow_mit == 'plan'


def test_fetch_entry_missing(remote_store):
    assert asyncio.run(remote_store.fetch_entry(date(2024, 1, 1), 'u1')) is None


def test_fetch_all_remote_newest_first(remote_store, make_entry):
    async def scenario():
        for day in ('2024-01-01', '2024-01-03', '2023-12-25'):
            await remote_store.upsert_entry(make_entry(day, happiness=[f'happy {day}']), 'u1')
        await remote_store.upsert_entry(make_entry('2024-01-02'), 'someone-else')
        return await remote_store.fetch_all_remote('u1')

    entries = asyncio.run(scenario())

    assert [e.date.isoformat() for e in entries] == ['2024-01-03', '2024-01-01', '2023-12-25']
    assert [e.happiness for e in entries] == [['happy 2024-01-03'], ['happy 2024-01-01'], ['happy 2023-12-25']]


def test_fetch_all_entries_falls_back_to_local_on_network_failure(
        remote_store, local_store, fake_supabase, make_entry):
    local_store.save(make_entry('2024-01-01', achievements=['kept']))
    local_store.save(make_entry('2023-12-31'))
    fake_supabase.offline = True

    entries = asyncio.run(remote_store.fetch_all_entries('u1'))

    assert entries == local_store.get_all()
    assert len(entries) == 2


def test_fetch_all_entries_without_remote_uses_local(local_store, make_entry):
    local_store.save(make_entry())
    remote = RemoteStore(SupabaseManager(), local_store)

    assert asyncio.run(remote.fetch_all_entries('u1')) == local_store.get_all()


def test_same_date_entries_collapse_remotely(remote_store, local_store, fake_supabase, make_entry):
    first = make_entry(achievements=['first'])
    second = make_entry(achievements=['second'])
    local_store.save(first)
    local_store.save(second)

    async def scenario():
        for entry in local_store.get_all():
            await remote_store.upsert_entry(entry, 'u1')

    asyncio.run(scenario())

    assert len(local_store.get_all()) == 2
    assert len(fake_supabase.rows('journal_entries')) == 1
