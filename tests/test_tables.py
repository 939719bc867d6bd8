from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from innerflow.migrations.journal_tables import create_journal_tables, main
from innerflow.models.tables import Base, JournalEntryRow, JournalItemRow


@pytest.fixture
def session():
    engine = create_engine('sqlite://')
    Base.metadata.create_all(bind=engine)
    with Session(engine) as session:
        yield session
    engine.dispose()


def test_create_journal_tables(tmp_path):
    url = f"sqlite:///{tmp_path / 'remote.db'}"

    assert create_journal_tables(url) == ['journal_entries', 'journal_items']
    # Running again is harmless
    assert create_journal_tables(url) == ['journal_entries', 'journal_items']


def test_main_requires_database_url(monkeypatch):
    monkeypatch.delenv('DATABASE_URL', raising=False)
    assert main() == 1


def test_one_entry_per_user_and_date(session):
    session.add(JournalEntryRow(user_id='u1', date=date(2024, 1, 1)))
    session.add(JournalEntryRow(user_id='u2', date=date(2024, 1, 1)))
    session.commit()

    session.add(JournalEntryRow(user_id='u1', date=date(2024, 1, 1)))
    with pytest.raises(IntegrityError):
        session.commit()


def test_item_type_is_checked(session):
    entry = JournalEntryRow(user_id='u1', date=date(2024, 1, 1))
    entry.items.append(JournalItemRow(type='grievance', content='x'))
    session.add(entry)

    with pytest.raises(IntegrityError):
        session.commit()


def test_entry_owns_its_items(session):
    entry = JournalEntryRow(user_id='u1', date=date(2024, 1, 1), mit_completed=True)
    entry.items = [
        JournalItemRow(type='achievement', content='did X'),
        JournalItemRow(type='happiness', content='tea'),
    ]
    session.add(entry)
    session.commit()

    assert session.query(JournalItemRow).count() == 2
    assert len(entry.items) == 2
    session.delete(entry)
    session.commit()
    assert session.query(JournalItemRow).count() == 0
