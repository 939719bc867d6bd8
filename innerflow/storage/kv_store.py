"""
Key-value storage adapter.
Durable on-device string storage backed by SQLAlchemy, used for the journal
collection and the user identifier. Storage failures never propagate; reads
degrade to "no value" and writes report False.
"""
import logging
from typing import Optional

from sqlalchemy import Column, DateTime, MetaData, String, Table, Text, create_engine, delete, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

metadata = MetaData()

kv_table = Table(
    'kv_store',
    metadata,
    Column('key', String(255), primary_key=True),
    Column('value', Text, nullable=False),
    Column('updated_at', DateTime, nullable=False, server_default=func.now(), onupdate=func.now()),
)


def create_store_engine(url: str) -> Engine:
    """Create the engine for a key-value store URL.

    SQLite connections may be used from the sync loop thread as well as the
    thread that created them, and an in-memory database must stay a single
    connection to keep its contents.
    """
    if url.startswith('sqlite'):
        connect_args = {"check_same_thread": False}
        if url in ('sqlite://', 'sqlite:///:memory:'):
            return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
        return create_engine(url, connect_args=connect_args)
    return create_engine(url)


class KeyValueStore:
    """String key-value storage on a single SQL table."""

    def __init__(self, engine: Engine):
        """Initialize the store and make sure its table exists.

        Args:
            engine: SQLAlchemy engine of the local database
        """
        self.engine = engine
        try:
            metadata.create_all(bind=engine)
        except SQLAlchemyError as e:
            logger.error(f"Could not create key-value table: {e}")

    @classmethod
    def from_url(cls, url: str) -> 'KeyValueStore':
        return cls(create_store_engine(url))

    def get(self, key: str) -> Optional[str]:
        """Get the value stored under a key.

        Returns:
            The stored string, or None if absent or storage is unavailable.
        """
        try:
            with self.engine.connect() as conn:
                return conn.execute(
                    select(kv_table.c.value).where(kv_table.c.key == key)
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error reading key {key} from local storage: {e}")
            return None

    def set(self, key: str, value: str) -> bool:
        """Store a value, replacing any previous one.

        Returns:
            True if the value was written, False otherwise.
        """
        try:
            with self.engine.begin() as conn:
                updated = conn.execute(
                    kv_table.update().where(kv_table.c.key == key).values(value=value)
                )
                if updated.rowcount == 0:
                    conn.execute(kv_table.insert().values(key=key, value=value))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error writing key {key} to local storage: {e}")
            return False

    def remove(self, key: str) -> bool:
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(kv_table).where(kv_table.c.key == key))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error removing key {key} from local storage: {e}")
            return False
