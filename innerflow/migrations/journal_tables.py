"""
Script to create the remote journal tables.

Run it once against the Postgres database behind the Supabase project
(DATABASE_URL) before enabling remote sync. Row level security policies are
managed in the Supabase dashboard and are not created here.
"""
import logging
import os
import sys
from typing import List, Optional

from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import SQLAlchemyError

from innerflow.models.tables import Base

logger = logging.getLogger(__name__)


def create_journal_tables(db_url: str) -> List[str]:
    """Create journal_entries and journal_items if they do not exist.

    Args:
        db_url: SQLAlchemy URL of the remote database.

    Returns:
        Names of the journal tables present after the run.
    """
    if db_url.startswith('postgres://'):
        db_url = db_url.replace('postgres://', 'postgresql://', 1)

    engine = create_engine(db_url)
    try:
        logger.info("Creating journal tables...")
        Base.metadata.create_all(bind=engine)
        present = [name for name in inspect(engine).get_table_names()
                   if name in Base.metadata.tables]
        logger.info(f"Journal tables present: {', '.join(sorted(present))}")
        return sorted(present)
    finally:
        engine.dispose()


def main(db_url: Optional[str] = None) -> int:
    db_url = db_url or os.getenv('DATABASE_URL')
    if not db_url:
        logger.error("DATABASE_URL environment variable not set.")
        return 1

    try:
        create_journal_tables(db_url)
    except SQLAlchemyError as e:
        logger.error(f"Error creating journal tables: {e}")
        return 1
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    sys.exit(main())
