import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from src.core.database.database_session import get_engine
from src.core.database.models import Base

logger = logging.getLogger(__name__)


def init_db(engine: Engine | None = None) -> list[str]:
    """Create any missing tables and indexes.

    Safe to run repeatedly; existing tables are left untouched.

    Returns:
        Names of the tables that were created by this call.
    """
    engine = engine or get_engine()
    existing = set(inspect(engine).get_table_names())

    Base.metadata.create_all(engine)

    created = [name for name in Base.metadata.tables if name not in existing]
    if created:
        logger.info(f"Created tables: {', '.join(created)}")
    else:
        logger.info("Database schema already up to date")
    return created
