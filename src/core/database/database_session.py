"""
Standardized database session management for Beacon Analytics.

Services receive a session factory at construction time. The module-level engine
below is the production default, built lazily from configuration; tests and
scripts pass their own factory instead.
"""

import logging
import os
import time
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DisconnectionError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from src.core.config import get_config
from src.core.database.db_config import DatabaseConfig
from src.core.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)

# Module-level globals for lazy initialization
_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def get_engine() -> Engine:
    """Get or create the database engine (lazy initialization)."""
    global _engine, _session_factory

    if _engine is None:
        # Unit tests inject their own session factory and must never reach this point
        if os.environ.get("BEACON_TESTING") and not os.environ.get("DATABASE_URL"):
            raise RuntimeError(
                "Unit tests should not create real database connections. "
                "Pass a session_factory explicitly or set DATABASE_URL for integration tests."
            )

        database_url = DatabaseConfig.get_url()
        db_settings = get_config().database

        _engine = create_engine(
            database_url,
            pool_size=10,  # Base connections in pool
            max_overflow=20,  # Additional connections beyond pool_size
            pool_timeout=db_settings.pool_timeout,
            pool_recycle=3600,  # Recycle connections after 1 hour
            pool_pre_ping=True,  # Test connections before use
            echo=False,
            connect_args={"connect_timeout": db_settings.connect_timeout},
        )

        query_timeout_ms = db_settings.query_timeout * 1000

        @event.listens_for(_engine, "connect")
        def set_statement_timeout(dbapi_conn, connection_record):
            """Set statement_timeout on new connections."""
            cursor = dbapi_conn.cursor()
            cursor.execute(f"SET statement_timeout = '{query_timeout_ms}'")
            cursor.close()

        _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    return _engine


def get_session_factory() -> sessionmaker:
    """Get the default session factory (lazy initialization)."""
    get_engine()
    return _session_factory


def reset_engine() -> None:
    """Reset engine for testing - closes existing connections and clears global state."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _session_factory = None


@contextmanager
def get_db_session(session_factory: sessionmaker | None = None) -> Generator[Session, None, None]:
    """
    Context manager for database sessions with automatic cleanup.

    Usage:
        with get_db_session(factory) as session:
            stmt = select(Model).filter_by(...)
            result = session.scalars(stmt).first()
            session.add(new_object)
            session.commit()  # Explicit commit needed

    Anything not committed is rolled back. Storage errors that escape the block
    are logged and re-raised as PersistenceFailure with the original chained;
    callers that need to react to a specific error (e.g. IntegrityError on commit)
    catch it inside the block.
    """
    factory = session_factory or get_session_factory()
    session = factory()
    try:
        yield session
    except (OperationalError, DisconnectionError) as e:
        logger.error(f"Database connection error: {e}")
        session.rollback()
        raise PersistenceFailure() from e
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        session.rollback()
        raise PersistenceFailure() from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_database_health(session_factory: sessionmaker | None = None) -> tuple[bool, str]:
    """
    Run a trivial query against the database.

    Returns:
        Tuple of (is_healthy, message)
    """
    started = time.monotonic()
    try:
        with get_db_session(session_factory) as session:
            session.execute(text("SELECT 1")).scalar()
    except Exception as e:
        error_msg = f"Database unhealthy: {type(e).__name__}: {str(e)[:100]}"
        logger.error(error_msg)
        return False, error_msg

    elapsed_ms = (time.monotonic() - started) * 1000
    return True, f"healthy ({elapsed_ms:.1f}ms)"
