from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager, suppress

from loguru import logger
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from fitplan.config.settings import settings

# Lazy initialization to avoid import-time database connections
_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None
_database_url: str | None = None


def _get_engine() -> Engine:
    """Get or create the database engine (lazy initialization)."""
    global _engine
    if _engine is None:
        url = _database_url or settings.database_url
        logger.info(f"Initializing database engine: {url}")

        connect_args = {}
        if "sqlite" in url.lower():
            # Store calls run on worker threads via asyncio.to_thread
            connect_args = {"check_same_thread": False}
        else:
            connect_args = {"connect_timeout": 10, "application_name": "fitplan"}

        _engine = create_engine(
            url,
            connect_args=connect_args,
            echo=False,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        logger.info("Database engine initialized")
    return _engine


def _get_session_local() -> sessionmaker[Session]:
    """Get or create the session factory (lazy initialization)."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=_get_engine())
        logger.info("Database session factory initialized")
    return _SessionLocal


def configure_database(database_url: str | None = None) -> None:
    """Point the engine at a different database, disposing the current one.

    Args:
        database_url: New database URL. None falls back to settings.database_url.
    """
    global _engine, _SessionLocal, _database_url
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
    _database_url = database_url


def init_db() -> None:
    """Create all tables that do not exist yet."""
    from fitplan.db.models import Base

    Base.metadata.create_all(bind=_get_engine())
    logger.info("Database schema ensured")


def _handle_session_commit(session: Session) -> None:
    """Commit the open transaction, including rows already flushed by the caller."""
    if session.in_transaction():
        with suppress(Exception):
            logger.debug(f"Committing session: dirty={len(session.dirty)}, new={len(session.new)}, deleted={len(session.deleted)}")
        session.commit()
    else:
        with suppress(Exception):
            logger.debug("No transaction to commit, skipping commit")


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Get database session context manager.

    Commits on clean exit. Domain errors (subclasses of FitplanError) roll back
    and re-raise without being logged as database errors; anything else is
    logged with its traceback, rolled back and re-raised.
    """
    session = _get_session_local()()
    try:
        yield session
        _handle_session_commit(session)
    except Exception as e:
        # Import here to avoid circular imports
        from fitplan.plans.errors import FitplanError

        session.rollback()
        if isinstance(e, FitplanError):
            logger.debug(f"{type(e).__name__} in session, rolled back (business rule, not DB error)")
            raise
        logger.error(f"Database session error, rolling back: {e}. Error type: {type(e).__name__}")
        logger.exception("Full exception traceback:")
        raise
    finally:
        session.close()
