"""
Database session management.
"""
import logging
from contextlib import contextmanager
from typing import Iterator
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from tripledger.core.config import settings
from tripledger.core.errors import PersistenceError
from tripledger.db.base import Base

logger = logging.getLogger(__name__)


def make_engine(url: str, **kwargs):
    """Create an engine with the configured isolation level."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
        kwargs.setdefault("pool_recycle", 3600)
    return create_engine(
        url,
        echo=settings.DB_ECHO,
        isolation_level=settings.DB_ISOLATION_LEVEL,
        **kwargs
    )


engine = make_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    Run a unit of work as one transaction.

    Commits when the block exits normally. Any exception rolls back every
    pending insert/update/delete; storage failures are re-raised as
    PersistenceError, ledger errors propagate unchanged.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Transaction rolled back: {e}", exc_info=True)
        raise PersistenceError("Database transaction failed and was rolled back") from e
    except Exception:
        db.rollback()
        raise


def init_db(bind=None):
    """Initialize database tables."""
    # Import all models so SQLAlchemy can register them
    import tripledger.models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
