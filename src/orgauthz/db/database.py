import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Session
from sqlalchemy.pool import NullPool

from orgauthz import config
from orgauthz.errors import OperationCancelled

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# SQLAlchemy Base class
# ---------------------------------------------------------
class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------
# Create engine
# ---------------------------------------------------------
# NullPool prevents connection reuse issues during local dev / hot reload.
engine = create_engine(
    config.DATABASE_URL,
    poolclass=NullPool,
    echo=False,  # set True to log SQL
)

# ---------------------------------------------------------
# SessionLocal factory
# ---------------------------------------------------------
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


# ---------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------
def get_db():
    """Yields a database session for each request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ---------------------------------------------------------
# Unit of work
# ---------------------------------------------------------
@contextmanager
def transaction(db: Session, cancel_event: Optional[threading.Event] = None) -> Iterator[Session]:
    """
    Run the enclosed steps as one atomic unit.

    Commits when the block exits cleanly, rolls back on any exception.
    If ``cancel_event`` is set on entry or before the commit, the work is
    rolled back and OperationCancelled is raised.

    Usage:
        with transaction(db):
            db.add(org)
            db.flush()
            db.add(member)
    """
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelled("Operation cancelled before it started")

    try:
        yield db
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelled("Operation cancelled before commit")
        db.commit()
    except Exception:
        db.rollback()
        raise


def init_db(bind=None) -> None:
    """Create every table registered on Base.metadata."""
    # Import models so metadata knows about all tables
    import orgauthz.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables ensured")
