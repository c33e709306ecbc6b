# src/database.py
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from config import settings

logger = logging.getLogger(__name__)

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def utcnow() -> datetime:
    """Current time as naive UTC, the format every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    """Session factory for work that outlives the request (background tasks)."""
    return SessionLocal


@contextmanager
def atomic(db: Session, timeout_seconds: Optional[int] = None) -> Iterator[Session]:
    """Run a block as one all-or-nothing unit of work.

    Any pending state on the session is rolled back first so the unit starts a
    fresh database transaction. On PostgreSQL the unit carries local statement
    and lock timeouts, so a stuck row lock aborts the unit instead of blocking.
    Commits on success, rolls back and re-raises on any exception.
    """
    if db.in_transaction():
        db.rollback()
    timeout = timeout_seconds if timeout_seconds is not None else settings.ATOMIC_TIMEOUT_SECONDS
    try:
        if db.get_bind().dialect.name == "postgresql":
            millis = int(timeout * 1000)
            db.execute(text(f"SET LOCAL statement_timeout = {millis}"))
            db.execute(text(f"SET LOCAL lock_timeout = {millis}"))
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
