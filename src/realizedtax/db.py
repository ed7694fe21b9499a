from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .config import db_url

# ---------- Engine / Session ----------
DB_URL = db_url()

_connect_args = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}

# echo=False to keep tests quiet
engine: Engine = create_engine(DB_URL, future=True, echo=False, connect_args=_connect_args)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)


def init_db() -> None:
    """Create ORM tables (no-op for tables that already exist)."""
    # Import models here to avoid circular imports
    from .models import Base

    Base.metadata.create_all(bind=engine)


@contextmanager
def db_session() -> Iterator[Session]:
    """
    One unit of work per request: commit when the block exits cleanly,
    roll back (and re-raise) when it does not. Inserted rows get their ids
    on flush, so callers can read them inside the block.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
