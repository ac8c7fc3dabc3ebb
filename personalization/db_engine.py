"""
SQLAlchemy engine and session management for personalization snapshots.
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from personalization.constants import DB_NAME

# Created on first use unless a test installs its own
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def _make_session_factory(engine: Engine) -> sessionmaker:
    # Snapshot loads convert rows after commit, so keep attributes loaded
    return sessionmaker(bind=engine, expire_on_commit=False)


def get_engine() -> Engine:
    """Get the snapshot engine, connecting to the default SQLite file if none is set."""
    global _engine, _session_factory
    if _engine is None:
        _engine = create_engine(f"sqlite:///{DB_NAME}")
        _session_factory = _make_session_factory(_engine)
    return _engine


def set_engine(engine: Engine) -> None:
    """Route all snapshot operations through the given engine (for testing)."""
    global _engine, _session_factory
    _engine = engine
    _session_factory = _make_session_factory(engine)


def reset_engine() -> None:
    """Dispose of the current engine and forget it (for testing)."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """A transactional session: commit on success, roll back on error."""
    if _session_factory is None:
        get_engine()

    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
