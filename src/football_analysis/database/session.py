"""Engine and session handling for the settings/picks database.

One engine per process, created lazily from ``Settings.database_url``.
Tests and the CLI call ``reset_engine()`` after changing the URL.
"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..config import get_settings
from .models import Base

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """Shared engine for the configured database URL."""
    global _engine
    if _engine is None:
        url = get_settings().database_url
        # SQLite connections may be handed between batch worker threads
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        _engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
        logger.debug(f"Created engine for {_engine.url.render_as_string(hide_password=True)}")
    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine())
    return _session_factory


def reset_engine() -> None:
    """Dispose the cached engine so the next call rereads the database URL."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Session committed on success and rolled back on any error."""
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db() -> None:
    """Create the team_algo_settings and daily_picks tables if missing."""
    Base.metadata.create_all(bind=get_engine())
