"""
Engine and session construction.

Evaluators never open sessions themselves; callers build a factory once and
hand each request its own Session.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from content_access.config import load_settings

logger = logging.getLogger(__name__)


def _normalize_url(database_url: str) -> str:
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql://", 1)
    return database_url


def create_session_factory(database_url: Optional[str] = None) -> sessionmaker:
    """
    Build a sessionmaker bound to a new engine.

    Args:
        database_url: SQLAlchemy URL. Defaults to DATABASE_URL from settings.
    """
    url = _normalize_url(database_url or load_settings().database_url)
    engine_kwargs = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        # Sessions may be handed to worker threads
        engine_kwargs["connect_args"] = {"check_same_thread": False}

    engine = create_engine(url, **engine_kwargs)
    logger.info("Created content access engine", extra={"dialect": engine.dialect.name})
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Yield a session from factory and always close it. Read-only callers never commit."""
    session = factory()
    try:
        yield session
    finally:
        session.close()
