"""Database engine and session factory construction."""

from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from hrportal.config.settings import DatabaseSettings


def create_db_engine(settings: Optional[DatabaseSettings] = None, **overrides) -> Engine:
    """
    Build an engine for the configured database URL.

    SQLite URLs skip the pool sizing arguments, which the SQLite pools reject.
    """
    settings = settings or DatabaseSettings()
    kwargs = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
    if settings.is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_recycle=settings.DB_POOL_RECYCLE,
        )
    kwargs.update(overrides)
    return create_engine(settings.DATABASE_URL, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create all tables registered on the declarative base."""
    from hrportal.models import Base

    Base.metadata.create_all(bind=engine)
