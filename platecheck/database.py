# platecheck/database.py
"""
Database connection, session factory, and table creation.
Uses SQLAlchemy with SQLite by default. All models are auto-imported here
so create_tables() creates every table in one call.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from platecheck.config import settings

Base = declarative_base()


def make_engine(url: str = None, echo: bool = None) -> Engine:
    """
    Build an engine for the given URL (defaults to settings.DATABASE_URL).
    In-memory SQLite gets a StaticPool so every session sees the same database.
    """
    url = url or settings.DATABASE_URL
    echo = settings.DATABASE_ECHO if echo is None else echo
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)
    return create_engine(url, echo=echo, pool_pre_ping=True)


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


engine = make_engine()

SessionLocal = make_session_factory(engine)


def create_tables(bind: Engine = None):
    """
    Creates all DB tables. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from platecheck.models.kv_entry import KeyValueEntry   # noqa

    Base.metadata.create_all(bind=bind or engine)
