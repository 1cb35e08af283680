"""
Database engine, session factory and transaction helper
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool


logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


SessionLocal = sessionmaker(autoflush=False, expire_on_commit=False)


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for the configured store

    In-memory SQLite shares a single connection so every session sees
    the same database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def init_db(database_url: str) -> Engine:
    """Bind the session factory and create missing tables"""
    # Register the mapped tables on Base.metadata
    from pubquiz import db_models  # noqa: F401

    engine = build_engine(database_url)
    SessionLocal.configure(bind=engine)
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready at {engine.url.render_as_string(hide_password=True)}")
    return engine


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    Commit everything done inside the block, or nothing

    Any exception rolls back the whole transaction and propagates to the
    caller, so a multi-step operation never leaves partial state behind.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
