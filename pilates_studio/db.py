from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import Settings, get_settings


class Base(DeclarativeBase):
    """ORM base for every entity."""
    pass


def build_engine(settings: Settings | None = None) -> Engine:
    """
    SQLite in development, a MySQL-compatible server in production.
    The provider is chosen from ENVIRONMENT at startup.
    """
    settings = settings or get_settings()
    url = settings.resolved_database_url

    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=settings.database_echo,
            future=True,
            connect_args={"check_same_thread": False},
        )

    return create_engine(
        url,
        echo=settings.database_echo,
        future=True,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        future=True,
        expire_on_commit=False,
    )


def init_db(engine: Engine) -> None:
    """Create missing tables."""
    # Registers every mapped class on Base.metadata
    from . import auth_models, models  # noqa: F401

    Base.metadata.create_all(bind=engine)


@contextmanager
def db_session(factory: sessionmaker[Session]) -> Iterator[Session]:
    """
    Session scope:
    - commit when the block succeeds
    - rollback on exceptions
    - always close
    """
    session: Session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db(request: Request) -> Iterator[Session]:
    """
    FastAPI dependency: one session per request.
    Services commit their own writes; anything left pending is rolled back.
    """
    session: Session = request.app.state.session_factory()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every *_at column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
