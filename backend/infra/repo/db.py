"""DB utilities for SQLAlchemy sessions/engine.

Uses `DATABASE_URL` or falls back to `sqlite+pysqlite:///:memory:` (dev/tests). The in-memory
database is shared by every session of the engine.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.infra.repo.models import Base

MEMORY_URL = "sqlite+pysqlite:///:memory:"


def get_engine(url: str | None = None) -> Engine:
    """Crée un moteur SQLAlchemy à partir de l'URL de base de données."""
    db_url = url or os.getenv("DATABASE_URL") or MEMORY_URL
    # Render/Heroku exposent encore le schéma "postgres://"
    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql://", 1)
    if not db_url.startswith("sqlite"):
        return create_engine(db_url, echo=False, pool_pre_ping=True)
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in db_url:
        kwargs["poolclass"] = StaticPool
    return create_engine(db_url, echo=False, **kwargs)


def init_schema(engine: Engine) -> None:
    """Crée les tables manquantes (dev/tests; Alembic en production)."""
    Base.metadata.create_all(engine)


def get_session_factory(engine: Engine) -> sessionmaker:
    """Crée une factory de sessions SQLAlchemy."""
    return sessionmaker(bind=engine, class_=Session, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Contexte de session avec commit en sortie et rollback sur exception."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
