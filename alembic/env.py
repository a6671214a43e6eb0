"""
Configuration de l'environnement Alembic pour les migrations de base de données.

Les migrations ciblent les tables de l'archive de vie (profils de naissance et cache des analyses).
L'URL provient de `DATABASE_URL` (schéma `postgres://` accepté), avec une base SQLite locale par
défaut.
"""

from __future__ import annotations

import os
import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import create_engine, pool

from alembic import context  # type: ignore[attr-defined]

# Allow importing project modules when running via Alembic CLI
_root = Path(__file__).resolve().parent.parent
for p in (_root, Path.cwd()):
    if str(p) not in sys.path:
        sys.path.append(str(p))

from backend.infra.repo.models import Base  # noqa: E402

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

DEFAULT_URL = "sqlite:///./life_archive.db"


def _database_url() -> str:
    url = os.getenv("DATABASE_URL") or DEFAULT_URL
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def run_migrations_offline() -> None:
    """Génère le SQL des migrations sans connexion (bindings littéraux)."""
    context.configure(url=_database_url(), target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Applique les migrations sur une connexion active."""
    connectable = create_engine(_database_url(), poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
