"""
Configuration de l'environnement Alembic pour les migrations de base de données.

Ce module configure Alembic pour gérer les migrations du catalogue, en modes offline et online.
L'URL est lue dans `DATABASE_URL` (driver async, ex: `sqlite+aiosqlite`, `postgresql+asyncpg`);
le mode online s'exécute sur un moteur asynchrone.
"""

from __future__ import annotations

import asyncio
import os
import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context  # type: ignore[attr-defined]

# Allow importing project modules when running via Alembic CLI
_this = Path(__file__).resolve()
for p in (_this.parent.parent, Path.cwd()):
    s = str(p)
    if s and s not in sys.path:
        sys.path.append(s)

from catalog.infra.repo.db import DEFAULT_DATABASE_URL  # noqa: E402
from catalog.infra.repo.models import Base  # noqa: E402

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def run_migrations_offline() -> None:
    """
    Exécute les migrations Alembic en mode offline.

    Produit le SQL sans connexion à la base de données, avec des bindings littéraux.
    """
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=_database_url().startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """
    Exécute les migrations Alembic en mode online.

    Ouvre une connexion asynchrone et délègue l'exécution des migrations au mode synchrone
    d'Alembic via `run_sync`.
    """
    connectable = create_async_engine(_database_url(), poolclass=pool.NullPool)
    async with connectable.connect() as connection:
        await connection.run_sync(_run_sync_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
