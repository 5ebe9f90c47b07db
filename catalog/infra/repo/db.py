"""DB utilities for SQLAlchemy async sessions/engine.

Uses `DATABASE_URL` env var or falls back to `sqlite+aiosqlite:///./catalog.db`.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .models import Base

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./catalog.db"


def get_engine(url: str | None = None, echo: bool = False) -> AsyncEngine:
    """Crée un moteur SQLAlchemy asynchrone à partir de l'URL de base de données."""
    db_url = url or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL
    connect_args = {}
    if db_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_async_engine(db_url, echo=echo, connect_args=connect_args)


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Crée une factory de sessions asynchrones."""
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Contexte de session avec gestion automatique de la transaction.

    Commit en sortie normale, rollback sur exception (l'exception est propagée), fermeture dans
    tous les cas. Une session ne survit jamais à sa transaction.
    """
    session = factory()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def init_models(engine: AsyncEngine) -> None:
    """Crée les tables manquantes (dev/tests; Alembic en déploiement)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
