"""
Endpoint de santé pour vérifier la disponibilité de l'API et de la base.

Expose `/health` pour signaler l'état général de l'application et du stockage.
"""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from catalog.api.deps import get_container
from catalog.core.container import Container

router = APIRouter(tags=["health"])
container_dep = Depends(get_container)
log = structlog.get_logger(__name__)


@router.get("/health")
async def health(container: Container = container_dep):
    """Vérifie la disponibilité de l'API et la connexion à la base."""
    database = "up"
    try:
        async with container.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError as err:
        log.warning("health_database_down", error=repr(err))
        database = "down"
    return {
        "status": "ok",
        "storage": container.storage_backend,
        "database": database,
    }
