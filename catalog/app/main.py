"""
Application principale FastAPI.

Ce module assemble tous les composants de l'application : middlewares, routes, métriques,
gestion d'erreurs et cycle de vie du catalogue de séries.

Responsabilités du module:
- Initialiser le logging structuré
- Construire l'application FastAPI avec son titre/debug
- Ajouter les middlewares (request id, métriques Prometheus)
- Monter les routers (santé, séries, métriques)
- Créer le schéma au démarrage (dev/tests) et attendre les notifications à l'arrêt
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from catalog.api.errors import register_error_handlers
from catalog.api.routes_health import router as health_router
from catalog.api.routes_series import router as series_router
from catalog.app.metrics import PrometheusMiddleware, metrics_router
from catalog.core.container import Container, container
from catalog.core.logging import setup_logging
from catalog.middlewares.request_id import RequestIDMiddleware

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app_container: Container = app.state.container
    await app_container.startup()
    log.info("catalog_started", storage=app_container.storage_backend)
    try:
        yield
    finally:
        await app_container.shutdown()
        log.info("catalog_stopped")


def create_app(app_container: Container | None = None) -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Étapes:
    - Configure le logging structuré (structlog)
    - Attache le conteneur (settings, services) à `app.state`
    - Enregistre les handlers d'erreurs et les middlewares
    - Publie les routes de santé, du catalogue et des métriques
    """
    app_container = app_container or container
    settings = app_container.settings
    setup_logging(settings.LOG_LEVEL)
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG, lifespan=lifespan)
    app.state.container = app_container
    register_error_handlers(app)
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.include_router(health_router)
    app.include_router(series_router)
    app.include_router(metrics_router)
    return app


app = create_app()
