"""Dépendances partagées pour les routes de l'API.

But du module
-------------
- Centraliser l'accès aux instances nécessaires aux endpoints (services, configuration).
- Les instances vivent dans le `Container` attaché à `app.state` par `create_app`, ce qui permet
  aux tests de monter l'application sur une base temporaire sans modifier les routes.
"""

from fastapi import Request

from catalog.core.container import Container
from catalog.core.settings import Settings
from catalog.services.read_service import SeriesReadService
from catalog.services.write_service import SeriesWriteService


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_settings(request: Request) -> Settings:
    return get_container(request).settings


def get_read_service(request: Request) -> SeriesReadService:
    return get_container(request).read_service


def get_write_service(request: Request) -> SeriesWriteService:
    return get_container(request).write_service
