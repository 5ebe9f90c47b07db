"""
Conteneur d'injection de dépendances et configuration application.

Instancie les composants centraux (settings, moteur SQLAlchemy, factory de sessions, notifications,
services de lecture/écriture) et expose un singleton `container` utilisé par l'application.
Aucune connexion n'est ouverte à la construction: le moteur se connecte à la première requête.
"""

from __future__ import annotations

import structlog
from sqlalchemy.engine import make_url

from catalog.core.settings import Settings, get_settings
from catalog.infra.mail import Mailer, Notifier, build_mailer
from catalog.infra.repo.db import get_engine, get_session_factory, init_models
from catalog.services.read_service import SeriesReadService
from catalog.services.write_service import SeriesWriteService


class Container:
    def __init__(self, settings: Settings | None = None, mailer: Mailer | None = None):
        self.settings = settings or get_settings()
        self.engine = get_engine(self.settings.DATABASE_URL, echo=self.settings.DB_ECHO)
        self.session_factory = get_session_factory(self.engine)
        self.storage_backend = make_url(self.settings.DATABASE_URL).get_backend_name()

        self.mailer = mailer or build_mailer(self.settings)
        self.notifier = Notifier(self.mailer, logger=structlog.get_logger("catalog.mail"))
        self.read_service = SeriesReadService(
            self.session_factory, logger=structlog.get_logger("catalog.read")
        )
        self.write_service = SeriesWriteService(
            self.session_factory,
            self.read_service,
            self.notifier,
            logger=structlog.get_logger("catalog.write"),
        )

    async def startup(self) -> None:
        """Crée le schéma si `DB_CREATE_ALL` (dev/tests); Alembic sinon."""
        if self.settings.DB_CREATE_ALL:
            await init_models(self.engine)

    async def shutdown(self) -> None:
        """Attend les notifications en cours puis libère le pool de connexions."""
        await self.notifier.drain()
        await self.engine.dispose()


container = Container()
