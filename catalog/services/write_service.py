# ============================================================
# Module : catalog/services/write_service.py
# Objet  : Écriture des séries (création, mise à jour, suppression, fichier).
# Notes  : concurrence optimiste; enfants écrits/supprimés explicitement.
# ============================================================
"""
Service d'écriture du catalogue.

Cycle de vie d'une série, porté par son numéro de version:
`inexistante -> v0 (créée) -> v1 -> v2 -> ... -> supprimée`.

Règles:
- création: unicité du numéro de série, série + titre + couvertures dans une transaction,
  notification envoyée après commit (fire-and-forget);
- mise à jour: jeton de version `"N"` obligatoire, refus d'une version antérieure à la version
  stockée; la nouvelle version est produite par la colonne de version du mapping;
- suppression: idempotente; titre, couvertures et fichier supprimés avant la série, dans une
  seule transaction;
- fichier: remplacement (au plus un fichier par série).
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import structlog
from sqlalchemy import delete, exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from catalog.app.metrics import CATALOG_OPERATIONS
from catalog.domain.criteria import normalize_keywords
from catalog.domain.entities import UPDATABLE_ATTRIBUTES, Series, SeriesFile
from catalog.domain.errors import (
    AlreadyExists,
    InvalidVersion,
    NotFound,
    OutdatedVersion,
)
from catalog.infra.mail import Notifier
from catalog.infra.ops.post_commit import register_action_after_commit
from catalog.infra.repo.db import session_scope
from catalog.infra.repo.mappers import file_to_domain, series_to_row
from catalog.infra.repo.models import CoverORM, SeriesFileORM, SeriesORM, TitleORM
from catalog.services.read_service import SeriesReadService

# Jeton de version: entier décimal entre guillemets (convention ETag), ex: "3"
VERSION_PATTERN = re.compile(r'"(\d{1,9})"')


def parse_version(token: str | None) -> int:
    """Extrait le numéro de version d'un jeton `"N"`; `InvalidVersion` sinon."""
    match = VERSION_PATTERN.fullmatch(token.strip()) if isinstance(token, str) else None
    if match is None:
        raise InvalidVersion(token)
    return int(match.group(1))


class SeriesWriteService:
    """Service d'écriture des séries (async, concurrence optimiste, sans cascade implicite)."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        read_service: SeriesReadService,
        notifier: Notifier,
        logger=None,
    ) -> None:
        """Initialise le service.

        Paramètres:
        - session_factory: factory de sessions asynchrones.
        - read_service: service de lecture (vérifications avant écriture).
        - notifier: planificateur des notifications post-commit.
        - logger: logger structlog injecté (défaut: logger du module).
        """
        self._sessions = session_factory
        self._read = read_service
        self._notifier = notifier
        self._log = logger or structlog.get_logger(__name__)

    def _bind(self, op: str, **context: Any):
        return self._log.bind(op=op, call_id=uuid4().hex[:12], **context)

    # ------------------------------------------------------------
    # create
    # ------------------------------------------------------------

    async def create(self, series: Series) -> int:
        """Crée la série avec son titre et ses couvertures; retourne l'id généré.

        Lève `AlreadyExists` si le numéro de série est déjà utilisé.
        """
        log = self._bind("create", serial_number=series.serial_number)
        if series.title is None:
            raise ValueError("a series is created with its title")

        async with session_scope(self._sessions) as session:
            if await self._serial_number_exists(session, series.serial_number):
                CATALOG_OPERATIONS.labels("create", "already_exists").inc()
                log.debug("serial_number_exists")
                raise AlreadyExists(series.serial_number)

            row = series_to_row(series)
            session.add(row)
            try:
                await session.flush()
            except IntegrityError as err:
                # création concurrente du même numéro entre la vérification et l'INSERT
                raise AlreadyExists(series.serial_number) from err

            session.add(
                TitleORM(
                    series_id=row.id,
                    title=series.title.title,
                    subtitle=series.title.subtitle,
                )
            )
            for cover in series.covers or []:
                session.add(
                    CoverORM(
                        series_id=row.id,
                        caption=cover.caption,
                        content_type=cover.content_type,
                    )
                )
            await session.flush()
            series_id = row.id
            subject, body = self._creation_mail(series_id, series)
            register_action_after_commit(session, self._notifier.notify, subject, body)

        CATALOG_OPERATIONS.labels("create", "ok").inc()
        log.info("series_created", series_id=series_id)
        return series_id

    async def _serial_number_exists(self, session: AsyncSession, serial_number: str | None) -> bool:
        stmt = select(exists().where(SeriesORM.serial_number == serial_number))
        return bool((await session.execute(stmt)).scalar())

    @staticmethod
    def _creation_mail(series_id: int, series: Series) -> tuple[str, str]:
        title = series.title.title if series.title else "N/A"
        return (
            f"New series {series_id}",
            f"The series titled <strong>{title}</strong> has been created",
        )

    # ------------------------------------------------------------
    # update
    # ------------------------------------------------------------

    async def update(self, series_id: int, series: Series, version: str | None) -> int:
        """Met à jour la série et retourne le nouveau numéro de version.

        Erreurs:
        - `InvalidVersion`: jeton absent ou mal formé;
        - `NotFound`: aucune série pour l'id;
        - `OutdatedVersion`: version fournie antérieure à la version stockée;
        - `AlreadyExists`: numéro de série déjà utilisé par une autre série.

        Une version fournie supérieure à la version stockée est acceptée.
        """
        log = self._bind("update", series_id=series_id, version=version)
        try:
            supplied = parse_version(version)
        except InvalidVersion:
            CATALOG_OPERATIONS.labels("update", "invalid_version").inc()
            log.debug("invalid_version_token")
            raise

        current = await self._read.find_by_id(series_id)
        self._check_version(supplied, current.version, log)

        try:
            async with session_scope(self._sessions) as session:
                row = await session.get(SeriesORM, series_id)
                if row is None:
                    raise NotFound(f"No series with id {series_id}", {"id": series_id})
                # la ligne a pu avancer depuis la lecture ci-dessus
                self._check_version(supplied, row.version, log)
                self._merge(row, series)
                try:
                    await session.flush()
                except IntegrityError as err:
                    # numéro de série déjà porté par une autre série
                    raise AlreadyExists(series.serial_number) from err
                new_version = row.version
        except StaleDataError as err:
            CATALOG_OPERATIONS.labels("update", "outdated_version").inc()
            log.debug("concurrent_update_detected")
            raise OutdatedVersion(supplied) from err

        CATALOG_OPERATIONS.labels("update", "ok").inc()
        log.debug("series_updated", new_version=new_version)
        return new_version

    @staticmethod
    def _check_version(supplied: int, stored: int | None, log) -> None:
        if stored is not None and supplied < stored:
            CATALOG_OPERATIONS.labels("update", "outdated_version").inc()
            log.debug("outdated_version", stored=stored)
            raise OutdatedVersion(supplied, stored)

    @staticmethod
    def _merge(row: SeriesORM, series: Series) -> None:
        """Recopie les champs renseignés du payload; les autres gardent la valeur stockée."""
        for name in UPDATABLE_ATTRIBUTES:
            value = getattr(series, name)
            if value is None:
                continue
            setattr(row, name, normalize_keywords(value) if name == "keywords" else value)
        # garantit l'UPDATE (et donc l'incrément de version) même sans changement
        row.updated_at = datetime.now(UTC)

    # ------------------------------------------------------------
    # delete
    # ------------------------------------------------------------

    async def delete(self, series_id: int) -> bool:
        """Supprime la série et ses enfants; False si elle n'existait pas (idempotent)."""
        log = self._bind("delete", series_id=series_id)
        try:
            await self._read.find_by_id(series_id, include_covers=True)
        except NotFound:
            CATALOG_OPERATIONS.labels("delete", "noop").inc()
            log.debug("delete_noop")
            return False

        # Ordre imposé par les clés étrangères: enfants d'abord, série en dernier
        async with session_scope(self._sessions) as session:
            await session.execute(delete(TitleORM).where(TitleORM.series_id == series_id))
            await session.execute(delete(CoverORM).where(CoverORM.series_id == series_id))
            await session.execute(
                delete(SeriesFileORM).where(SeriesFileORM.series_id == series_id)
            )
            result = await session.execute(delete(SeriesORM).where(SeriesORM.id == series_id))
            deleted = (result.rowcount or 0) > 0

        CATALOG_OPERATIONS.labels("delete", "ok" if deleted else "noop").inc()
        log.debug("delete_result", deleted=deleted)
        return deleted

    # ------------------------------------------------------------
    # add_file
    # ------------------------------------------------------------

    async def add_file(
        self,
        series_id: int,
        data: bytes,
        filename: str,
        mimetype: str | None,
    ) -> SeriesFile:
        """Associe un fichier binaire à la série, en remplaçant l'éventuel fichier existant.

        Lève `NotFound` si la série n'existe pas.
        """
        log = self._bind("add_file", series_id=series_id, filename=filename, mimetype=mimetype)
        await self._read.find_by_id(series_id)

        async with session_scope(self._sessions) as session:
            await session.execute(
                delete(SeriesFileORM).where(SeriesFileORM.series_id == series_id)
            )
            row = SeriesFileORM(
                series_id=series_id,
                data=data,
                filename=filename,
                mimetype=mimetype,
            )
            session.add(row)
            await session.flush()
            record = file_to_domain(row)

        CATALOG_OPERATIONS.labels("add_file", "ok").inc()
        log.debug("file_stored", file_id=record.id, size=len(data))
        return record
