# ============================================================
# Module : catalog/services/read_service.py
# Objet  : Lecture des séries (par id, par critères, fichier binaire).
# ============================================================
"""
Service de lecture du catalogue.

Responsabilités:
- Rechercher une série par id (titre toujours chargé, couvertures sur demande).
- Valider les critères de recherche (clés reconnues, énumération `kind`) avant toute requête.
- Exécuter la requête paginée puis le comptage sur le même prédicat, dans la même session.
- Normaliser `keywords` (jamais None) dans les objets retournés.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import uuid4

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catalog.app.metrics import CATALOG_OPERATIONS
from catalog.domain.criteria import (
    KIND_KEY,
    Pageable,
    Slice,
    has_valid_kind,
    parse_criteria,
    unknown_keys,
)
from catalog.domain.entities import Series, SeriesFile
from catalog.domain.errors import InvalidCriteria, NotFound
from catalog.infra.repo.mappers import file_to_domain, series_to_domain
from catalog.infra.repo.models import SeriesFileORM
from catalog.infra.repo.query_builder import build, build_count, build_id


class SeriesReadService:
    """Service de lecture des séries adossé à une base relationnelle (async).

    Chaque opération ouvre sa propre session; aucune transaction explicite n'est nécessaire en
    lecture.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], logger=None) -> None:
        """Initialise le service.

        Paramètres:
        - session_factory: factory de sessions asynchrones.
        - logger: logger structlog injecté (défaut: logger du module).
        """
        self._sessions = session_factory
        self._log = logger or structlog.get_logger(__name__)

    def _bind(self, op: str, **context: Any):
        return self._log.bind(op=op, call_id=uuid4().hex[:12], **context)

    async def find_by_id(self, series_id: int, include_covers: bool = False) -> Series:
        """Retourne la série `series_id`.

        Lève `NotFound` si aucune ligne ne correspond.
        """
        log = self._bind("find_by_id", series_id=series_id, include_covers=include_covers)
        async with self._sessions() as session:
            result = await session.execute(build_id(series_id, with_covers=include_covers))
            row = result.unique().scalars().first()
            series = series_to_domain(row, with_covers=include_covers) if row else None
        if series is None:
            CATALOG_OPERATIONS.labels("find_by_id", "not_found").inc()
            log.debug("series_not_found")
            raise NotFound(f"No series with id {series_id}", {"id": series_id})
        CATALOG_OPERATIONS.labels("find_by_id", "ok").inc()
        log.debug("series_found", version=series.version, title=series.title)
        return series

    async def find(
        self,
        criteria: Mapping[str, Any] | None = None,
        pageable: Pageable | None = None,
    ) -> Slice:
        """Recherche paginée des séries.

        Démarche:
        - critères absents ou vides: toutes les séries;
        - clé inconnue ou `kind` invalide: `InvalidCriteria`, aucune requête exécutée;
        - aucun résultat: `NotFound` avec les critères et la page demandée;
        - `total_elements`: requête COUNT sur le même prédicat, non paginée.
        """
        pageable = pageable or Pageable()
        criteria = dict(criteria or {})
        log = self._bind("find", criteria=criteria, page=pageable.number, size=pageable.size)
        if criteria:
            self._check_criteria(criteria, log)

        filters = parse_criteria(criteria)
        stmt = build(filters, pageable)
        log.debug("find_query", filters=filters)
        async with self._sessions() as session:
            rows = (await session.execute(stmt)).scalars().all()
            if not rows:
                CATALOG_OPERATIONS.labels("find", "not_found").inc()
                log.debug("find_no_result")
                raise NotFound(
                    f"No series found for {criteria} on page {pageable.number}",
                    {"criteria": criteria, "page": pageable.number, "size": pageable.size},
                )
            total = (await session.execute(build_count(filters))).scalar_one()
            content = [series_to_domain(row) for row in rows]

        CATALOG_OPERATIONS.labels("find", "ok").inc()
        log.debug("find_result", count=len(content), total_elements=total)
        return Slice(content=content, total_elements=total)

    async def find_file_by_series_id(self, series_id: int) -> SeriesFile | None:
        """Retourne le fichier binaire de la série, ou None."""
        log = self._bind("find_file", series_id=series_id)
        stmt = select(SeriesFileORM).where(SeriesFileORM.series_id == series_id)
        async with self._sessions() as session:
            row = (await session.execute(stmt)).scalars().first()
            record = file_to_domain(row) if row else None
        if record is None:
            log.debug("file_not_found")
            return None
        log.debug("file_found", filename=record.filename)
        return record

    def _check_criteria(self, criteria: Mapping[str, Any], log) -> None:
        unknown = unknown_keys(criteria)
        if unknown:
            CATALOG_OPERATIONS.labels("find", "invalid_criteria").inc()
            log.debug("invalid_criteria_keys", keys=unknown)
            raise InvalidCriteria(
                f"Invalid search criteria: {', '.join(unknown)}", {"keys": unknown}
            )
        if not has_valid_kind(criteria):
            CATALOG_OPERATIONS.labels("find", "invalid_criteria").inc()
            log.debug("invalid_criteria_kind", kind=criteria.get(KIND_KEY))
            raise InvalidCriteria(
                f"Invalid kind: {criteria.get(KIND_KEY)}", {"kind": criteria.get(KIND_KEY)}
            )
