# ============================================================
# Module : catalog/infra/repo/query_builder.py
# Objet  : Construction des requêtes SELECT paramétrées sur les séries.
# Notes  : fonctions pures; aucune exécution ici (voir services/read_service.py).
# ============================================================
"""
Construction des requêtes de lecture des séries.

Les filtres (voir `catalog.domain.criteria`) sont repliés en un tuple immuable de clauses SQL
paramétrées, puis une seule étape construit la requête: jointure interne sur le titre, jointure
externe optionnelle sur les couvertures, pagination par OFFSET/LIMIT.
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import singledispatch

from sqlalchemy import ColumnElement, Select, String, func, or_, select, type_coerce
from sqlalchemy.orm import contains_eager

from catalog.domain.criteria import (
    RECOGNIZED_KEYS,
    UNPAGED,
    Contains,
    ContainsExcluding,
    Equals,
    Filter,
    Maximum,
    Minimum,
    Pageable,
    Substring,
)
from catalog.domain.entities import SERIES_ATTRIBUTES

from .models import SeriesORM, TitleORM

_COLUMNS = {name: getattr(SeriesORM, name) for name in SERIES_ATTRIBUTES}


def _keywords_text() -> ColumnElement[str]:
    # texte brut "TAG1,TAG2" (contourne la conversion liste <-> texte de KeywordList)
    return type_coerce(SeriesORM.keywords, String)


@singledispatch
def to_clause(flt: Filter) -> ColumnElement[bool]:
    """Traduit un filtre en clause SQL paramétrée."""
    raise TypeError(f"unsupported filter: {flt!r}")


@to_clause.register
def _substring(flt: Substring) -> ColumnElement[bool]:
    return TitleORM.title.icontains(flt.value, autoescape=True)


@to_clause.register
def _minimum(flt: Minimum) -> ColumnElement[bool]:
    return _COLUMNS[flt.field] >= flt.value


@to_clause.register
def _maximum(flt: Maximum) -> ColumnElement[bool]:
    return _COLUMNS[flt.field] <= flt.value


@to_clause.register
def _contains(flt: Contains) -> ColumnElement[bool]:
    return _keywords_text().contains(flt.tag, autoescape=True)


@to_clause.register
def _contains_excluding(flt: ContainsExcluding) -> ColumnElement[bool]:
    stripped = _keywords_text()
    for longer in flt.excluded:
        stripped = func.replace(stripped, longer, "", type_=String)
    return stripped.contains(flt.tag, autoescape=True)


@to_clause.register
def _equals(flt: Equals) -> ColumnElement[bool]:
    if flt.field != "keywords":
        return _COLUMNS[flt.field] == flt.value
    text = ",".join(flt.value)
    if not text:
        return or_(SeriesORM.keywords.is_(None), _keywords_text() == "")
    return _keywords_text() == text


def fold_predicate(filters: Iterable[Filter]) -> tuple[ColumnElement[bool], ...]:
    """Replie la liste ordonnée de filtres en clauses combinées par AND."""
    return tuple(to_clause(flt) for flt in filters)


def _with_title() -> Select:
    return select(SeriesORM).join(SeriesORM.title).options(contains_eager(SeriesORM.title))


def build_id(series_id: int, with_covers: bool = False) -> Select:
    """Requête d'une série par id: titre toujours joint, couvertures si demandées."""
    stmt = _with_title()
    if with_covers:
        stmt = stmt.outerjoin(SeriesORM.covers).options(contains_eager(SeriesORM.covers))
    return stmt.where(SeriesORM.id == series_id)


def build(filters: Iterable[Filter], pageable: Pageable = UNPAGED) -> Select:
    """Requête filtrée et paginée (taille 0: non paginée)."""
    stmt = _with_title()
    predicate = fold_predicate(filters)
    if predicate:
        stmt = stmt.where(*predicate)
    stmt = stmt.order_by(SeriesORM.id)
    if pageable.unpaged:
        return stmt
    return stmt.offset(pageable.offset).limit(pageable.size)


def build_count(filters: Iterable[Filter]) -> Select:
    """Nombre total de séries pour le même prédicat, sans pagination."""
    stmt = select(func.count(SeriesORM.id)).select_from(SeriesORM).join(SeriesORM.title)
    predicate = fold_predicate(filters)
    return stmt.where(*predicate) if predicate else stmt


__all__ = [
    "RECOGNIZED_KEYS",
    "build",
    "build_count",
    "build_id",
    "fold_predicate",
    "to_clause",
]
