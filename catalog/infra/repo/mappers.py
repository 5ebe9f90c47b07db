"""Conversions entre lignes ORM et objets du domaine.

Les relations ne sont lues que si elles ont été chargées par une jointure explicite: les
couvertures ne sont converties que sur demande (`with_covers`).
"""

from __future__ import annotations

from catalog.domain.criteria import normalize_keywords
from catalog.domain.entities import Cover, Series, SeriesFile, Title

from .models import CoverORM, SeriesFileORM, SeriesORM, TitleORM


def title_to_domain(row: TitleORM) -> Title:
    return Title(id=row.id, title=row.title, subtitle=row.subtitle)


def cover_to_domain(row: CoverORM) -> Cover:
    return Cover(id=row.id, caption=row.caption, content_type=row.content_type)


def file_to_domain(row: SeriesFileORM) -> SeriesFile:
    return SeriesFile(
        id=row.id,
        series_id=row.series_id,
        data=row.data,
        filename=row.filename,
        mimetype=row.mimetype,
    )


def series_to_domain(row: SeriesORM, with_covers: bool = False) -> Series:
    """Convertit une série chargée avec son titre; `keywords` vaut [] si absent en base."""
    return Series(
        id=row.id,
        version=row.version,
        serial_number=row.serial_number,
        rating=row.rating,
        kind=row.kind,
        price=row.price,
        discount=row.discount,
        has_trailer=row.has_trailer,
        release_date=row.release_date,
        homepage=row.homepage,
        keywords=list(row.keywords or []),
        title=title_to_domain(row.title) if row.title is not None else None,
        covers=[cover_to_domain(c) for c in row.covers] if with_covers else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def series_to_row(series: Series) -> SeriesORM:
    """Construit la ligne `series` (sans enfants) pour une insertion."""
    return SeriesORM(
        serial_number=series.serial_number,
        rating=series.rating,
        kind=series.kind,
        price=series.price,
        discount=series.discount,
        has_trailer=bool(series.has_trailer),
        release_date=series.release_date,
        homepage=series.homepage,
        keywords=normalize_keywords(series.keywords),
    )
