"""
Entités du domaine catalogue (POPO).

Ce module définit la série (entité principale) et ses enfants possédés: titre (1:1 obligatoire),
couvertures (1:n optionnelles) et fichier binaire (1:1 optionnel).
"""

# ============================================================
# Module : catalog/domain/entities.py
# Objet  : Modèle de domaine Series/Title/Cover/SeriesFile.
# ============================================================

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


class SeriesKind(str, Enum):
    """Support de diffusion d'une série."""

    STREAM = "STREAM"
    TV = "TV"
    DVD = "DVD"


@dataclass
class Title:
    """Titre d'une série; cycle de vie lié à sa série."""

    title: str
    subtitle: str | None = None
    id: int | None = None


@dataclass
class Cover:
    """Couverture (image) rattachée à une série."""

    caption: str
    content_type: str
    id: int | None = None


@dataclass
class SeriesFile:
    """Fichier binaire d'une série (au plus un par série)."""

    data: bytes
    filename: str
    mimetype: str | None = None
    series_id: int | None = None
    id: int | None = None


@dataclass
class Series:
    """
    Série du catalogue (objet domaine).

    Attributs
    - id: identifiant généré par la base, immuable.
    - version: numéro de version (0 à la création, +1 par mise à jour).
    - serial_number: clé naturelle (unique).
    - rating: note 0..5.
    - kind: STREAM | TV | DVD.
    - price / discount: décimaux à virgule fixe (jamais de float).
    - keywords: liste de tags en majuscules, jamais None côté service.
    - title: titre (toujours chargé en lecture).
    - covers: couvertures, None si non chargées.

    Les champs laissés à None lors d'une mise à jour sont conservés en base.
    """

    serial_number: str | None = None
    rating: int | None = None
    kind: SeriesKind | None = None
    price: Decimal | None = None
    discount: Decimal | None = None
    has_trailer: bool | None = None
    release_date: date | None = None
    homepage: str | None = None
    keywords: list[str] | None = field(default=None)
    title: Title | None = None
    covers: list[Cover] | None = None
    id: int | None = None
    version: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# Attributs scalaires d'une série, dans l'ordre des colonnes
SERIES_ATTRIBUTES: tuple[str, ...] = (
    "id",
    "version",
    "serial_number",
    "rating",
    "kind",
    "price",
    "discount",
    "has_trailer",
    "release_date",
    "homepage",
    "keywords",
    "created_at",
    "updated_at",
)

# Attributs modifiables par un appelant lors d'un update (merge)
UPDATABLE_ATTRIBUTES: tuple[str, ...] = (
    "serial_number",
    "rating",
    "kind",
    "price",
    "discount",
    "has_trailer",
    "release_date",
    "homepage",
    "keywords",
)
