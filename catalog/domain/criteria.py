"""
Critères de recherche et pagination du catalogue.

Objectif du module
------------------
- Définir l'ensemble fermé des clés de recherche reconnues (`RECOGNIZED_KEYS`).
- Convertir un dict de critères faiblement typé (ex: query string) en une liste ordonnée de
  filtres typés (variantes `Substring`, `Minimum`, `Maximum`, `Contains`, `ContainsExcluding`,
  `Equals`), chacune portant sa valeur déjà validée.
- Décrire la pagination (`Pageable`) et le résultat paginé (`Slice`).

L'ordre des filtres est fixe: titre, note minimale, prix maximal, raccourcis de mots-clés, puis
égalités sur les clés restantes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_CEILING, Decimal, InvalidOperation
from typing import Any, Union

from catalog.core.constants import (
    DEFAULT_PAGE_NUMBER,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    UNPAGED_SIZE,
)
from catalog.domain.entities import SERIES_ATTRIBUTES, Series, SeriesKind

TITLE_KEY = "title"
RATING_KEY = "rating"
PRICE_KEY = "price"
KIND_KEY = "kind"

# Raccourcis booléens -> tag en majuscules, dans l'ordre d'évaluation
KEYWORD_SHORTCUTS: tuple[tuple[str, str], ...] = (
    ("javascript", "JAVASCRIPT"),
    ("typescript", "TYPESCRIPT"),
    ("java", "JAVA"),
    ("python", "PYTHON"),
)

RECOGNIZED_KEYS: frozenset[str] = frozenset(
    (*SERIES_ATTRIBUTES, TITLE_KEY, *(key for key, _ in KEYWORD_SHORTCUTS))
)


# ------------------------------------------------------------
# Variantes de filtres
# ------------------------------------------------------------


@dataclass(frozen=True)
class Substring:
    """Sous-chaîne du titre, insensible à la casse."""

    value: str


@dataclass(frozen=True)
class Minimum:
    """Borne inférieure inclusive (`field >= value`)."""

    field: str
    value: int | Decimal


@dataclass(frozen=True)
class Maximum:
    """Borne supérieure inclusive (`field <= value`)."""

    field: str
    value: int | Decimal


@dataclass(frozen=True)
class Contains:
    """Le tag est présent dans les mots-clés."""

    tag: str


@dataclass(frozen=True)
class ContainsExcluding:
    """Le tag est présent une fois retirés les tags plus longs qui le contiennent.

    Ex: `JAVA` est testé après suppression de `JAVASCRIPT`, pour qu'une série taguée uniquement
    `JAVASCRIPT` ne ressorte pas.
    """

    tag: str
    excluded: tuple[str, ...]


@dataclass(frozen=True)
class Equals:
    """Égalité stricte sur un attribut de la série."""

    field: str
    value: Any


Filter = Union[Substring, Minimum, Maximum, Contains, ContainsExcluding, Equals]


# ------------------------------------------------------------
# Conversions de valeurs
# ------------------------------------------------------------


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("bool is not an int")
    if isinstance(value, int):
        return value
    return int(str(value).strip())


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError("bool is not a decimal")
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, TypeError) as err:
        raise ValueError(f"not a decimal: {value!r}") from err
    if not number.is_finite():
        raise ValueError(f"not a finite decimal: {value!r}")
    return number


def _to_rating(value: Any) -> int:
    # note entière: `rating >= 4.5` équivaut à `rating >= 5`
    return int(_to_decimal(value).to_integral_value(rounding=ROUND_CEILING))


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "1"):
        return True
    if text in ("false", "0"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).strip())


def _to_kind(value: Any) -> SeriesKind:
    return value if isinstance(value, SeriesKind) else SeriesKind(str(value))


def _to_str(value: Any) -> str:
    return str(value)


def normalize_keywords(value: Any) -> list[str]:
    """Normalise une liste de tags (ou une chaîne CSV) en tags majuscules non vides."""
    if value is None:
        return []
    items: Iterable[Any] = [value] if isinstance(value, str) else value
    # la virgule est le séparateur de stockage: elle ne peut pas appartenir à un tag
    tags = (part.strip().upper() for item in items for part in str(item).split(","))
    return [tag for tag in tags if tag]


_COERCERS: dict[str, Callable[[Any], Any]] = {
    "id": _to_int,
    "version": _to_int,
    "serial_number": _to_str,
    "rating": _to_rating,
    "kind": _to_kind,
    "price": _to_decimal,
    "discount": _to_decimal,
    "has_trailer": _to_bool,
    "release_date": _to_date,
    "homepage": _to_str,
    "keywords": normalize_keywords,
    "created_at": _to_datetime,
    "updated_at": _to_datetime,
}


def _coerce(key: str, value: Any) -> Any | None:
    """Convertit une valeur de critère; None si elle est inexploitable (filtre ignoré)."""
    try:
        return _COERCERS[key](value)
    except (ValueError, TypeError):
        return None


def _is_enabled(value: Any) -> bool:
    """Un raccourci est actif pour `True` ou la chaîne `"true"` (casse ignorée)."""
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() == "true"


def _excluded_tags(tag: str) -> tuple[str, ...]:
    """Tags des autres raccourcis dont le nom contient `tag` (ex: JAVASCRIPT pour JAVA)."""
    return tuple(other for _, other in KEYWORD_SHORTCUTS if other != tag and tag in other)


# ------------------------------------------------------------
# Validation et analyse
# ------------------------------------------------------------


def unknown_keys(criteria: Mapping[str, Any]) -> list[str]:
    """Retourne les clés non reconnues, dans l'ordre d'apparition."""
    return [key for key in criteria if key not in RECOGNIZED_KEYS]


def has_valid_kind(criteria: Mapping[str, Any]) -> bool:
    """Vrai si `kind` est absent ou appartient à l'énumération STREAM | TV | DVD."""
    kind = criteria.get(KIND_KEY)
    if kind is None:
        return True
    if isinstance(kind, SeriesKind):
        return True
    return kind in {member.value for member in SeriesKind}


def parse_criteria(criteria: Mapping[str, Any] | None) -> tuple[Filter, ...]:
    """Construit la liste ordonnée des filtres à partir des critères bruts.

    Les clés doivent avoir été validées au préalable (`unknown_keys`, `has_valid_kind`). Les
    valeurs None sont ignorées, comme les valeurs non convertibles.
    """
    if not criteria:
        return ()
    remaining = {key: value for key, value in criteria.items() if value is not None}
    filters: list[Filter] = []

    title = remaining.pop(TITLE_KEY, None)
    if isinstance(title, str):
        filters.append(Substring(title))

    if RATING_KEY in remaining:
        rating = _coerce(RATING_KEY, remaining.pop(RATING_KEY))
        if rating is not None:
            filters.append(Minimum(RATING_KEY, rating))

    if PRICE_KEY in remaining:
        price = _coerce(PRICE_KEY, remaining.pop(PRICE_KEY))
        if price is not None:
            filters.append(Maximum(PRICE_KEY, price))

    for key, tag in KEYWORD_SHORTCUTS:
        if not _is_enabled(remaining.pop(key, None)):
            continue
        excluded = _excluded_tags(tag)
        filters.append(ContainsExcluding(tag, excluded) if excluded else Contains(tag))

    for key, value in remaining.items():
        coerced = _coerce(key, value)
        if coerced is not None:
            filters.append(Equals(key, coerced))

    return tuple(filters)


# ------------------------------------------------------------
# Pagination
# ------------------------------------------------------------


@dataclass(frozen=True)
class Pageable:
    """Numéro de page (>= 0) et taille (>= 0); taille 0 = requête non paginée."""

    number: int = DEFAULT_PAGE_NUMBER
    size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.number < 0 or self.size < 0:
            raise ValueError(f"invalid pageable: number={self.number}, size={self.size}")

    @property
    def unpaged(self) -> bool:
        return self.size == UNPAGED_SIZE

    @property
    def offset(self) -> int:
        return self.number * self.size


UNPAGED = Pageable(number=DEFAULT_PAGE_NUMBER, size=UNPAGED_SIZE)


def create_pageable(
    number: Any = None,
    size: Any = None,
    *,
    default_size: int = DEFAULT_PAGE_SIZE,
    max_size: int = MAX_PAGE_SIZE,
) -> Pageable:
    """Construit un `Pageable` depuis des valeurs brutes (query string).

    - numéro absent/invalide/négatif -> 0
    - taille absente/invalide ou hors de `1..max_size` -> `default_size`
    """
    try:
        page_number = max(_to_int(number), 0) if number is not None else DEFAULT_PAGE_NUMBER
    except (ValueError, TypeError):
        page_number = DEFAULT_PAGE_NUMBER
    try:
        page_size = _to_int(size) if size is not None else default_size
    except (ValueError, TypeError):
        page_size = default_size
    if page_size <= 0 or page_size > max_size:
        page_size = default_size
    return Pageable(number=page_number, size=page_size)


@dataclass
class Slice:
    """Tranche de résultats: contenu de la page et nombre total d'éléments."""

    content: list[Series] = field(default_factory=list)
    total_elements: int = 0
