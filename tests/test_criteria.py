"""Tests pour l'analyse des critères de recherche et la pagination.

Ce module vérifie l'ordre des filtres, la conversion des valeurs, les raccourcis de mots-clés et
les règles de repli de `create_pageable`.
"""

from datetime import date
from decimal import Decimal

import pytest

from catalog.domain.criteria import (
    UNPAGED,
    Contains,
    ContainsExcluding,
    Equals,
    Maximum,
    Minimum,
    Pageable,
    Substring,
    create_pageable,
    has_valid_kind,
    normalize_keywords,
    parse_criteria,
    unknown_keys,
)
from catalog.domain.entities import SeriesKind

PAGE_SIZE_DEFAULT = 5
PAGE_SIZE_MAX = 100
PAGE_SIZE_CUSTOM = 20


def test_parse_criteria_empty() -> None:
    """Aucun critère: aucun filtre."""
    assert parse_criteria(None) == ()
    assert parse_criteria({}) == ()


def test_parse_criteria_order_and_kinds() -> None:
    """Titre, note, prix, raccourcis puis égalités, quel que soit l'ordre d'entrée."""
    filters = parse_criteria(
        {
            "kind": "TV",
            "python": "true",
            "price": "20.50",
            "rating": "3",
            "title": "a",
        }
    )
    assert filters == (
        Substring("a"),
        Minimum("rating", 3),
        Maximum("price", Decimal("20.50")),
        Contains("PYTHON"),
        Equals("kind", SeriesKind.TV),
    )


def test_java_shortcut_excludes_javascript() -> None:
    """Le raccourci `java` ignore les séries seulement taguées JAVASCRIPT."""
    assert parse_criteria({"java": True}) == (ContainsExcluding("JAVA", ("JAVASCRIPT",)),)
    assert parse_criteria({"javascript": True}) == (Contains("JAVASCRIPT"),)


def test_shortcut_disabled_values() -> None:
    """Un raccourci n'est actif que pour True ou "true"."""
    assert parse_criteria({"python": "false"}) == ()
    assert parse_criteria({"python": "yes"}) == ()
    assert parse_criteria({"python": "TRUE"}) == (Contains("PYTHON"),)


def test_unparseable_values_are_ignored() -> None:
    """Une valeur non convertible n'ajoute aucun filtre."""
    assert parse_criteria({"rating": "abc", "release_date": "not-a-date"}) == ()
    assert parse_criteria({"has_trailer": "1", "release_date": "2022-02-28"}) == (
        Equals("has_trailer", True),
        Equals("release_date", date(2022, 2, 28)),
    )


def test_fractional_rating_rounds_up() -> None:
    """La note est entière: un minimum fractionnaire est arrondi au supérieur."""
    assert parse_criteria({"rating": "4.5"}) == (Minimum("rating", 5),)
    assert parse_criteria({"rating": 4.5}) == (Minimum("rating", 5),)
    assert parse_criteria({"rating": "4.0"}) == (Minimum("rating", 4),)


def test_title_must_be_text() -> None:
    """Un titre non textuel est ignoré."""
    assert parse_criteria({"title": 42}) == ()


def test_keywords_equality_is_normalized() -> None:
    """Les mots-clés d'égalité sont normalisés en majuscules."""
    assert parse_criteria({"keywords": "java, python"}) == (
        Equals("keywords", ["JAVA", "PYTHON"]),
    )
    assert normalize_keywords(None) == []
    assert normalize_keywords(["  ", "ts"]) == ["TS"]
    # la virgule sépare les tags stockés: un tag qui en contient une est découpé
    assert normalize_keywords(["JAVA, python"]) == ["JAVA", "PYTHON"]


def test_unknown_keys_and_kind() -> None:
    """Clés inconnues listées dans l'ordre; `kind` validé contre l'énumération."""
    assert unknown_keys({"title": "x", "foo": 1, "bar": 2}) == ["foo", "bar"]
    assert unknown_keys({"rating": 1, "javascript": True}) == []
    assert has_valid_kind({"kind": "DVD"})
    assert has_valid_kind({})
    assert not has_valid_kind({"kind": "BLURAY"})


def test_pageable_arithmetic() -> None:
    """Offset = numéro * taille; taille 0 = non paginé."""
    page = Pageable(number=2, size=PAGE_SIZE_DEFAULT)
    assert page.offset == 2 * PAGE_SIZE_DEFAULT
    assert not page.unpaged
    assert UNPAGED.unpaged
    with pytest.raises(ValueError):
        Pageable(number=-1)


@pytest.mark.parametrize(
    ("number", "size", "expected"),
    [
        (None, None, (0, PAGE_SIZE_DEFAULT)),
        ("3", str(PAGE_SIZE_CUSTOM), (3, PAGE_SIZE_CUSTOM)),
        ("-2", "0", (0, PAGE_SIZE_DEFAULT)),
        ("x", "y", (0, PAGE_SIZE_DEFAULT)),
        (1, PAGE_SIZE_MAX + 1, (1, PAGE_SIZE_DEFAULT)),
        (0, PAGE_SIZE_MAX, (0, PAGE_SIZE_MAX)),
    ],
)
def test_create_pageable(number, size, expected) -> None:
    """Les valeurs invalides retombent sur les valeurs par défaut."""
    page = create_pageable(number, size)
    assert (page.number, page.size) == expected
