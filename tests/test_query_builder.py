# ============================================================
# Tests : tests/test_query_builder.py
# Objet  : traduction des filtres en SQL et pagination (compilation SQLite).
# ============================================================
"""Tests pour la construction des requêtes de lecture.

Les requêtes sont compilées avec le dialecte SQLite sans être exécutées.
"""

from __future__ import annotations

import pytest
from sqlalchemy.dialects import sqlite

from catalog.domain.criteria import (
    Contains,
    ContainsExcluding,
    Equals,
    Maximum,
    Minimum,
    Pageable,
    Substring,
)
from catalog.infra.repo.query_builder import (
    build,
    build_count,
    build_id,
    fold_predicate,
    to_clause,
)


def _sql(element) -> str:
    """Compile une clause ou une requête en SQL littéral."""
    return str(
        element.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True})
    )


def test_substring_is_case_insensitive_like() -> None:
    sql = _sql(to_clause(Substring("Al")))
    assert "lower(title.title) LIKE" in sql
    assert "al" in sql.lower()


def test_bounds() -> None:
    assert _sql(to_clause(Minimum("rating", 3))) == "series.rating >= 3"
    assert _sql(to_clause(Maximum("rating", 4))) == "series.rating <= 4"


def test_contains_and_exclusion() -> None:
    """`JAVA` est recherché après suppression de `JAVASCRIPT`."""
    assert "LIKE" in _sql(to_clause(Contains("PYTHON")))
    sql = _sql(to_clause(ContainsExcluding("JAVA", ("JAVASCRIPT",))))
    assert "replace(series.keywords, 'JAVASCRIPT', '')" in sql
    assert "JAVA" in sql


def test_equals_keywords_empty_list() -> None:
    sql = _sql(to_clause(Equals("keywords", [])))
    assert "series.keywords IS NULL" in sql


def test_unknown_filter_type() -> None:
    with pytest.raises(TypeError):
        to_clause(object())


def test_fold_predicate_keeps_order() -> None:
    clauses = fold_predicate([Minimum("rating", 1), Substring("x")])
    assert len(clauses) == 2
    assert "rating" in _sql(clauses[0])
    assert "title.title" in _sql(clauses[1])


def test_build_paginates_and_orders() -> None:
    sql = _sql(build((Minimum("rating", 3),), Pageable(number=2, size=5)))
    assert "JOIN title ON series.id = title.series_id" in sql
    assert "ORDER BY series.id" in sql
    assert "LIMIT 5 OFFSET 10" in sql


def test_build_unpaged_and_count() -> None:
    assert "LIMIT" not in _sql(build(()))
    count_sql = _sql(build_count((Minimum("rating", 3),)))
    assert "count(series.id)" in count_sql
    assert "LIMIT" not in count_sql
    assert "series.rating >= 3" in count_sql


def test_build_id_with_covers() -> None:
    assert "cover" not in _sql(build_id(7))
    sql = _sql(build_id(7, with_covers=True))
    assert "LEFT OUTER JOIN cover" in sql
    assert "series.id = 7" in sql
