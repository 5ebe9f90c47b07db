# ============================================================
# Tests : tests/test_write_service.py
# Objet  : création, concurrence optimiste, suppression, fichier, notification.
# ============================================================
"""Tests pour le service d'écriture des séries.

Chaque test dispose d'une base SQLite temporaire et d'un mailer factice (voir conftest).
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import func, select, update

import catalog.services.write_service as write_module
from catalog.domain.entities import Cover, Series
from catalog.domain.errors import AlreadyExists, InvalidVersion, NotFound, OutdatedVersion
from catalog.infra.mail import Notifier
from catalog.infra.repo.db import session_scope
from catalog.infra.repo.models import CoverORM, SeriesFileORM, SeriesORM, TitleORM
from catalog.services.write_service import SeriesWriteService, parse_version
from tests.fakes import FakeMailer, make_series

RATING_UPDATED = 5


async def _count(session_factory, model, series_id: int) -> int:
    column = model.id if model is SeriesORM else model.series_id
    async with session_factory() as session:
        stmt = select(func.count()).select_from(model).where(column == series_id)
        return (await session.execute(stmt)).scalar_one()


def _notifications(result: str) -> float:
    value = REGISTRY.get_sample_value("catalog_notifications_total", {"result": result})
    return value or 0.0


# ------------------------------------------------------------
# create
# ------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_then_find(write_service, read_service, notifier, mailer) -> None:
    """Une série créée est relue avec version 0, son titre et ses mots-clés."""
    series_id = await write_service.create(
        make_series(keywords=["JAVA", "PYTHON"], covers=[Cover("Abb. 1", "img/png")])
    )
    stored = await read_service.find_by_id(series_id, include_covers=True)

    assert stored.id == series_id
    assert stored.version == 0
    assert stored.serial_number == "SN-0001"
    assert stored.title.title == "Alpha"
    assert stored.keywords == ["JAVA", "PYTHON"]
    assert len(stored.covers) == 1

    await notifier.drain()
    assert mailer.sent == [
        (
            f"New series {series_id}",
            "The series titled <strong>Alpha</strong> has been created",
        )
    ]


@pytest.mark.asyncio
async def test_keyword_with_comma_is_split(write_service, read_service) -> None:
    """Un tag contenant une virgule est stocké comme plusieurs tags, et relu ainsi."""
    series_id = await write_service.create(make_series(keywords=["java, python"]))
    assert (await read_service.find_by_id(series_id)).keywords == ["JAVA", "PYTHON"]

    await write_service.update(series_id, Series(keywords=["go,rust", "ts"]), '"0"')
    assert (await read_service.find_by_id(series_id)).keywords == ["GO", "RUST", "TS"]


@pytest.mark.asyncio
async def test_create_duplicate_serial_number(write_service, notifier, mailer) -> None:
    """Un numéro de série déjà stocké est refusé; aucune notification pour l'échec."""
    await write_service.create(make_series("SN-0001", "First"))
    with pytest.raises(AlreadyExists) as err:
        await write_service.create(make_series("SN-0001", "Second"))
    assert err.value.serial_number == "SN-0001"

    await notifier.drain()
    assert len(mailer.sent) == 1


@pytest.mark.asyncio
async def test_notification_failure_does_not_fail_create(
    session_factory, read_service
) -> None:
    """Un envoi en échec est journalisé et compté, jamais propagé."""
    notifier = Notifier(FakeMailer(fail=True))
    service = SeriesWriteService(session_factory, read_service, notifier)
    failed_before = _notifications("failed")

    series_id = await service.create(make_series())
    await notifier.drain()

    assert (await read_service.find_by_id(series_id)).version == 0
    assert _notifications("failed") == failed_before + 1


@pytest.mark.asyncio
async def test_create_requires_title(write_service) -> None:
    with pytest.raises(ValueError):
        await write_service.create(Series(serial_number="SN-0009", rating=1))


# ------------------------------------------------------------
# update
# ------------------------------------------------------------


@pytest.mark.parametrize("token", [None, "", "1", '"a"', '"1"x', "'1'", '"-1"'])
def test_parse_version_rejects_malformed(token) -> None:
    with pytest.raises(InvalidVersion):
        parse_version(token)


def test_parse_version() -> None:
    assert parse_version('"12"') == 12


@pytest.mark.asyncio
async def test_update_version_lifecycle(write_service, read_service) -> None:
    """0 -> 1 -> 2; une version antérieure est refusée, la courante acceptée."""
    series_id = await write_service.create(make_series())

    assert await write_service.update(series_id, Series(rating=4), '"0"') == 1
    assert await write_service.update(series_id, Series(rating=5), '"1"') == 2

    with pytest.raises(OutdatedVersion):
        await write_service.update(series_id, Series(rating=1), '"1"')

    assert await write_service.update(series_id, Series(homepage="https://b.org"), '"2"') == 3
    with pytest.raises(OutdatedVersion) as err:
        await write_service.update(series_id, Series(rating=1), '"2"')
    assert err.value.current == 3

    stored = await read_service.find_by_id(series_id)
    assert stored.version == 3
    assert stored.rating == RATING_UPDATED
    assert stored.homepage == "https://b.org"


@pytest.mark.asyncio
async def test_update_keeps_unset_fields(write_service, read_service) -> None:
    """Seuls les champs renseignés du payload sont recopiés."""
    series_id = await write_service.create(make_series(keywords=["PYTHON"]))
    await write_service.update(series_id, Series(keywords=["JAVA"]), '"0"')

    stored = await read_service.find_by_id(series_id)
    assert stored.keywords == ["JAVA"]
    assert stored.serial_number == "SN-0001"
    assert stored.title.title == "Alpha"


@pytest.mark.asyncio
async def test_update_greater_version_accepted(write_service) -> None:
    """Une version fournie supérieure à la version stockée est acceptée."""
    series_id = await write_service.create(make_series())
    assert await write_service.update(series_id, Series(rating=2), '"7"') == 1


@pytest.mark.asyncio
async def test_update_errors(write_service) -> None:
    """Jeton mal formé avant tout chargement; id inconnu -> NotFound."""
    with pytest.raises(InvalidVersion):
        await write_service.update(4242, Series(rating=1), "0")
    with pytest.raises(NotFound):
        await write_service.update(4242, Series(rating=1), '"0"')


@pytest.mark.asyncio
async def test_interleaved_updates(write_service, read_service, monkeypatch) -> None:
    """Deux écrivains partis de la même version: le second reçoit OutdatedVersion."""
    series_id = await write_service.create(make_series())
    snapshot = await read_service.find_by_id(series_id)

    # premier écrivain: 0 -> 1
    assert await write_service.update(series_id, Series(rating=4), '"0"') == 1

    # second écrivain: sa lecture précède le commit du premier
    async def stale_find_by_id(_series_id, include_covers=False):
        return snapshot

    monkeypatch.setattr(read_service, "find_by_id", stale_find_by_id)
    with pytest.raises(OutdatedVersion):
        await write_service.update(series_id, Series(rating=1), '"0"')

    monkeypatch.undo()
    stored = await read_service.find_by_id(series_id)
    assert stored.version == 1
    assert stored.rating == 4


@pytest.mark.asyncio
async def test_concurrent_commit_after_load(
    write_service, read_service, session_factory, monkeypatch
) -> None:
    """Une écriture concurrente validée entre le chargement et le flush: OutdatedVersion."""
    series_id = await write_service.create(make_series())

    @asynccontextmanager
    async def racing_scope(factory):
        async with session_scope(factory) as session:
            load = session.get

            async def get_then_race(model, ident, **kwargs):
                row = await load(model, ident, **kwargs)
                # un autre écrivain passe la ligne en version 1 avant notre UPDATE
                async with session_scope(session_factory) as other:
                    await other.execute(
                        update(SeriesORM)
                        .where(SeriesORM.id == ident)
                        .values(version=1, rating=4)
                    )
                return row

            session.get = get_then_race
            yield session

    monkeypatch.setattr(write_module, "session_scope", racing_scope)
    with pytest.raises(OutdatedVersion) as err:
        await write_service.update(series_id, Series(rating=1), '"0"')
    assert err.value.version == 0

    monkeypatch.undo()
    stored = await read_service.find_by_id(series_id)
    assert stored.version == 1
    assert stored.rating == 4


@pytest.mark.asyncio
async def test_update_duplicate_serial_number(write_service, read_service) -> None:
    """Reprendre le numéro d'une autre série: AlreadyExists, la série reste inchangée."""
    await write_service.create(make_series("SN-0001", "First"))
    second_id = await write_service.create(make_series("SN-0002", "Second"))

    with pytest.raises(AlreadyExists) as err:
        await write_service.update(second_id, Series(serial_number="SN-0001"), '"0"')
    assert err.value.serial_number == "SN-0001"

    stored = await read_service.find_by_id(second_id)
    assert stored.serial_number == "SN-0002"
    assert stored.version == 0


# ------------------------------------------------------------
# delete
# ------------------------------------------------------------


@pytest.mark.asyncio
async def test_delete_is_idempotent(write_service, read_service, session_factory) -> None:
    """Première suppression: True et enfants supprimés; seconde: False."""
    series_id = await write_service.create(
        make_series(covers=[Cover("A", "img/png"), Cover("B", "img/png")])
    )
    await write_service.add_file(series_id, b"data", "a.bin", None)

    assert await write_service.delete(series_id) is True
    for model in (SeriesORM, TitleORM, CoverORM, SeriesFileORM):
        assert await _count(session_factory, model, series_id) == 0
    with pytest.raises(NotFound):
        await read_service.find_by_id(series_id)

    assert await write_service.delete(series_id) is False


# ------------------------------------------------------------
# add_file
# ------------------------------------------------------------


@pytest.mark.asyncio
async def test_add_file_replaces(write_service, read_service, session_factory) -> None:
    """Deux dépôts successifs laissent un seul fichier: le dernier."""
    series_id = await write_service.create(make_series())
    first = await write_service.add_file(series_id, b"one", "one.txt", "text/plain")
    second = await write_service.add_file(series_id, b"two", "two.png", "image/png")

    assert first.filename == "one.txt"
    assert await _count(session_factory, SeriesFileORM, series_id) == 1
    stored = await read_service.find_file_by_series_id(series_id)
    assert stored.data == b"two"
    assert stored.filename == "two.png"
    assert stored.mimetype == "image/png"


@pytest.mark.asyncio
async def test_add_file_unknown_series(write_service) -> None:
    with pytest.raises(NotFound):
        await write_service.add_file(4242, b"x", "x.bin", None)
