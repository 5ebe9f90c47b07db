"""Configuration de test pour pytest avec gestion des chemins et base temporaire.

Ce module ajoute la racine du projet au sys.path et fournit les fixtures du catalogue: base SQLite
asynchrone dans un répertoire temporaire (une par test), services lecture/écriture et mailer
factice.
"""

import os
import sys

import pytest
import pytest_asyncio

# Ensure project root is on sys.path so that
# imports like `from catalog...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from catalog.infra.mail import Notifier  # noqa: E402
from catalog.infra.repo.db import get_engine, get_session_factory, init_models  # noqa: E402
from catalog.services.read_service import SeriesReadService  # noqa: E402
from catalog.services.write_service import SeriesWriteService  # noqa: E402
from tests.fakes import FakeMailer  # noqa: E402


@pytest.fixture
def database_url(tmp_path) -> str:
    """URL d'une base SQLite (aiosqlite) propre au test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}"


@pytest_asyncio.fixture
async def engine(database_url):
    """Moteur asynchrone avec schéma créé; libéré en fin de test."""
    eng = get_engine(database_url)
    await init_models(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def notifier(mailer) -> Notifier:
    return Notifier(mailer)


@pytest.fixture
def read_service(session_factory) -> SeriesReadService:
    return SeriesReadService(session_factory)


@pytest.fixture
def write_service(session_factory, read_service, notifier) -> SeriesWriteService:
    return SeriesWriteService(session_factory, read_service, notifier)
