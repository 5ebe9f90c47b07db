"""Définition et chargement des paramètres de configuration applicative.

Objectif du module
------------------
- Centraliser les paramètres (env/.env) via Pydantic Settings
- Résoudre le fichier `.env` à utiliser selon la stratégie: ENV_FILE > .env.{APP_ENV} > .env
"""

import os
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from catalog.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

# Détermination du fichier .env à utiliser avec priorité:
# 1) ENV_FILE (chemin explicite)
# 2) .env.{APP_ENV} si présent
# 3) .env (défaut)
_cwd = Path.cwd()
_env_file_from_env = os.getenv("ENV_FILE")
if _env_file_from_env:
    _ENV_FILE_PATH = _env_file_from_env
else:
    _app_env = os.getenv("APP_ENV", "dev")
    _candidate_specific = _cwd / f".env.{_app_env}"
    _candidate_default = _cwd / ".env"
    if _candidate_specific.exists():
        _ENV_FILE_PATH = _candidate_specific
    else:
        _ENV_FILE_PATH = _candidate_default


class Settings(BaseSettings):
    """Modèle de configuration chargé depuis l'environnement et .env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
    )
    APP_NAME: str = "series-catalog"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = True
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000
    LOG_LEVEL: str = "DEBUG"

    # Base de données (driver async: sqlite+aiosqlite, postgresql+asyncpg)
    DATABASE_URL: str = "sqlite+aiosqlite:///./catalog.db"
    DB_ECHO: bool = False
    DB_CREATE_ALL: bool = True

    # Pagination
    DEFAULT_PAGE_SIZE: int = DEFAULT_PAGE_SIZE
    MAX_PAGE_SIZE: int = MAX_PAGE_SIZE

    # Notifications
    MAIL_BACKEND: Literal["log", "smtp"] = "log"
    MAIL_HOST: str = "localhost"
    MAIL_PORT: int = 25
    MAIL_FROM: str = "catalog@localhost"
    MAIL_TO: str = "admin@localhost"


def get_settings() -> Settings:
    """Construit et retourne la configuration de l'application."""
    return Settings()
