"""Erreurs métier levées à la frontière des services lecture/écriture.

Chaque erreur porte un `code` stable et des `details` sérialisables; la couche REST les traduit
en réponses HTTP (voir `catalog.api.errors`). Aucune n'est retentée ni avalée par les services.
"""

from __future__ import annotations

from typing import Any


class CatalogError(Exception):
    """Erreur de base du catalogue avec code et détails."""

    code = "CATALOG_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFound(CatalogError):
    """Aucune série pour l'id, ou aucun résultat pour les critères."""

    code = "NOT_FOUND"


class InvalidCriteria(CatalogError):
    """Critère de recherche inconnu ou valeur d'énumération invalide."""

    code = "INVALID_CRITERIA"


class AlreadyExists(CatalogError):
    """Violation d'unicité sur le numéro de série à la création."""

    code = "ALREADY_EXISTS"

    def __init__(self, serial_number: str) -> None:
        super().__init__(
            f"Serial number {serial_number} already exists",
            {"serial_number": serial_number},
        )
        self.serial_number = serial_number


class InvalidVersion(CatalogError):
    """Jeton de version mal formé (attendu: entier décimal entre guillemets)."""

    code = "INVALID_VERSION"

    def __init__(self, token: str | None) -> None:
        super().__init__(f"Invalid version token: {token!r}", {"version": token})
        self.token = token


class OutdatedVersion(CatalogError):
    """Jeton de version antérieur à la version stockée."""

    code = "OUTDATED_VERSION"

    def __init__(self, version: int, current: int | None = None) -> None:
        details: dict[str, Any] = {"version": version}
        if current is not None:
            details["current"] = current
        super().__init__(f"Version {version} is outdated", details)
        self.version = version
        self.current = current


__all__ = [
    "AlreadyExists",
    "CatalogError",
    "InvalidCriteria",
    "InvalidVersion",
    "NotFound",
    "OutdatedVersion",
]
