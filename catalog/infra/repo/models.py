"""SQLAlchemy models for persistence layer (Series, Title, Cover, SeriesFile).

Les relations de `SeriesORM` sont en lecture seule (`viewonly`): aucune écriture ni suppression en
cascade implicite. Les enfants sont écrits et supprimés par des instructions explicites
ordonnées par le service d'écriture.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    LargeBinary,
    MetaData,
    Numeric,
    String,
    Text,
    TypeDecorator,
)
from sqlalchemy.orm import DeclarativeBase, relationship

from catalog.domain.entities import SeriesKind


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


class KeywordList(TypeDecorator):
    """Liste de tags stockée en texte séparé par des virgules (`JAVA,PYTHON`).

    Une chaîne déjà sérialisée est transmise telle quelle (comparaisons LIKE/égalité).
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):  # type: ignore[no-untyped-def]
        if value is None or isinstance(value, str):
            return value
        return ",".join(value)

    def process_result_value(self, value, dialect):  # type: ignore[no-untyped-def]
        if value is None:
            return None
        return [item for item in value.split(",") if item]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _next_version(current: int | None) -> int:
    """Version 0 à l'insertion, puis +1 à chaque UPDATE."""
    return 0 if current is None else current + 1


class SeriesORM(Base):
    """Modèle ORM pour les séries."""

    __tablename__ = "series"

    id = Column(Integer, primary_key=True, autoincrement=True)
    version = Column(Integer, nullable=False, default=0)
    serial_number = Column(String(32), nullable=False, unique=True)
    rating = Column(Integer, nullable=False)
    kind = Column(
        Enum(SeriesKind, name="series_kind", values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )
    price = Column(Numeric(8, 2, asdecimal=True), nullable=False)
    discount = Column(Numeric(4, 3, asdecimal=True), nullable=True)
    has_trailer = Column(Boolean, nullable=False, default=False)
    release_date = Column(Date, nullable=True)
    homepage = Column(String(255), nullable=True)
    keywords = Column(KeywordList, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    # lazy="raise": aucun chargement implicite hors des jointures explicites (async)
    title = relationship("TitleORM", uselist=False, viewonly=True, lazy="raise")
    covers = relationship("CoverORM", viewonly=True, lazy="raise", order_by="CoverORM.id")
    file = relationship("SeriesFileORM", uselist=False, viewonly=True, lazy="raise")

    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": _next_version,
    }


class TitleORM(Base):
    """Modèle ORM pour le titre (1:1 obligatoire)."""

    __tablename__ = "title"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    subtitle = Column(String(255), nullable=True)
    series_id = Column(Integer, ForeignKey("series.id"), nullable=False, unique=True)


class CoverORM(Base):
    """Modèle ORM pour les couvertures (1:n)."""

    __tablename__ = "cover"

    id = Column(Integer, primary_key=True, autoincrement=True)
    caption = Column(String(255), nullable=False)
    content_type = Column(String(64), nullable=False)
    series_id = Column(Integer, ForeignKey("series.id"), nullable=False, index=True)


class SeriesFileORM(Base):
    """Modèle ORM pour le fichier binaire d'une série."""

    __tablename__ = "series_file"

    id = Column(Integer, primary_key=True, autoincrement=True)
    data = Column(LargeBinary, nullable=False)
    filename = Column(String(255), nullable=False)
    mimetype = Column(String(127), nullable=True)
    series_id = Column(Integer, ForeignKey("series.id"), nullable=False, index=True)
