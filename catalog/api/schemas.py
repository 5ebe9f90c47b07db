# Schémas Pydantic exposés par l'API (requêtes et réponses).

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from math import ceil

from pydantic import BaseModel, ConfigDict, Field, field_validator

from catalog.domain.criteria import Slice, normalize_keywords
from catalog.domain.entities import Cover, Series, SeriesKind, Title

SERIAL_NUMBER_PATTERN = r"^[A-Z0-9][A-Z0-9-]{2,31}$"
TITLE_PATTERN = r"^\w.*"
HOMEPAGE_PATTERN = r"^https?://\S+$"


class TitleDTO(BaseModel):
    """Titre d'une série (création).

    Champs:
    - title: str (commence par une lettre ou un chiffre)
    - subtitle: str | None
    """

    title: str = Field(pattern=TITLE_PATTERN, max_length=40)
    subtitle: str | None = Field(default=None, max_length=40)

    def to_domain(self) -> Title:
        return Title(title=self.title, subtitle=self.subtitle)


class CoverDTO(BaseModel):
    """Couverture d'une série (création)."""

    caption: str = Field(max_length=32)
    content_type: str = Field(max_length=16)

    def to_domain(self) -> Cover:
        return Cover(caption=self.caption, content_type=self.content_type)


class SeriesUpdateDTO(BaseModel):
    """Champs modifiables d'une série (PUT); un champ absent garde sa valeur stockée.

    Champs:
    - serial_number: str (majuscules, chiffres, tirets)
    - rating: int (0..5)
    - kind: STREAM | TV | DVD
    - price: Decimal (8 chiffres dont 2 décimales, >= 0)
    - discount: Decimal (0 <= d < 1, 3 décimales)
    - has_trailer: bool
    - release_date: date (YYYY-MM-DD)
    - homepage: str (URL http/https)
    - keywords: list[str] (normalisés en majuscules)
    """

    serial_number: str | None = Field(default=None, pattern=SERIAL_NUMBER_PATTERN)
    rating: int | None = Field(default=None, ge=0, le=5)
    kind: SeriesKind | None = None
    price: Decimal | None = Field(default=None, ge=0, max_digits=8, decimal_places=2)
    discount: Decimal | None = Field(default=None, ge=0, lt=1, max_digits=4, decimal_places=3)
    has_trailer: bool | None = None
    release_date: date | None = None
    homepage: str | None = Field(default=None, pattern=HOMEPAGE_PATTERN)
    keywords: list[str] | None = None

    @field_validator("keywords")
    @classmethod
    def _upper_keywords(cls, value: list[str] | None) -> list[str] | None:
        return None if value is None else normalize_keywords(value)

    def to_domain(self) -> Series:
        return Series(
            serial_number=self.serial_number,
            rating=self.rating,
            kind=self.kind,
            price=self.price,
            discount=self.discount,
            has_trailer=self.has_trailer,
            release_date=self.release_date,
            homepage=self.homepage,
            keywords=self.keywords,
        )


class SeriesDTO(SeriesUpdateDTO):
    """Série complète à créer (POST): champs obligatoires, titre et couvertures."""

    serial_number: str = Field(pattern=SERIAL_NUMBER_PATTERN)
    rating: int = Field(ge=0, le=5)
    price: Decimal = Field(ge=0, max_digits=8, decimal_places=2)
    has_trailer: bool = False
    title: TitleDTO
    covers: list[CoverDTO] = Field(default_factory=list)

    def to_domain(self) -> Series:
        series = super().to_domain()
        series.keywords = self.keywords or []
        series.title = self.title.to_domain()
        series.covers = [cover.to_domain() for cover in self.covers]
        return series


class TitleView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: str
    subtitle: str | None = None


class CoverView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    caption: str
    content_type: str


class SeriesView(BaseModel):
    """Représentation d'une série renvoyée par l'API (lue depuis l'objet domaine)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    version: int
    serial_number: str
    rating: int
    kind: SeriesKind | None = None
    price: Decimal
    discount: Decimal | None = None
    has_trailer: bool
    release_date: date | None = None
    homepage: str | None = None
    keywords: list[str] = Field(default_factory=list)
    title: TitleView | None = None
    covers: list[CoverView] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PageInfo(BaseModel):
    size: int
    number: int
    total_elements: int
    total_pages: int


class SeriesPage(BaseModel):
    """Enveloppe de page: contenu et métadonnées de pagination."""

    content: list[SeriesView]
    page: PageInfo

    @classmethod
    def from_slice(cls, result: Slice, number: int, size: int) -> SeriesPage:
        total_pages = ceil(result.total_elements / size) if size else 1
        return cls(
            content=[SeriesView.model_validate(series) for series in result.content],
            page=PageInfo(
                size=size,
                number=number,
                total_elements=result.total_elements,
                total_pages=total_pages,
            ),
        )
