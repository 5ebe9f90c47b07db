# mypy: ignore-errors
"""
Migration Alembic pour créer les tables du catalogue de séries.

Cette migration crée `series` (avec sa colonne de version pour la concurrence optimiste) et ses
tables enfants `title`, `cover` et `series_file`, reliées par clé étrangère sans cascade.
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

SERIES_KIND = sa.Enum("STREAM", "TV", "DVD", name="series_kind")


def upgrade() -> None:
    """
    Applique la migration: table `series` puis tables enfants.

    Les mots-clés sont stockés en texte séparé par des virgules; prix et remise en décimal à
    virgule fixe.
    """
    op.create_table(
        "series",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("serial_number", sa.String(length=32), nullable=False, unique=True),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("kind", SERIES_KIND, nullable=True),
        sa.Column("price", sa.Numeric(8, 2), nullable=False),
        sa.Column("discount", sa.Numeric(4, 3), nullable=True),
        sa.Column("has_trailer", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("release_date", sa.Date(), nullable=True),
        sa.Column("homepage", sa.String(length=255), nullable=True),
        sa.Column("keywords", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "title",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("subtitle", sa.String(length=255), nullable=True),
        sa.Column(
            "series_id", sa.Integer(), sa.ForeignKey("series.id"), nullable=False, unique=True
        ),
    )
    op.create_table(
        "cover",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("caption", sa.String(length=255), nullable=False),
        sa.Column("content_type", sa.String(length=64), nullable=False),
        sa.Column("series_id", sa.Integer(), sa.ForeignKey("series.id"), nullable=False),
    )
    op.create_index("ix_cover_series_id", "cover", ["series_id"])
    op.create_table(
        "series_file",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("data", sa.LargeBinary(), nullable=False),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("mimetype", sa.String(length=127), nullable=True),
        sa.Column("series_id", sa.Integer(), sa.ForeignKey("series.id"), nullable=False),
    )
    op.create_index("ix_series_file_series_id", "series_file", ["series_id"])


def downgrade() -> None:
    """
    Annule la migration: tables enfants d'abord, `series` en dernier.
    """
    op.drop_index("ix_series_file_series_id", table_name="series_file")
    op.drop_table("series_file")
    op.drop_index("ix_cover_series_id", table_name="cover")
    op.drop_table("cover")
    op.drop_table("title")
    op.drop_table("series")
    SERIES_KIND.drop(op.get_bind(), checkfirst=True)
