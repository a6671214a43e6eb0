# mypy: ignore-errors
"""
Migration Alembic: profils de naissance et cache des analyses IA.

Crée `user_profiles` (un profil par utilisateur) et `ai_analysis_cache` (une analyse par
utilisateur et type, avec son empreinte de fraîcheur).
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Crée les tables des profils et du cache d'analyses."""
    op.create_table(
        "user_profiles",
        sa.Column("user_id", sa.String(length=64), primary_key=True),
        sa.Column("birthday", sa.DateTime(timezone=True), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "ai_analysis_cache",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("analysis_type", sa.String(length=32), nullable=False),
        sa.Column("analysis_result", sa.JSON(), nullable=False),
        sa.Column("cache_key", sa.String(length=512), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "analysis_type", name="uq_user_analysis_type"),
    )


def downgrade() -> None:
    """Supprime les tables créées par `upgrade`."""
    op.drop_table("ai_analysis_cache")
    op.drop_table("user_profiles")
