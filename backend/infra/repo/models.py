"""SQLAlchemy models for persistence layer (profils et cache d'analyses)."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


class UserProfileORM(Base):
    """Modèle ORM pour les profils de naissance (un par utilisateur)."""

    __tablename__ = "user_profiles"

    user_id = Column(String(64), primary_key=True)
    birthday = Column(DateTime(timezone=True), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class AnalysisCacheORM(Base):
    """Modèle ORM pour le cache des analyses IA."""

    __tablename__ = "ai_analysis_cache"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    analysis_type = Column(String(32), nullable=False)
    analysis_result = Column(JSON, nullable=False, default=dict)
    cache_key = Column(String(512), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "analysis_type", name="uq_user_analysis_type"),
    )
