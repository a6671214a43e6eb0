# ============================================================
# Module : backend/infra/repo/analysis_cache_repo.py
# Objet  : Accès SQL (get/upsert/delete) au cache des analyses IA.
# Notes  : contrainte d'unicité (user_id, analysis_type).
# ============================================================

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.orm import sessionmaker

from ...domain.entities import AnalysisKind, CachedAnalysis
from .db import session_scope
from .models import AnalysisCacheORM


def _aware(value: datetime | None) -> datetime:
    if value is None:
        return datetime.now(UTC)
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _to_entity(row: AnalysisCacheORM) -> CachedAnalysis:
    return CachedAnalysis(
        user_id=row.user_id,
        analysis_kind=row.analysis_type,
        fingerprint=row.cache_key,
        payload=row.analysis_result or {},
        updated_at=_aware(row.updated_at),
    )


class SqlAnalysisCacheRepo:
    """Cache d'analyses en table `ai_analysis_cache` (une ligne par utilisateur et type)."""

    def __init__(self, session_factory: sessionmaker) -> None:
        """Construit le repo avec une factory de sessions (SQLAlchemy)."""
        self._sessions = session_factory

    def get(self, user_id: str, kind: AnalysisKind) -> CachedAnalysis | None:
        """Retourne la ligne du couple (user_id, type), ou None."""
        with session_scope(self._sessions) as session:
            row = session.execute(
                select(AnalysisCacheORM).where(
                    AnalysisCacheORM.user_id == user_id,
                    AnalysisCacheORM.analysis_type == kind,
                )
            ).scalar_one_or_none()
            return _to_entity(row) if row else None

    def upsert(self, record: CachedAnalysis) -> CachedAnalysis:
        """Met à jour la ligne existante ou en insère une nouvelle."""
        with session_scope(self._sessions) as session:
            row = session.execute(
                select(AnalysisCacheORM).where(
                    AnalysisCacheORM.user_id == record.user_id,
                    AnalysisCacheORM.analysis_type == record.analysis_kind,
                )
            ).scalar_one_or_none()
            if row is None:
                row = AnalysisCacheORM(
                    user_id=record.user_id, analysis_type=record.analysis_kind
                )
                session.add(row)
            row.analysis_result = record.payload
            row.cache_key = record.fingerprint
            row.updated_at = record.updated_at
            session.flush()
            return _to_entity(row)

    def delete(self, user_id: str, kind: AnalysisKind) -> None:
        """Supprime la ligne du couple (user_id, type) si elle existe."""
        with session_scope(self._sessions) as session:
            session.execute(
                delete(AnalysisCacheORM).where(
                    AnalysisCacheORM.user_id == user_id,
                    AnalysisCacheORM.analysis_type == kind,
                )
            )
