# ============================================================
# Module : backend/infra/repo/profile_repo.py
# Objet  : Accès SQL (get/upsert) aux profils de naissance.
# ============================================================

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy.orm import sessionmaker

from ...domain.entities import BirthProfile
from .db import session_scope
from .models import UserProfileORM


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _utc(value: datetime) -> datetime:
    return _aware(value).astimezone(UTC)


class SqlProfileRepo:
    """Profils de naissance en table `user_profiles` (clé: user_id)."""

    def __init__(self, session_factory: sessionmaker) -> None:
        """Construit le repo avec une factory de sessions (SQLAlchemy)."""
        self._sessions = session_factory

    def get(self, user_id: str) -> BirthProfile | None:
        """Retourne le profil complet, ou None si absent ou sans date de naissance."""
        with session_scope(self._sessions) as session:
            row = session.get(UserProfileORM, user_id)
            if row is None or row.birthday is None:
                return None
            return BirthProfile(
                birth_instant=_aware(row.birthday),
                latitude=row.latitude or 0.0,
                longitude=row.longitude or 0.0,
                updated_at=_aware(row.updated_at),
            )

    def upsert(self, user_id: str, profile: BirthProfile) -> BirthProfile:
        """Insère ou écrase le profil de l'utilisateur."""
        now = datetime.now(UTC)
        with session_scope(self._sessions) as session:
            row = session.get(UserProfileORM, user_id)
            if row is None:
                row = UserProfileORM(user_id=user_id)
                session.add(row)
            row.birthday = _utc(profile.birth_instant)
            row.latitude = profile.latitude
            row.longitude = profile.longitude
            row.updated_at = now
        return profile.model_copy(update={"updated_at": now})
