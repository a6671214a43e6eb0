"""
Repositories pour la gestion des données.

Ce module fournit les dépôts du cache d'analyses et des profils de naissance, avec des versions en
mémoire et Redis. Les versions SQL se trouvent dans `backend.infra.repo`.
"""

from __future__ import annotations

from datetime import UTC, datetime

import redis

from backend.domain.entities import AnalysisKind, BirthProfile, CachedAnalysis


class InMemoryAnalysisCacheRepo:
    """
    Cache d'analyses en mémoire (utilisé pour dev/tests).

    Stocke les enregistrements dans un dict local indexé par (user_id, type), non persistant.
    """

    def __init__(self):
        """Initialise une base mémoire vide."""
        self._db: dict[tuple[str, str], CachedAnalysis] = {}

    def get(self, user_id: str, kind: AnalysisKind) -> CachedAnalysis | None:
        """Retourne l'enregistrement de (user_id, type), ou None s'il est absent."""
        return self._db.get((user_id, kind))

    def upsert(self, record: CachedAnalysis) -> CachedAnalysis:
        """Insère ou écrase l'enregistrement et le renvoie."""
        self._db[(record.user_id, record.analysis_kind)] = record
        return record

    def delete(self, user_id: str, kind: AnalysisKind) -> None:
        """Supprime l'enregistrement s'il existe."""
        self._db.pop((user_id, kind), None)


class RedisAnalysisCacheRepo:
    """Cache d'analyses adossé à Redis (clé: `analysis:{user_id}:{type}`)."""

    def __init__(self, url: str):
        """Crée un client Redis à partir de l'URL fournie."""
        self.client = redis.Redis.from_url(url, decode_responses=True)

    @staticmethod
    def _key(user_id: str, kind: str) -> str:
        return f"analysis:{user_id}:{kind}"

    def get(self, user_id: str, kind: AnalysisKind) -> CachedAnalysis | None:
        """Charge et désérialise l'enregistrement, si présent."""
        raw = self.client.get(self._key(user_id, kind))
        return CachedAnalysis.model_validate_json(raw) if raw else None

    def upsert(self, record: CachedAnalysis) -> CachedAnalysis:
        """Sérialise en JSON et écrase la clé du couple (user_id, type)."""
        self.client.set(self._key(record.user_id, record.analysis_kind), record.model_dump_json())
        return record

    def delete(self, user_id: str, kind: AnalysisKind) -> None:
        """Supprime la clé du couple (user_id, type)."""
        self.client.delete(self._key(user_id, kind))


class InMemoryProfileRepo:
    """Dépôt de profils de naissance en mémoire, indexé par user_id."""

    def __init__(self):
        """Initialise une base mémoire vide."""
        self._db: dict[str, BirthProfile] = {}

    def get(self, user_id: str) -> BirthProfile | None:
        """Retourne le profil de l'utilisateur, ou None."""
        return self._db.get(user_id)

    def upsert(self, user_id: str, profile: BirthProfile) -> BirthProfile:
        """Enregistre/écrase le profil en horodatant la mise à jour."""
        stored = profile.model_copy(update={"updated_at": datetime.now(UTC)})
        self._db[user_id] = stored
        return stored


class RedisProfileRepo:
    """Dépôt de profils via Redis (clé: `profile:{user_id}`)."""

    def __init__(self, url: str):
        """Crée un client Redis à partir de l'URL fournie."""
        self.client = redis.Redis.from_url(url, decode_responses=True)

    def get(self, user_id: str) -> BirthProfile | None:
        """Charge le profil sérialisé, si présent."""
        raw = self.client.get(f"profile:{user_id}")
        return BirthProfile.model_validate_json(raw) if raw else None

    def upsert(self, user_id: str, profile: BirthProfile) -> BirthProfile:
        """Sérialise et stocke le profil sous `profile:{user_id}`."""
        stored = profile.model_copy(update={"updated_at": datetime.now(UTC)})
        self.client.set(f"profile:{user_id}", stored.model_dump_json())
        return stored
