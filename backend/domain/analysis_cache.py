"""Cache des analyses IA avec invalidation par empreinte.

Le store encapsule un dépôt (mémoire, Redis ou SQL) et applique la règle de fraîcheur: un
enregistrement n'est rendu que si son empreinte correspond à celle recalculée depuis le contexte
courant. Le cache est une optimisation: toute erreur du dépôt est journalisée puis traitée comme un
défaut de cache (lecture) ou ignorée (écriture, suppression).
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Protocol

import structlog
from pydantic import BaseModel

from backend.domain.entities import AnalysisKind, CachedAnalysis
from backend.domain.fingerprint import AnalysisContext, compute_fingerprint

log = structlog.get_logger(__name__)


class AnalysisCacheRepo(Protocol):
    """Interface minimale des dépôts de cache."""

    def get(self, user_id: str, kind: AnalysisKind) -> CachedAnalysis | None: ...

    def upsert(self, record: CachedAnalysis) -> CachedAnalysis: ...

    def delete(self, user_id: str, kind: AnalysisKind) -> None: ...


def _payload_dict(payload: BaseModel | dict[str, Any]) -> dict[str, Any]:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json", by_alias=True)
    return dict(payload)


class AnalysisCacheStore:
    """Lecture/écriture du cache par (utilisateur, type d'analyse)."""

    def __init__(self, repo: AnalysisCacheRepo, clock: Callable[[], datetime] | None = None):
        """Initialise le store.

        Paramètres:
        - repo: dépôt sous-jacent.
        - clock: horloge utilisée pour les seaux temporels et `updated_at`.
        """
        self.repo = repo
        self._clock = clock or (lambda: datetime.now(UTC))

    def fingerprint(self, kind: AnalysisKind, context: AnalysisContext) -> str:
        """Empreinte attendue pour le contexte courant."""
        return compute_fingerprint(kind, context, self._clock())

    def get(
        self, user_id: str, kind: AnalysisKind, context: AnalysisContext
    ) -> CachedAnalysis | None:
        """Retourne l'analyse en cache si elle est encore fraîche, sinon None."""
        try:
            record = self.repo.get(user_id, kind)
        except Exception as err:
            log.warning("analysis_cache_read_failed", user_id=user_id, kind=kind, error=str(err))
            return None
        if record is None:
            return None
        expected = self.fingerprint(kind, context)
        if record.fingerprint != expected:
            log.debug("analysis_cache_stale", user_id=user_id, kind=kind)
            return None
        return record

    def put(
        self,
        user_id: str,
        kind: AnalysisKind,
        payload: BaseModel | dict[str, Any],
        context: AnalysisContext,
    ) -> CachedAnalysis | None:
        """Écrase l'analyse du couple (utilisateur, type); None si la persistance échoue."""
        record = CachedAnalysis(
            user_id=user_id,
            analysis_kind=kind,
            fingerprint=self.fingerprint(kind, context),
            payload=_payload_dict(payload),
            updated_at=self._clock(),
        )
        try:
            return self.repo.upsert(record)
        except Exception as err:
            log.warning("analysis_cache_write_failed", user_id=user_id, kind=kind, error=str(err))
            return None

    def invalidate(self, user_id: str, kind: AnalysisKind) -> None:
        """Supprime l'analyse en cache (rafraîchissement forcé)."""
        try:
            self.repo.delete(user_id, kind)
        except Exception as err:
            log.warning(
                "analysis_cache_delete_failed", user_id=user_id, kind=kind, error=str(err)
            )
