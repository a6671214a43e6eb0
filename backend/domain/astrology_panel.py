"""Service du panneau astrologique.

Responsabilités:
- Gérer le profil de naissance et recalculer le thème uniquement quand il change.
- Lire le cache avant toute analyse; n'appeler le LLM qu'en cas de défaut de cache ou de
  rafraîchissement explicite (qui invalide d'abord l'entrée).
- Lancer les quatre horizons en parallèle, chaque écriture de cache restant indépendante.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog

from backend.domain.analysis_cache import AnalysisCacheStore
from backend.domain.entities import (
    FATE_ANALYSIS_KINDS,
    AnalysisError,
    AnalysisKind,
    BirthProfile,
    ChartSnapshot,
    LifeRecord,
)
from backend.domain.fate_analysis import FateAnalysisService
from backend.domain.fingerprint import AnalysisContext
from backend.domain.insight import InsightService

log = structlog.get_logger(__name__)


@dataclass
class PanelAnalysis:
    """Analyse servie au panneau, avec sa provenance (cache ou calcul)."""

    kind: AnalysisKind
    payload: dict[str, Any]
    cached: bool
    updated_at: datetime | None = None

    @property
    def is_error(self) -> bool:
        """Vrai si la charge utile est un résultat d'erreur."""
        return "error" in self.payload


def _profile_key(profile: BirthProfile) -> tuple[datetime, float, float]:
    return (profile.birth_instant, profile.latitude, profile.longitude)


class AstrologyPanelService:
    """Orchestration profil -> thème -> cache -> analyse."""

    def __init__(
        self,
        profiles,
        engine,
        cache: AnalysisCacheStore,
        fate: FateAnalysisService,
        insight: InsightService,
        persist_errors: bool = False,
    ):
        """Initialise le service avec ses dépendances.

        Paramètres:
        - profiles: dépôt de profils de naissance (mémoire, Redis ou SQL).
        - engine: moteur de thème exposant `compute_natal_chart`.
        - cache: store du cache d'analyses.
        - fate / insight: pipelines d'analyse.
        - persist_errors: mettre aussi en cache les résultats d'erreur.
        """
        self.profiles = profiles
        self.engine = engine
        self.cache = cache
        self.fate = fate
        self.insight = insight
        self.persist_errors = persist_errors
        self._charts: dict[str, ChartSnapshot] = {}

    # -------------------- Profil et thème --------------------

    def save_profile(self, user_id: str, profile: BirthProfile) -> BirthProfile:
        """Enregistre le profil; le thème sera recalculé à la prochaine lecture."""
        stored = self.profiles.upsert(user_id, profile)
        self._charts.pop(user_id, None)
        return stored

    def get_profile(self, user_id: str) -> BirthProfile | None:
        """Retourne le profil de l'utilisateur, ou None."""
        return self.profiles.get(user_id)

    def has_birthday(self, user_id: str) -> bool:
        """Vrai si l'utilisateur a renseigné sa date de naissance."""
        return self.get_profile(user_id) is not None

    def _require_profile(self, user_id: str) -> BirthProfile:
        profile = self.get_profile(user_id)
        if profile is None:
            raise KeyError("profile_not_found")
        return profile

    def chart_for(self, user_id: str) -> ChartSnapshot:
        """Thème de l'utilisateur, recalculé seulement si le profil a changé."""
        profile = self._require_profile(user_id)
        snapshot = self._charts.get(user_id)
        if snapshot is None or _profile_key(snapshot.birth_profile) != _profile_key(profile):
            snapshot = self.engine.compute_natal_chart(profile)
            self._charts[user_id] = snapshot
        return snapshot

    # -------------------- Analyses --------------------

    def _store(
        self,
        user_id: str,
        kind: AnalysisKind,
        payload: dict[str, Any],
        context: AnalysisContext,
    ) -> PanelAnalysis:
        stored = None
        if self.persist_errors or "error" not in payload:
            stored = self.cache.put(user_id, kind, payload, context)
        return PanelAnalysis(
            kind=kind,
            payload=payload,
            cached=False,
            updated_at=stored.updated_at if stored else None,
        )

    def _cached(
        self, user_id: str, kind: AnalysisKind, context: AnalysisContext, force: bool
    ) -> PanelAnalysis | None:
        if force:
            self.cache.invalidate(user_id, kind)
            return None
        hit = self.cache.get(user_id, kind, context)
        if hit is None:
            return None
        return PanelAnalysis(kind=kind, payload=hit.payload, cached=True, updated_at=hit.updated_at)

    async def get_analysis(
        self,
        user_id: str,
        kind: AnalysisKind,
        records: Sequence[LifeRecord],
        force: bool = False,
    ) -> PanelAnalysis:
        """Analyse de destinée d'un horizon: cache d'abord, LLM sinon.

        Raises:
            KeyError: l'utilisateur n'a pas de profil de naissance.
        """
        profile = self._require_profile(user_id)
        context = AnalysisContext(profile=profile, records=tuple(records))
        hit = self._cached(user_id, kind, context, force)
        if hit is not None:
            return hit
        snapshot = self.chart_for(user_id)
        result = await self.fate.analyze(snapshot, context.records, kind)
        payload = result.model_dump(mode="json", by_alias=True)
        log.info("fate_analysis_computed", user_id=user_id, kind=kind, error="error" in payload)
        return self._store(user_id, kind, payload, context)

    async def analyze_all(
        self,
        user_id: str,
        records: Sequence[LifeRecord],
        force: bool = False,
    ) -> dict[AnalysisKind, PanelAnalysis]:
        """Lance les quatre horizons en parallèle et attend qu'ils aient tous terminé."""
        self._require_profile(user_id)
        outcomes = await asyncio.gather(
            *(self.get_analysis(user_id, kind, records, force) for kind in FATE_ANALYSIS_KINDS),
            return_exceptions=True,
        )
        results: dict[AnalysisKind, PanelAnalysis] = {}
        for kind, outcome in zip(FATE_ANALYSIS_KINDS, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                log.error("fate_analysis_batch_item_failed", kind=kind, error=str(outcome))
                outcome = PanelAnalysis(
                    kind=kind,
                    payload=AnalysisError(error=str(outcome) or "erreur inconnue").model_dump(),
                    cached=False,
                )
            results[kind] = outcome
        return results

    async def get_insight(
        self,
        user_id: str,
        records: Sequence[LifeRecord],
        force: bool = False,
    ) -> PanelAnalysis:
        """Relecture de vie, mise en cache selon le nombre et la fraîcheur des souvenirs."""
        context = AnalysisContext(profile=None, records=tuple(records))
        hit = self._cached(user_id, "insight", context, force)
        if hit is not None:
            return hit
        result = await self.insight.summarize(context.records)
        return self._store(user_id, "insight", result.model_dump(mode="json"), context)
