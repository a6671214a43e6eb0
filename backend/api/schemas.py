# Schémas Pydantic exposés par l'API (requêtes et réponses).

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from backend.domain.entities import AnalysisKind, LifeRecord


class ProfileRequest(BaseModel):
    """Requête d'enregistrement du profil de naissance.

    Champs:
    - birthday: datetime ISO-8601 (instant de naissance)
    - latitude: float (-90 à 90)
    - longitude: float (-180 à 180)
    """

    birthday: datetime
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class ProfileResponse(BaseModel):
    """Profil de naissance enregistré."""

    user_id: str
    birthday: datetime
    latitude: float
    longitude: float
    updated_at: datetime | None = None


class AnalysisRequest(BaseModel):
    """Requête d'analyse: souvenirs courants et rafraîchissement forcé éventuel.

    Champs:
    - records: list[LifeRecord] (souvenirs de l'utilisateur)
    - refresh: bool (ignore et remplace le cache)
    """

    records: list[LifeRecord] = Field(default_factory=list)
    refresh: bool = False


class AnalysisResponse(BaseModel):
    """Analyse servie (résultat, erreur ou repli) et sa provenance.

    Champs:
    - kind: type d'analyse
    - cached: bool (servie depuis le cache)
    - updated_at: date de mise en cache, si persistée
    - result: dict (AnalysisResult, InsightResult ou {"error": ...})
    """

    kind: AnalysisKind
    cached: bool
    updated_at: datetime | None = None
    result: dict[str, Any]


class AnalysisBatchResponse(BaseModel):
    """Réponse des quatre horizons lancés ensemble."""

    analyses: dict[str, AnalysisResponse]
