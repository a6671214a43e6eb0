"""
Entités du domaine métier.

Ce module définit les modèles de données principaux de l'archive de vie: profil de naissance,
thème calculé (placements, aspects, maisons), souvenirs de l'utilisateur et résultats d'analyse.
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from backend.core.constants import MAX_KEY_NODES

DEFAULT_SPIRITUALITY_INDEX = 50

AnalysisKind = Literal["past", "next7days", "monthly", "yearly", "insight"]
FATE_ANALYSIS_KINDS: tuple[AnalysisKind, ...] = ("past", "next7days", "monthly", "yearly")


class PlanetId(str, Enum):
    """Corps suivis par le thème (ordre stable utilisé pour les aspects)."""

    SUN = "SUN"
    MOON = "MOON"
    MERCURY = "MERCURY"
    VENUS = "VENUS"
    MARS = "MARS"
    JUPITER = "JUPITER"
    SATURN = "SATURN"
    ASC = "ASC"
    MC = "MC"


class ZodiacSign(str, Enum):
    """Les douze signes, dans l'ordre canonique à partir du Bélier."""

    ARIES = "Aries"
    TAURUS = "Taurus"
    GEMINI = "Gemini"
    CANCER = "Cancer"
    LEO = "Leo"
    VIRGO = "Virgo"
    LIBRA = "Libra"
    SCORPIO = "Scorpio"
    SAGITTARIUS = "Sagittarius"
    CAPRICORN = "Capricorn"
    AQUARIUS = "Aquarius"
    PISCES = "Pisces"


class AspectType(str, Enum):
    """Aspects majeurs reconnus par le calcul simplifié."""

    CONJUNCTION = "conjunction"
    SQUARE = "square"
    TRINE = "trine"
    OPPOSITION = "opposition"


class BirthProfile(BaseModel):
    """Données de naissance nécessaires au calcul d'une carte."""

    model_config = ConfigDict(populate_by_name=True)

    birth_instant: datetime = Field(
        validation_alias=AliasChoices("birth_instant", "birthday", "birthInstant")
    )
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    updated_at: datetime | None = None


class PlanetPlacement(BaseModel):
    """Position d'un corps: longitude écliptique, signe, degré dans le signe et maison."""

    model_config = ConfigDict(frozen=True)

    planet: PlanetId
    longitude: float
    sign: ZodiacSign
    sign_degree: float
    house: int = Field(..., ge=1, le=12)


class Aspect(BaseModel):
    """Relation angulaire entre deux corps, dans la tolérance (orbe)."""

    model_config = ConfigDict(frozen=True)

    planet_a: PlanetId
    planet_b: PlanetId
    aspect_type: AspectType
    orb: float = Field(..., ge=0)
    exact: bool = False


class HouseCusp(BaseModel):
    """Cuspide de maison (système des maisons égales depuis l'Ascendant)."""

    model_config = ConfigDict(frozen=True)

    number: int = Field(..., ge=1, le=12)
    cusp_longitude: float
    sign: ZodiacSign
    sign_degree: float


class ChartSnapshot(BaseModel):
    """Thème complet, immuable, recalculé en bloc à chaque changement de profil."""

    model_config = ConfigDict(frozen=True)

    birth_profile: BirthProfile
    julian_day: float
    planets: dict[PlanetId, PlanetPlacement]
    aspects: list[Aspect]
    houses: list[HouseCusp]
    computed_at: datetime


class LifeRecord(BaseModel):
    """Souvenir enregistré par l'utilisateur (fourni par un collaborateur externe).

    Seuls `title`, `description` et les horodatages sont indispensables; les autres champs
    enrichissent la relecture de vie quand ils sont présents.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    title: str = ""
    description: str | None = None
    date: datetime | None = None
    created_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("created_at", "createdAt")
    )
    updated_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("updated_at", "updatedAt")
    )
    type: str | None = None
    importance: str | None = None
    emotions: list[str] = Field(default_factory=list)
    emotion_note: str | None = Field(
        default=None, validation_alias=AliasChoices("emotion_note", "emotionNote")
    )
    location: dict[str, Any] | str | None = None
    participants: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    category: str | None = None
    related_events: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("related_events", "relatedEvents"),
    )


class FutureGuidance(BaseModel):
    """Les deux paragraphes narratifs de l'analyse."""

    paragraph1: str = ""
    paragraph2: str = ""


class AnalysisSection(BaseModel):
    """Section thématique (carrière, émotions, énergie)."""

    title: str = ""
    content: str = ""


class KeyNode(BaseModel):
    """Moment clé daté (YYYY-MM-DD) de l'horizon analysé."""

    date: str
    description: str = ""


class AnalysisResult(BaseModel):
    """Résultat structuré d'une analyse de destinée.

    `is_fallback` distingue le résultat de repli (sortie du modèle illisible) d'un vrai succès;
    la forme reste identique pour que le rendu n'ait qu'un seul chemin.
    """

    model_config = ConfigDict(populate_by_name=True)

    future_guidance: FutureGuidance = Field(alias="futureGuidance")
    spirituality_index: int = Field(default=DEFAULT_SPIRITUALITY_INDEX, alias="spiritualityIndex")
    career: AnalysisSection
    emotion: AnalysisSection
    energy: AnalysisSection
    key_nodes: list[KeyNode] = Field(default_factory=list, alias="keyNodes")
    is_fallback: bool = Field(default=False, alias="isFallback")

    @field_validator("spirituality_index", mode="before")
    @classmethod
    def _clamp_index(cls, value: Any) -> int:
        # null, liste ou valeur non finie: indice neutre
        try:
            number = float(value)
        except (TypeError, ValueError):
            return DEFAULT_SPIRITUALITY_INDEX
        if not math.isfinite(number):
            return DEFAULT_SPIRITUALITY_INDEX
        return max(0, min(100, int(round(number))))

    @field_validator("key_nodes", mode="after")
    @classmethod
    def _limit_key_nodes(cls, value: list[KeyNode]) -> list[KeyNode]:
        return value[:MAX_KEY_NODES]


class InsightResult(BaseModel):
    """Relecture de vie au format Markdown."""

    insight: str


class AnalysisError(BaseModel):
    """Résultat d'erreur renvoyé à la place d'une analyse."""

    error: str


class CachedAnalysis(BaseModel):
    """Enregistrement de cache unique par (utilisateur, type d'analyse)."""

    user_id: str
    analysis_kind: AnalysisKind
    fingerprint: str
    payload: dict[str, Any]
    updated_at: datetime
