"""
Tables zodiacales et utilitaires angulaires.

Ce module regroupe les tables statiques (signes, noms affichés, angles d'aspect) et les fonctions
pures utilisées par le calcul du thème: décomposition signe/degré, distance angulaire, détection
d'aspect avec orbe et maison en système égal.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from types import MappingProxyType

from backend.domain.entities import AspectType, PlanetId, ZodiacSign

ZODIAC_ORDER: tuple[ZodiacSign, ...] = tuple(ZodiacSign)

SIGN_LABELS = MappingProxyType(
    {
        ZodiacSign.ARIES: "Bélier",
        ZodiacSign.TAURUS: "Taureau",
        ZodiacSign.GEMINI: "Gémeaux",
        ZodiacSign.CANCER: "Cancer",
        ZodiacSign.LEO: "Lion",
        ZodiacSign.VIRGO: "Vierge",
        ZodiacSign.LIBRA: "Balance",
        ZodiacSign.SCORPIO: "Scorpion",
        ZodiacSign.SAGITTARIUS: "Sagittaire",
        ZodiacSign.CAPRICORN: "Capricorne",
        ZodiacSign.AQUARIUS: "Verseau",
        ZodiacSign.PISCES: "Poissons",
    }
)

PLANET_LABELS = MappingProxyType(
    {
        PlanetId.SUN: "Soleil",
        PlanetId.MOON: "Lune",
        PlanetId.MERCURY: "Mercure",
        PlanetId.VENUS: "Vénus",
        PlanetId.MARS: "Mars",
        PlanetId.JUPITER: "Jupiter",
        PlanetId.SATURN: "Saturne",
        PlanetId.ASC: "Ascendant",
        PlanetId.MC: "Milieu du Ciel",
    }
)

# Ordre de test stable: le premier angle dans l'orbe l'emporte.
ASPECT_ANGLES: tuple[tuple[AspectType, float], ...] = (
    (AspectType.CONJUNCTION, 0.0),
    (AspectType.SQUARE, 90.0),
    (AspectType.TRINE, 120.0),
    (AspectType.OPPOSITION, 180.0),
)

ASPECT_LABELS = MappingProxyType(
    {
        AspectType.CONJUNCTION: "conjonction",
        AspectType.SQUARE: "carré",
        AspectType.TRINE: "trigone",
        AspectType.OPPOSITION: "opposition",
    }
)

ASPECT_ORB = 8.0
SIGN_SPAN = 30.0
FULL_CIRCLE = 360.0


@dataclass(frozen=True)
class SignPosition:
    """Décomposition d'une longitude en signe et degré dans le signe."""

    sign_index: int
    sign: ZodiacSign
    degree: float
    longitude: float


@dataclass(frozen=True)
class AspectMatch:
    """Aspect détecté entre deux longitudes."""

    aspect_type: AspectType
    orb: float
    exact: bool


def normalize_longitude(longitude: float) -> float:
    """Ramène une longitude dans [0, 360)."""
    value = math.fmod(longitude, FULL_CIRCLE)
    if value < 0:
        value += FULL_CIRCLE
    # fmod(-1e-18, 360) + 360 arrondit à 360.0
    return 0.0 if value >= FULL_CIRCLE else value


def degree_to_sign(longitude: float) -> SignPosition:
    """Convertit une longitude écliptique en (signe, degré dans le signe).

    Invariant: `sign_index * 30 + degree == normalize_longitude(longitude)`.
    """
    normalized = normalize_longitude(longitude)
    index = min(int(normalized // SIGN_SPAN), len(ZODIAC_ORDER) - 1)
    degree = normalized - index * SIGN_SPAN
    return SignPosition(
        sign_index=index,
        sign=ZODIAC_ORDER[index],
        degree=degree,
        longitude=normalized,
    )


def calculate_angle(longitude_a: float, longitude_b: float) -> float:
    """Plus petit écart angulaire entre deux longitudes, dans [0, 180]."""
    diff = abs(normalize_longitude(longitude_a) - normalize_longitude(longitude_b))
    return min(diff, FULL_CIRCLE - diff)


def calculate_aspect(longitude_a: float, longitude_b: float) -> AspectMatch | None:
    """Retourne l'aspect formé par deux longitudes, ou None hors de toute orbe."""
    separation = calculate_angle(longitude_a, longitude_b)
    for aspect_type, angle in ASPECT_ANGLES:
        deviation = abs(separation - angle)
        if deviation <= ASPECT_ORB:
            return AspectMatch(aspect_type=aspect_type, orb=deviation, exact=deviation == 0)
    return None


def house_of(longitude: float, ascendant: float) -> int:
    """Maison (1 à 12) d'une longitude en maisons égales depuis l'Ascendant."""
    offset = normalize_longitude(longitude - ascendant)
    return min(int(offset // SIGN_SPAN), 11) + 1
