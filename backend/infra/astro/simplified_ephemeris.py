"""
Moteur astrologique interne à éphémérides simplifiées.

Ce module calcule un thème à partir d'un instant et d'un lieu de naissance avec un modèle linéaire
volontairement simplifié (mouvement moyen du Soleil, décalages fixes pour les autres corps,
maisons égales depuis l'Ascendant). Le calcul est pur et déterministe: seules les valeurs
`computed_at` dépendent de l'horloge.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from itertools import combinations

from backend.domain.entities import (
    Aspect,
    BirthProfile,
    ChartSnapshot,
    HouseCusp,
    PlanetId,
    PlanetPlacement,
)
from backend.domain.zodiac import (
    SIGN_SPAN,
    calculate_aspect,
    degree_to_sign,
    house_of,
    normalize_longitude,
)

MS_PER_DAY = 86_400_000
UNIX_EPOCH_JD = 2440587.5
MEAN_SOLAR_MOTION = 0.9856  # degrés par jour
HOUR_ANGLE = 15.0  # degrés par heure

MOON_OFFSET = 120.0
PLANET_OFFSETS: tuple[tuple[PlanetId, float], ...] = (
    (PlanetId.MERCURY, 30.0),
    (PlanetId.VENUS, 60.0),
    (PlanetId.MARS, 90.0),
    (PlanetId.JUPITER, 150.0),
    (PlanetId.SATURN, 210.0),
)
ASC_HOUSE = 1
MC_HOUSE = 10
HOUSE_COUNT = 12


def _as_utc(instant: datetime) -> datetime:
    """Les instants naïfs sont interprétés comme UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


def julian_day(instant: datetime) -> float:
    """Jour julien d'un instant: `unix_ms / 86 400 000 + 2 440 587.5`."""
    unix_ms = _as_utc(instant).timestamp() * 1000
    return unix_ms / MS_PER_DAY + UNIX_EPOCH_JD


def sun_longitude(jd: float) -> float:
    """Longitude du Soleil par approximation linéaire du mouvement moyen."""
    return normalize_longitude(normalize_longitude(jd) * MEAN_SOLAR_MOTION)


def ascendant_longitude(instant: datetime, longitude: float) -> float:
    """Ascendant: `(jour_de_l_annee * 0.9856 + heure_decimale * 15 + longitude) mod 360`."""
    utc = _as_utc(instant)
    day_of_year = utc.timetuple().tm_yday
    hour = utc.hour + utc.minute / 60
    return normalize_longitude(day_of_year * MEAN_SOLAR_MOTION + hour * HOUR_ANGLE + longitude)


def _placement(planet: PlanetId, longitude: float, house: int) -> PlanetPlacement:
    position = degree_to_sign(longitude)
    return PlanetPlacement(
        planet=planet,
        longitude=position.longitude,
        sign=position.sign,
        sign_degree=position.degree,
        house=house,
    )


class SimplifiedEphemerisEngine:
    """
    Moteur de thème natal à modèle simplifié.

    Le modèle n'est pas astronomiquement exact; sa structure (décalages, maisons égales, orbe
    unique de 8°) est conservée telle quelle car toutes les analyses en aval en dépendent.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None):
        """
        Initialise le moteur.

        Args:
            clock: Horloge utilisée pour `computed_at` (UTC courant par défaut).
        """
        self._clock = clock or (lambda: datetime.now(UTC))

    def compute_natal_chart(self, profile: BirthProfile) -> ChartSnapshot:
        """Calculate the natal chart of a stored birth profile."""
        return self.compute_chart(profile.birth_instant, profile.latitude, profile.longitude)

    def compute_chart(
        self, birth_instant: datetime, latitude: float, longitude: float
    ) -> ChartSnapshot:
        """
        Calculate a simplified natal chart.

        Args:
            birth_instant: Instant de naissance (naïf = UTC).
            latitude: Latitude décimale (non utilisée par le modèle simplifié).
            longitude: Longitude décimale, utilisée pour l'Ascendant.

        Returns:
            ChartSnapshot: 9 placements, aspects et 12 cuspides.
        """
        jd = julian_day(birth_instant)
        sun = sun_longitude(jd)
        asc = ascendant_longitude(birth_instant, longitude)
        mc = normalize_longitude(asc + 90.0)

        longitudes: list[tuple[PlanetId, float]] = [
            (PlanetId.SUN, sun),
            (PlanetId.MOON, normalize_longitude(sun + MOON_OFFSET)),
        ]
        longitudes += [
            (planet, normalize_longitude(sun + offset)) for planet, offset in PLANET_OFFSETS
        ]

        planets: dict[PlanetId, PlanetPlacement] = {
            planet: _placement(planet, lon, house_of(lon, asc)) for planet, lon in longitudes
        }
        planets[PlanetId.ASC] = _placement(PlanetId.ASC, asc, ASC_HOUSE)
        planets[PlanetId.MC] = _placement(PlanetId.MC, mc, MC_HOUSE)

        return ChartSnapshot(
            birth_profile=BirthProfile(
                birth_instant=birth_instant, latitude=latitude, longitude=longitude
            ),
            julian_day=jd,
            planets=planets,
            aspects=self.compute_aspects(planets),
            houses=self.compute_houses(asc),
            computed_at=self._clock(),
        )

    def compute_aspects(self, planets: dict[PlanetId, PlanetPlacement]) -> list[Aspect]:
        """Détecte au plus un aspect par paire non ordonnée, dans l'ordre des corps."""
        aspects: list[Aspect] = []
        for first, second in combinations(planets.values(), 2):
            match = calculate_aspect(first.longitude, second.longitude)
            if match is None:
                continue
            aspects.append(
                Aspect(
                    planet_a=first.planet,
                    planet_b=second.planet,
                    aspect_type=match.aspect_type,
                    orb=match.orb,
                    exact=match.exact,
                )
            )
        return aspects

    def compute_houses(self, ascendant: float) -> list[HouseCusp]:
        """Douze cuspides espacées de 30° à partir de l'Ascendant."""
        cusps: list[HouseCusp] = []
        for i in range(HOUSE_COUNT):
            position = degree_to_sign(ascendant + i * SIGN_SPAN)
            cusps.append(
                HouseCusp(
                    number=i + 1,
                    cusp_longitude=position.longitude,
                    sign=position.sign,
                    sign_degree=position.degree,
                )
            )
        return cusps
