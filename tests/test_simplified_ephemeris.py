"""Tests pour le moteur à éphémérides simplifiées.

Ce module teste le calcul du thème: jour julien, longitudes dérivées du Soleil, Ascendant, maisons
égales et aspects, sur un profil de référence (Pékin, 15 juin 2000 08:30 UTC).
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from backend.domain.entities import PlanetId, ZodiacSign
from backend.domain.zodiac import ASPECT_ORB, calculate_angle, degree_to_sign
from backend.infra.astro.simplified_ephemeris import (
    SimplifiedEphemerisEngine,
    ascendant_longitude,
    julian_day,
    sun_longitude,
)

REFERENCE_INSTANT = datetime(2000, 6, 15, 8, 30, tzinfo=UTC)
EXPECTED_PLANET_COUNT = 9
EXPECTED_HOUSE_COUNT = 12


def test_julian_day_unix_epoch() -> None:
    """Teste que l'époque Unix correspond au jour julien 2440587.5."""
    assert julian_day(datetime(1970, 1, 1, tzinfo=UTC)) == pytest.approx(2440587.5)


def test_julian_day_naive_is_utc() -> None:
    """Teste qu'un instant naïf est interprété comme UTC."""
    assert julian_day(datetime(2000, 6, 15, 8, 30)) == pytest.approx(julian_day(REFERENCE_INSTANT))


def test_reference_sun_and_ascendant() -> None:
    """Teste le Soleil et l'Ascendant du profil de référence."""
    jd = julian_day(REFERENCE_INSTANT)
    assert jd == pytest.approx(2451710.8541667, abs=1e-6)
    sun = sun_longitude(jd)
    assert sun == pytest.approx(109.2579, abs=1e-3)
    assert degree_to_sign(sun).sign == ZodiacSign.CANCER
    asc = ascendant_longitude(REFERENCE_INSTANT, 116.4074)
    # jour 167 * 0.9856 + 8.5 h * 15 + 116.4074, modulo 360
    assert asc == pytest.approx(48.5026, abs=1e-3)


def test_reference_chart_structure(birth_profile) -> None:
    """Teste la structure du thème: 9 corps, 12 cuspides, orbes dans la tolérance."""
    chart = SimplifiedEphemerisEngine().compute_natal_chart(birth_profile)

    assert len(chart.planets) == EXPECTED_PLANET_COUNT
    assert set(chart.planets) == set(PlanetId)
    assert len(chart.houses) == EXPECTED_HOUSE_COUNT
    assert [h.number for h in chart.houses] == list(range(1, 13))
    for aspect in chart.aspects:
        assert 0 <= aspect.orb <= ASPECT_ORB
    for placement in chart.planets.values():
        assert 0 <= placement.longitude < 360
        assert 1 <= placement.house <= 12


def test_reference_chart_offsets(birth_profile) -> None:
    """Teste les décalages fixes des corps par rapport au Soleil."""
    chart = SimplifiedEphemerisEngine().compute_natal_chart(birth_profile)
    sun = chart.planets[PlanetId.SUN].longitude
    offsets = {
        PlanetId.MOON: 120,
        PlanetId.MERCURY: 30,
        PlanetId.VENUS: 60,
        PlanetId.MARS: 90,
        PlanetId.JUPITER: 150,
        PlanetId.SATURN: 150,  # 210° = 150° par le plus court chemin
    }
    for planet, offset in offsets.items():
        assert calculate_angle(sun, chart.planets[planet].longitude) == pytest.approx(offset)
    assert chart.planets[PlanetId.MOON].sign == ZodiacSign.SCORPIO


def test_angles_and_houses(birth_profile) -> None:
    """Teste l'Ascendant (maison 1), le MC (maison 10) et la première cuspide."""
    chart = SimplifiedEphemerisEngine().compute_natal_chart(birth_profile)
    asc = chart.planets[PlanetId.ASC]
    mc = chart.planets[PlanetId.MC]
    assert asc.house == 1
    assert mc.house == 10
    assert asc.sign == ZodiacSign.TAURUS
    assert mc.sign == ZodiacSign.LEO
    assert chart.houses[0].cusp_longitude == pytest.approx(asc.longitude)
    assert chart.houses[3].cusp_longitude == pytest.approx((asc.longitude + 90) % 360)


def test_aspects_include_sun_moon_trine(birth_profile) -> None:
    """Teste la détection du trigone Soleil-Lune, présent par construction."""
    chart = SimplifiedEphemerisEngine().compute_natal_chart(birth_profile)
    pairs = {(a.planet_a, a.planet_b): a.aspect_type.value for a in chart.aspects}
    assert pairs[(PlanetId.SUN, PlanetId.MOON)] == "trine"
    assert pairs[(PlanetId.SUN, PlanetId.MARS)] == "square"
    # une seule entrée par paire non ordonnée
    assert len(pairs) == len(chart.aspects)


def test_chart_is_deterministic(birth_profile) -> None:
    """Teste que deux calculs identiques ne diffèrent que par computed_at."""
    engine = SimplifiedEphemerisEngine(clock=lambda: REFERENCE_INSTANT)
    first = engine.compute_natal_chart(birth_profile)
    second = engine.compute_natal_chart(birth_profile)
    assert first == second
    assert first.computed_at == REFERENCE_INSTANT
