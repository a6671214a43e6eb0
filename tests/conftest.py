"""Configuration de test pour pytest avec gestion des chemins.

Ce module configure pytest pour résoudre les imports backend en ajoutant la racine du projet au
sys.path, neutralise la configuration de stockage héritée de l'environnement et fournit les
fixtures communes (profil de référence, services du panneau sur dépôts mémoire).
"""

import os
import sys
from datetime import UTC, datetime
from unittest.mock import Mock, patch

import pytest

# Ensure project root is on sys.path so that
# imports like `from backend...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Le conteneur global est construit à l'import: stockage mémoire et LLM non configuré.
for _name in ("DATABASE_URL", "REDIS_URL", "REQUIRE_REDIS", "GEMINI_API_KEY"):
    os.environ.pop(_name, None)

from backend.domain.analysis_cache import AnalysisCacheStore  # noqa: E402
from backend.domain.astrology_panel import AstrologyPanelService  # noqa: E402
from backend.domain.entities import BirthProfile  # noqa: E402
from backend.domain.fate_analysis import FateAnalysisService  # noqa: E402
from backend.domain.insight import InsightService  # noqa: E402
from backend.infra.astro.simplified_ephemeris import SimplifiedEphemerisEngine  # noqa: E402
from backend.infra.repositories import (  # noqa: E402
    InMemoryAnalysisCacheRepo,
    InMemoryProfileRepo,
)
from tests.fakes import FakeLLM, FixedClock  # noqa: E402

REFERENCE_NOW = datetime(2026, 10, 18, 9, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def mock_redis_connection():
    """Mock Redis connections pour éviter les erreurs de connexion dans les tests."""
    with patch("redis.Redis") as mock_redis:
        mock_redis_instance = Mock()
        mock_redis_instance.ping.return_value = True
        mock_redis_instance.get.return_value = None
        mock_redis_instance.set.return_value = True
        mock_redis_instance.delete.return_value = 1
        mock_redis.return_value = mock_redis_instance
        mock_redis.from_url.return_value = mock_redis_instance
        yield mock_redis_instance


@pytest.fixture
def birth_profile() -> BirthProfile:
    """Profil de référence: 15 juin 2000, 08:30 UTC, Pékin."""
    return BirthProfile(
        birth_instant=datetime(2000, 6, 15, 8, 30, tzinfo=UTC),
        latitude=39.9042,
        longitude=116.4074,
    )


@pytest.fixture
def clock() -> FixedClock:
    """Horloge figée au 18 octobre 2026, 09:00 UTC."""
    return FixedClock(REFERENCE_NOW)


@pytest.fixture
def fake_llm() -> FakeLLM:
    """LLM factice renvoyant une analyse JSON valide."""
    return FakeLLM()


@pytest.fixture
def panel(fake_llm: FakeLLM, clock: FixedClock) -> AstrologyPanelService:
    """Service du panneau câblé sur des dépôts mémoire et le LLM factice."""
    cache = AnalysisCacheStore(InMemoryAnalysisCacheRepo(), clock=clock)
    return AstrologyPanelService(
        InMemoryProfileRepo(),
        SimplifiedEphemerisEngine(clock=clock),
        cache,
        FateAnalysisService(fake_llm, today=clock.today),
        InsightService(fake_llm),
    )
