"""
Tests pour le pipeline d'analyse de destinée.

Ce module teste la construction du prompt (thème, souvenirs récents, horizon) et la conversion des
échecs du LLM en résultats d'erreur.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

import pytest

from backend.domain.entities import AnalysisError, AnalysisResult, LifeRecord
from backend.domain.fate_analysis import MISSING_KEY_MESSAGE, FateAnalysisService
from backend.domain.fate_prompt import (
    build_prompt,
    format_chart,
    format_records,
    horizon_block,
    recent_records,
)
from backend.infra.astro.simplified_ephemeris import SimplifiedEphemerisEngine
from backend.infra.llm.base import LLM, LLMConfigurationError, LLMRequestError
from tests.fakes import VALID_ANALYSIS_JSON, FakeLLM

TODAY = date(2026, 10, 18)


@pytest.fixture
def chart(birth_profile):
    return SimplifiedEphemerisEngine().compute_natal_chart(birth_profile)


def _records(count: int) -> list[LifeRecord]:
    base = datetime(2026, 1, 1, tzinfo=UTC)
    return [
        LifeRecord(title=f"Souvenir {i}", description=f"Détail {i}", date=base + timedelta(days=i))
        for i in range(count)
    ]


def test_format_chart_lists_bodies_and_aspects(chart) -> None:
    """Teste le résumé du thème: une ligne par corps, section des aspects."""
    text = format_chart(chart)
    assert "## Positions planétaires" in text
    assert "- Soleil : Cancer" in text
    assert "(maison " in text
    assert "## Aspects majeurs" in text
    assert "Soleil trigone Lune" in text


def test_recent_records_most_recent_first() -> None:
    """Teste le tri par date décroissante et la limite."""
    records = _records(25)
    recent = recent_records(records, limit=20)
    assert len(recent) == 20
    assert recent[0].title == "Souvenir 24"
    assert recent[-1].title == "Souvenir 5"


def test_format_records_line_shape() -> None:
    """Teste le format `N. date - titre: description`."""
    text = format_records(_records(1))
    assert text == "1. 2026-01-01 - Souvenir 0: Détail 0"


def test_horizon_blocks() -> None:
    """Teste les plages de dates des horizons et le repli sur sept jours."""
    assert horizon_block("monthly", TODAY).date_range == "le mois de octobre 2026"
    assert horizon_block("yearly", TODAY).date_range == "l'année 2026"
    assert horizon_block("next7days", TODAY).example_date == date(2026, 10, 21)
    assert horizon_block("insight", TODAY) == horizon_block("next7days", TODAY)


def test_build_prompt_sections(chart) -> None:
    """Teste l'assemblage du prompt avec et sans souvenirs."""
    with_records = build_prompt(chart, _records(3), "past", TODAY)
    assert "## Souvenirs récents" in with_records
    assert "keyNodes" in with_records
    without = build_prompt(chart, [], "past", TODAY)
    assert "## Souvenirs récents" not in without


@pytest.mark.asyncio
async def test_analyze_success(chart) -> None:
    """Teste une analyse réussie et le prompt transmis au LLM."""
    llm = FakeLLM()
    service = FateAnalysisService(llm, today=lambda: TODAY)
    result = await service.analyze(chart, _records(2), "monthly")

    assert isinstance(result, AnalysisResult)
    assert result.is_fallback is False
    assert "octobre" in llm.prompts[0]


@pytest.mark.asyncio
async def test_analyze_unreadable_output_is_fallback(chart) -> None:
    """Teste qu'une sortie illisible donne un résultat de repli, pas une erreur."""
    service = FateAnalysisService(FakeLLM(lambda prompt: "pas du JSON"), today=lambda: TODAY)
    result = await service.analyze(chart, [], "yearly")
    assert isinstance(result, AnalysisResult)
    assert result.is_fallback is True


@pytest.mark.asyncio
async def test_analyze_without_key(chart) -> None:
    """Teste le message de configuration quand la clé manque, sans appel au LLM."""
    llm = FakeLLM(configured=False)
    result = await FateAnalysisService(llm).analyze(chart, [], "past")
    assert result == AnalysisError(error=MISSING_KEY_MESSAGE)
    assert llm.prompts == []


@pytest.mark.asyncio
async def test_analyze_configuration_error_from_transport(chart) -> None:
    """Teste la conversion d'une erreur de configuration levée par le transport."""

    def _raise(prompt: str) -> str:
        raise LLMConfigurationError("no key")

    result = await FateAnalysisService(FakeLLM(_raise)).analyze(chart, [], "past")
    assert result == AnalysisError(error=MISSING_KEY_MESSAGE)


@pytest.mark.asyncio
async def test_analyze_request_error(chart) -> None:
    """Teste qu'un échec de requête devient un résultat d'erreur lisible."""

    def _raise(prompt: str) -> str:
        raise LLMRequestError("The model is overloaded", 503)

    result = await FateAnalysisService(FakeLLM(_raise)).analyze(chart, [], "next7days")
    assert isinstance(result, AnalysisError)
    assert result.error == "Échec de l'analyse : The model is overloaded"


@pytest.mark.asyncio
async def test_analyze_unexpected_error(chart) -> None:
    """Teste qu'une exception inattendue ne franchit pas le service."""

    def _raise(prompt: str) -> str:
        raise RuntimeError()

    result = await FateAnalysisService(FakeLLM(_raise)).analyze(chart, [], "past")
    assert isinstance(result, AnalysisError)
    assert result.error.endswith("erreur inconnue")


@pytest.mark.asyncio
@pytest.mark.parametrize("raw_index", ["null", "Infinity", "[1]"])
async def test_analyze_tolerates_unreadable_index(chart, raw_index: str) -> None:
    """Teste qu'un indice spirituel illisible ne fait pas échouer l'analyse."""
    body = VALID_ANALYSIS_JSON.replace('"spiritualityIndex": 72', f'"spiritualityIndex": {raw_index}')
    service = FateAnalysisService(FakeLLM(lambda prompt: body), today=lambda: TODAY)
    result = await service.analyze(chart, [], "yearly")
    assert isinstance(result, AnalysisResult)
    assert result.is_fallback is False
    assert result.spirituality_index == 50


class _MinimalLLM(LLM):
    def __init__(self) -> None:
        self.calls = 0

    async def generate(self, prompt: str) -> str:
        self.calls += 1
        return VALID_ANALYSIS_JSON


@pytest.mark.asyncio
async def test_llm_configured_by_default(chart) -> None:
    """Teste qu'un LLM sans notion de clé est considéré comme configuré."""
    llm = _MinimalLLM()
    assert llm.configured is True
    result = await FateAnalysisService(llm, today=lambda: TODAY).analyze(chart, [], "past")
    assert isinstance(result, AnalysisResult)
    assert llm.calls == 1
