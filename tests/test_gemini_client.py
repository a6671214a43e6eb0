"""Tests pour le client Gemini (transport httpx, retry et backoff).

Le réseau est remplacé par un `httpx.MockTransport` et l'attente par une fonction qui enregistre
les délais demandés.
"""

from __future__ import annotations

import json

import httpx
import pytest

from backend.infra.llm.base import LLMConfigurationError, LLMRequestError
from backend.infra.llm.gemini_client import (
    GeminiLLM,
    RetryPolicy,
    extract_text,
    is_retryable_message,
)

OVERLOADED = {"error": {"code": 503, "message": "The model is overloaded. Please try again later."}}
SUCCESS = {"candidates": [{"content": {"parts": [{"text": "Bonjour"}]}}]}
EXPECTED_ATTEMPTS = 4


class _Recorder:
    """Fausse attente: enregistre les délais (secondes) sans dormir."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def _llm(handler, sleep=None, api_key: str | None = "test-key") -> GeminiLLM:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiLLM(
        api_key=api_key,
        model="gemini-test",
        base_url="https://gemini.local/v1beta",
        client=client,
        sleep=sleep or _Recorder(),
    )


def test_retry_policy_delays() -> None:
    """Teste le backoff exponentiel plafonné: 1s, 2s, 4s, 8s puis 10s."""
    policy = RetryPolicy()
    assert [policy.delay_ms(i) for i in range(5)] == [1000, 2000, 4000, 8000, 10000]


def test_is_retryable_message() -> None:
    """Teste la détection des erreurs de surcharge passagère."""
    assert is_retryable_message("The model is OVERLOADED")
    assert is_retryable_message("Please try again later")
    assert not is_retryable_message("API key not valid")


def test_extract_text_tolerates_missing_candidates() -> None:
    """Teste l'extraction du texte et sa tolérance aux réponses vides."""
    assert extract_text(SUCCESS) == "Bonjour"
    assert extract_text({"candidates": []}) == ""
    assert extract_text({}) == ""


@pytest.mark.asyncio
async def test_generate_success_request_shape() -> None:
    """Teste l'URL, l'en-tête de clé et le corps envoyés."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=SUCCESS)

    llm = _llm(handler)
    assert await llm.generate("Salut") == "Bonjour"

    request = seen[0]
    assert str(request.url) == "https://gemini.local/v1beta/models/gemini-test:generateContent"
    assert request.headers["x-goog-api-key"] == "test-key"
    assert json.loads(request.content) == {"contents": [{"parts": [{"text": "Salut"}]}]}
    await llm.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize("api_key", [None, "", "your_gemini_api_key"])
async def test_generate_without_key_makes_no_call(api_key) -> None:
    """Teste qu'aucune requête n'est émise sans clé réelle."""
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=SUCCESS)

    llm = _llm(handler, api_key=api_key)
    assert llm.configured is False
    with pytest.raises(LLMConfigurationError):
        await llm.generate("Salut")
    assert calls == []


@pytest.mark.asyncio
async def test_overloaded_retries_then_fails() -> None:
    """Teste 4 tentatives au total avec des attentes de 1, 2 et 4 secondes."""
    calls: list[httpx.Request] = []
    recorder = _Recorder()

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, json=OVERLOADED)

    llm = _llm(handler, sleep=recorder)
    with pytest.raises(LLMRequestError, match="overloaded"):
        await llm.generate("Salut")
    assert len(calls) == EXPECTED_ATTEMPTS
    assert recorder.delays == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_overloaded_then_success() -> None:
    """Teste qu'une surcharge passagère suivie d'un succès renvoie le texte."""
    responses = [httpx.Response(503, json=OVERLOADED), httpx.Response(200, json=SUCCESS)]
    recorder = _Recorder()

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    llm = _llm(handler, sleep=recorder)
    assert await llm.generate("Salut") == "Bonjour"
    assert recorder.delays == [1.0]


@pytest.mark.asyncio
async def test_non_retryable_error_aborts() -> None:
    """Teste qu'une erreur non réessayable échoue dès la première tentative."""
    calls: list[httpx.Request] = []
    recorder = _Recorder()

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, json={"error": {"message": "API key not valid"}})

    llm = _llm(handler, sleep=recorder)
    with pytest.raises(LLMRequestError) as excinfo:
        await llm.generate("Salut")
    assert excinfo.value.status_code == 400
    assert "API key not valid" in str(excinfo.value)
    assert len(calls) == 1
    assert recorder.delays == []


@pytest.mark.asyncio
async def test_error_without_body_uses_status() -> None:
    """Teste le message par défaut quand la réponse d'erreur n'a pas de corps JSON."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="Internal")

    llm = _llm(handler)
    with pytest.raises(LLMRequestError, match="API error: 500"):
        await llm.generate("Salut")


@pytest.mark.asyncio
async def test_transport_errors_are_retried() -> None:
    """Teste qu'une erreur réseau est réessayée comme une surcharge."""
    attempts: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        if len(attempts) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=SUCCESS)

    recorder = _Recorder()
    llm = _llm(handler, sleep=recorder)
    assert await llm.generate("Salut") == "Bonjour"
    assert recorder.delays == [1.0, 2.0]
