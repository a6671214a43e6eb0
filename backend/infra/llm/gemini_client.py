"""
Client LLM basé sur l'API Gemini `generateContent` avec retry et backoff exponentiel.

- POST `{base_url}/models/{model}:generateContent`, clé API en en-tête `x-goog-api-key`
- retries séquentiels sur surcharge passagère ("overloaded", "try again") et erreurs réseau
- délai `min(base * 2^tentative, max)` entre deux tentatives, timeout par tentative
- aucune requête si la clé est absente ou laissée à sa valeur d'exemple
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from backend.core.constants import (
    LLM_REQUEST_TIMEOUT_S,
    MAX_RETRY_ATTEMPTS,
    PLACEHOLDER_API_KEY,
    RETRY_BASE_DELAY_MS,
    RETRY_MAX_DELAY_MS,
    RETRYABLE_ERROR_MARKERS,
)
from backend.infra.llm.base import (
    LLM,
    LLMConfigurationError,
    LLMOverloadedError,
    LLMRequestError,
)

log = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-3-flash-preview"


@dataclass
class RetryPolicy:
    """Politique de retry: nombre de retries, backoff (ms) et timeout par tentative (s)."""

    max_retries: int = MAX_RETRY_ATTEMPTS
    base_delay_ms: int = RETRY_BASE_DELAY_MS
    max_delay_ms: int = RETRY_MAX_DELAY_MS
    timeout_s: float = LLM_REQUEST_TIMEOUT_S

    def delay_ms(self, attempt: int) -> int:
        """Délai avant la tentative `attempt + 1` (attempt commence à 0)."""
        return min(self.base_delay_ms * 2**attempt, self.max_delay_ms)


def is_retryable_message(message: str) -> bool:
    """Vrai si le message d'erreur signale une surcharge passagère."""
    lowered = message.lower()
    return any(marker in lowered for marker in RETRYABLE_ERROR_MARKERS)


def extract_text(data: dict[str, Any]) -> str:
    """Texte du premier candidat (`candidates[0].content.parts[0].text`), "" sinon."""
    try:
        return str(data["candidates"][0]["content"]["parts"][0]["text"] or "")
    except (KeyError, IndexError, TypeError):
        return ""


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return ""
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or "")
    return ""


class GeminiLLM(LLM):
    """
    LLM basé sur Gemini via httpx.

    Le client HTTP est créé à la première requête (ou injecté, p. ex. avec un `MockTransport`
    pour les tests).
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        retry: RetryPolicy | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the Gemini client."""
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.retry = retry or RetryPolicy()
        self._client = client
        self._sleep = sleep

    @property
    def configured(self) -> bool:
        """Vrai si une clé API réelle est disponible."""
        return bool(self.api_key) and self.api_key != PLACEHOLDER_API_KEY

    @property
    def url(self) -> str:
        """URL de l'endpoint generateContent du modèle."""
        return f"{self.base_url}/models/{self.model}:generateContent"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.retry.timeout_s))
        return self._client

    async def generate(self, prompt: str) -> str:
        """
        Génère du texte pour un prompt.

        Raises:
            LLMConfigurationError: clé API absente (aucun appel réseau).
            LLMRequestError: erreur non réessayable ou retries épuisés.
        """
        if not self.configured:
            raise LLMConfigurationError("GEMINI_API_KEY is not configured")

        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        last_error: Exception | None = None
        for attempt in range(self.retry.max_retries + 1):
            try:
                return await self._attempt_once(payload)
            except (LLMOverloadedError, httpx.TransportError) as err:
                last_error = err
                if attempt >= self.retry.max_retries:
                    break
                delay = self.retry.delay_ms(attempt)
                log.info(
                    "llm_retry",
                    model=self.model,
                    attempt=attempt + 1,
                    delay_ms=delay,
                    error=str(err) or type(err).__name__,
                )
                await self._sleep(delay / 1000)

        log.error("llm_retries_exhausted", model=self.model, max_retries=self.retry.max_retries)
        message = str(last_error) or type(last_error).__name__
        raise LLMRequestError(message) from last_error

    async def _attempt_once(self, payload: dict[str, Any]) -> str:
        """Une tentative: texte en cas de succès, exception typée sinon."""
        resp = await self._get_client().post(
            self.url,
            json=payload,
            headers={"Content-Type": "application/json", "x-goog-api-key": self.api_key or ""},
        )
        if resp.is_success:
            try:
                return extract_text(resp.json())
            except ValueError as err:
                raise LLMRequestError("invalid JSON body", resp.status_code) from err

        message = _error_message(resp)
        if is_retryable_message(message):
            raise LLMOverloadedError(message)
        raise LLMRequestError(message or f"API error: {resp.status_code}", resp.status_code)

    async def aclose(self) -> None:
        """Ferme le client HTTP s'il a été créé."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
