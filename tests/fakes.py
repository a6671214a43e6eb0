"""
Fakes pour les tests unitaires.

Ce module fournit un LLM factice scriptable (réponses fixes ou calculées à partir du prompt) et un
client Redis minimal en mémoire, pour tester sans réseau ni serveur.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

from backend.infra.llm.base import LLM

VALID_ANALYSIS_JSON = """{
  "futureGuidance": {"paragraph1": "Une période d'ouverture.", "paragraph2": "Restez attentif."},
  "spiritualityIndex": 72,
  "career": {"title": "Carrière", "content": "Mars en maison 10."},
  "emotion": {"title": "Émotions", "content": "La Lune apaise."},
  "energy": {"title": "Énergie", "content": "Vitalité stable."},
  "keyNodes": [{"date": "2026-10-21", "description": "Trigone Soleil-Lune"}]
}"""


class FakeLLM(LLM):
    """
    LLM factice pour les tests.

    `responder` reçoit le prompt et renvoie le texte (ou lève une exception); par défaut, une
    analyse JSON valide. Les prompts reçus sont conservés dans `prompts`.
    """

    def __init__(
        self,
        responder: Callable[[str], str] | None = None,
        configured: bool = True,
    ) -> None:
        self.responder = responder or (lambda prompt: VALID_ANALYSIS_JSON)
        self._configured = configured
        self.prompts: list[str] = []
        self.closed = False

    @property
    def configured(self) -> bool:
        return self._configured

    @configured.setter
    def configured(self, value: bool) -> None:
        self._configured = value

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.responder(prompt)

    async def aclose(self) -> None:
        self.closed = True


class FakeRedis:
    """Sous-ensemble get/set/delete d'un client Redis, en mémoire."""

    def __init__(self) -> None:
        self.store: dict[str, Any] = {}

    def get(self, key: str) -> Any:
        return self.store.get(key)

    def set(self, key: str, value: Any) -> bool:
        self.store[key] = value
        return True

    def delete(self, key: str) -> int:
        return 1 if self.store.pop(key, None) is not None else 0


class FixedClock:
    """Horloge déplaçable, pour les seaux temporels du cache."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def today(self) -> date:
        return self.now.astimezone(UTC).date()
