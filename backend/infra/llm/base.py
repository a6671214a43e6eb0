"""Interface de base pour les modèles de langage et erreurs associées."""

from __future__ import annotations

from abc import ABC, abstractmethod


class LLMError(Exception):
    """Erreur générique du transport LLM."""


class LLMConfigurationError(LLMError):
    """Clé API absente ou laissée à sa valeur d'exemple."""


class LLMOverloadedError(LLMError):
    """Surcharge passagère du service (réessayable)."""


class LLMRequestError(LLMError):
    """Échec définitif de la requête (non réessayable ou retries épuisés)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialise l'erreur avec le code HTTP éventuel."""
        super().__init__(message)
        self.status_code = status_code


class LLM(ABC):
    """Interface abstraite pour les modèles de langage."""

    @property
    def configured(self) -> bool:
        """Indique si le transport peut être appelé (clé présente, par exemple)."""
        return True

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Génère le texte de sortie pour un prompt unique."""
        ...

    async def aclose(self) -> None:
        """Libère les ressources réseau éventuelles."""
        return None
