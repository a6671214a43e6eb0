"""Pipeline d'analyse de destinée.

Enchaîne: prompt (thème + souvenirs + horizon) -> appel LLM avec retry -> normalisation JSON.
Aucune exception ne franchit `analyze`: la configuration manquante et les échecs de requête
deviennent un `AnalysisError`, une sortie illisible devient un résultat de repli.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, date, datetime

import structlog

from backend.core.constants import RECENT_RECORDS_LIMIT
from backend.domain.entities import (
    AnalysisError,
    AnalysisKind,
    AnalysisResult,
    ChartSnapshot,
    LifeRecord,
)
from backend.domain.fate_parser import parse_analysis
from backend.domain.fate_prompt import build_prompt
from backend.infra.llm.base import LLM, LLMConfigurationError, LLMError

log = structlog.get_logger(__name__)

MISSING_KEY_MESSAGE = "Configurez la clé API Gemini pour utiliser cette fonctionnalité."


class FateAnalysisService:
    """Service d'analyse de destinée par horizon (passé, 7 jours, mois, année)."""

    def __init__(
        self,
        llm: LLM,
        today: Callable[[], date] | None = None,
        records_limit: int = RECENT_RECORDS_LIMIT,
    ):
        """Initialise le service avec son LLM, son horloge et la taille de l'historique."""
        self.llm = llm
        self._today = today or (lambda: datetime.now(UTC).date())
        self.records_limit = records_limit

    async def analyze(
        self,
        snapshot: ChartSnapshot,
        records: Sequence[LifeRecord],
        kind: AnalysisKind,
    ) -> AnalysisResult | AnalysisError:
        """Analyse un thème pour un horizon donné; ne lève jamais."""
        if not self.llm.configured:
            return AnalysisError(error=MISSING_KEY_MESSAGE)
        try:
            prompt = build_prompt(snapshot, records, kind, self._today(), self.records_limit)
            text = await self.llm.generate(prompt)
        except LLMConfigurationError:
            return AnalysisError(error=MISSING_KEY_MESSAGE)
        except LLMError as err:
            log.error("fate_analysis_failed", kind=kind, error=str(err))
            return AnalysisError(error=f"Échec de l'analyse : {str(err) or 'erreur inconnue'}")
        except Exception as err:
            log.exception("fate_analysis_crashed", kind=kind)
            return AnalysisError(error=f"Échec de l'analyse : {str(err) or 'erreur inconnue'}")
        return parse_analysis(text)
