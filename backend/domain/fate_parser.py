"""Normalisation de la sortie du modèle en `AnalysisResult`.

La sortie attendue est un objet JSON brut ou encadré par un bloc ```json. Une sortie illisible ou
incomplète ne remonte pas d'erreur: elle produit un résultat de repli de même forme, marqué
`is_fallback`, dont chaque section contient un texte indicatif.
"""

from __future__ import annotations

import json
import re
from typing import Any

import structlog
from pydantic import ValidationError

from backend.domain.entities import AnalysisResult, KeyNode

log = structlog.get_logger(__name__)

REQUIRED_FIELDS = ("futureGuidance", "career", "emotion", "energy", "keyNodes")
FALLBACK_TEXT = "Le résultat de l'analyse n'a pas pu être interprété."
FALLBACK_GUIDANCE = "Le résultat de l'analyse n'a pas pu être interprété, réessayez plus tard."

_FENCE = re.compile(r"```(?:json)?\n?", re.IGNORECASE)


def strip_code_fence(text: str) -> str:
    """Retire les délimiteurs ``` / ```json entourant le JSON."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE.sub("", cleaned).strip()
    return cleaned


def fallback_result() -> AnalysisResult:
    """Résultat de repli: forme complète, textes indicatifs, aucun moment clé."""
    return AnalysisResult(
        future_guidance={"paragraph1": FALLBACK_GUIDANCE, "paragraph2": ""},
        spirituality_index=50,
        career={"title": "Carrière", "content": FALLBACK_TEXT},
        emotion={"title": "Émotions", "content": FALLBACK_TEXT},
        energy={"title": "Énergie", "content": FALLBACK_TEXT},
        key_nodes=[],
        is_fallback=True,
    )


def _coerce_section(value: Any) -> Any:
    if isinstance(value, str):
        return {"title": "", "content": value}
    return value


def _coerce_guidance(value: Any) -> Any:
    if isinstance(value, str):
        return {"paragraph1": value, "paragraph2": ""}
    return value


def _coerce_key_nodes(value: Any) -> list[dict[str, Any]]:
    """Garde les moments clés valides; les autres sont écartés sans invalider l'analyse."""
    if not isinstance(value, list):
        return []
    kept = []
    for node in value:
        try:
            kept.append(KeyNode.model_validate(node).model_dump())
        except ValidationError:
            continue
    return kept


def _coerce(data: dict[str, Any]) -> dict[str, Any]:
    coerced = dict(data)
    coerced["futureGuidance"] = _coerce_guidance(data["futureGuidance"])
    for name in ("career", "emotion", "energy"):
        coerced[name] = _coerce_section(data[name])
    coerced["keyNodes"] = _coerce_key_nodes(data["keyNodes"])
    return coerced


def parse_analysis(text: str) -> AnalysisResult:
    """Convertit le texte du modèle en `AnalysisResult`, ou en résultat de repli.

    Seuls les cinq champs obligatoires conditionnent le succès. Une section donnée en simple
    texte est enveloppée, un moment clé mal formé est écarté, un indice illisible vaut 50.
    """
    cleaned = strip_code_fence(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as err:
        log.warning("fate_output_not_json", error=str(err), raw=cleaned[:200])
        return fallback_result()

    if not isinstance(data, dict):
        log.warning("fate_output_not_object", raw=cleaned[:200])
        return fallback_result()
    missing = [name for name in REQUIRED_FIELDS if data.get(name) is None]
    if missing:
        log.warning("fate_output_incomplete", missing=missing)
        return fallback_result()

    try:
        result = AnalysisResult.model_validate(_coerce(data))
    except ValidationError as err:
        log.warning("fate_output_invalid", errors=err.error_count())
        return fallback_result()
    except Exception:
        log.exception("fate_output_unexpected")
        return fallback_result()
    return result.model_copy(update={"is_fallback": False})
