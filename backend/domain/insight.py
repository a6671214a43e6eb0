"""Relecture de vie (synthèse Markdown des souvenirs)."""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from backend.domain.entities import AnalysisError, InsightResult, LifeRecord
from backend.infra.llm.base import LLM, LLMConfigurationError, LLMError

log = structlog.get_logger(__name__)

TYPE_LABELS = {"achievement": "Accomplissement", "wish": "Souhait"}
IMPORTANCE_LABELS = {"major": "Majeur", "minor": "Mineur"}
EMOTION_LABELS = {
    "happy": "joyeux",
    "excited": "enthousiaste",
    "grateful": "reconnaissant",
    "peaceful": "apaisé",
    "satisfied": "satisfait",
    "proud": "fier",
    "hopeful": "plein d'espoir",
    "loved": "aimé",
    "content": "comblé",
    "neutral": "neutre",
    "calm": "calme",
    "focused": "concentré",
    "sad": "triste",
    "angry": "en colère",
    "anxious": "anxieux",
    "stressed": "stressé",
    "tired": "fatigué",
    "frustrated": "frustré",
    "lonely": "seul",
    "worried": "inquiet",
    "disappointed": "déçu",
    "confused": "perplexe",
    "bored": "ennuyé",
    "annoyed": "agacé",
}

REVIEWER = """Tu es un analyste professionnel de parcours de vie. À partir des souvenirs ci-dessous, propose une analyse objective et approfondie.

Consignes :
1. Appuie-toi uniquement sur les faits fournis, sans inventer ni extrapoler.
2. Dégage la trajectoire de croissance, les compétences clés et les valeurs.
3. Analyse les schémas émotionnels et leur évolution (combinaisons et liens entre émotions).
4. Relie les événements entre eux pour faire ressortir causes et motifs récurrents.
5. Tiens compte des lieux, des personnes présentes et du contexte social.
6. Signale les tendances nettes.
7. Termine par des observations et suggestions constructives.
8. Rédige en Markdown, avec une structure claire.
9. Adopte un ton professionnel, chaleureux et inspirant."""

NO_RECORDS_MESSAGE = "Ajoutez d'abord quelques souvenirs pour obtenir une relecture."
MISSING_KEY_MESSAGE = "Configurez la clé API Gemini pour utiliser cette fonctionnalité."
EMPTY_OUTPUT = "Impossible de générer le contenu."


def _location_name(record: LifeRecord) -> str | None:
    if isinstance(record.location, dict):
        return record.location.get("name")
    return record.location


def format_record(index: int, record: LifeRecord, titles: dict[str, str]) -> str:
    """Bloc texte détaillé d'un souvenir (type, importance, émotions, contexte)."""
    moment = record.date or record.created_at
    day = moment.date().isoformat() if moment else "date inconnue"
    kind = TYPE_LABELS.get(record.type or "", "Événement")
    importance = IMPORTANCE_LABELS.get(record.importance or "", "Normal")
    lines = [
        f"{index}. [{kind}] {record.title}",
        f"   Date : {day}",
        f"   Importance : {importance}",
        f"   Description : {record.description or 'aucune'}",
    ]
    if record.emotions:
        emotions = ", ".join(EMOTION_LABELS.get(e, e) for e in record.emotions)
        if record.emotion_note:
            emotions += f" ({record.emotion_note})"
        lines.append(f"   Émotions : {emotions}")
    location = _location_name(record)
    if location:
        lines.append(f"   Lieu : {location}")
    if record.participants:
        lines.append(f"   Participants : {', '.join(record.participants)}")
    if record.tags:
        lines.append(f"   Étiquettes : {', '.join(record.tags)}")
    if record.category:
        lines.append(f"   Catégorie : {record.category}")
    related = [titles[rid] for rid in record.related_events if rid in titles]
    if related:
        lines.append(f"   Événements liés : {', '.join(related)}")
    return "\n".join(lines)


def build_insight_prompt(records: Sequence[LifeRecord]) -> str:
    """Prompt de relecture: consignes puis souvenirs détaillés."""
    titles = {r.id: r.title for r in records if r.id}
    body = "\n\n".join(format_record(i, r, titles) for i, r in enumerate(records, start=1))
    return f"{REVIEWER}\n\nSouvenirs de l'utilisateur :\n{body}\n\nCommence l'analyse :"


class InsightService:
    """Service de relecture de vie au format Markdown."""

    def __init__(self, llm: LLM):
        """Initialise le service avec son LLM."""
        self.llm = llm

    async def summarize(self, records: Sequence[LifeRecord]) -> InsightResult | AnalysisError:
        """Produit la relecture des souvenirs; ne lève jamais."""
        if not records:
            return AnalysisError(error=NO_RECORDS_MESSAGE)
        if not self.llm.configured:
            return AnalysisError(error=MISSING_KEY_MESSAGE)
        try:
            text = await self.llm.generate(build_insight_prompt(records))
        except LLMConfigurationError:
            return AnalysisError(error=MISSING_KEY_MESSAGE)
        except LLMError as err:
            log.error("insight_failed", error=str(err))
            return AnalysisError(error=f"Échec de la relecture : {str(err) or 'erreur inconnue'}")
        except Exception as err:
            log.exception("insight_crashed")
            return AnalysisError(error=f"Échec de la relecture : {str(err) or 'erreur inconnue'}")
        return InsightResult(insight=text.strip() or EMPTY_OUTPUT)
