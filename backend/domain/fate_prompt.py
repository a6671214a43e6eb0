"""Construction des prompts d'analyse de destinée.

Fonctions pures: thème + souvenirs + horizon -> texte du prompt. Aucune E/S.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from backend.core.constants import RECENT_RECORDS_LIMIT
from backend.domain.entities import AnalysisKind, ChartSnapshot, LifeRecord
from backend.domain.fingerprint import to_epoch_ms
from backend.domain.zodiac import ASPECT_LABELS, PLANET_LABELS, SIGN_LABELS

PERSONA = (
    "Tu es un astrologue chevronné, avec vingt ans d'expérience de lecture de thèmes. "
    "À partir du thème natal ci-dessous et, s'ils existent, des souvenirs consignés par "
    "l'utilisateur, livre une analyse approfondie."
)

MONTHS_FR = (
    "janvier",
    "février",
    "mars",
    "avril",
    "mai",
    "juin",
    "juillet",
    "août",
    "septembre",
    "octobre",
    "novembre",
    "décembre",
)


@dataclass(frozen=True)
class HorizonBlock:
    """Consignes propres à un horizon d'analyse."""

    instructions: str
    date_range: str
    example_date: date


def _fr_date(day: date) -> str:
    return f"{day.day} {MONTHS_FR[day.month - 1]} {day.year}"


def format_chart(snapshot: ChartSnapshot) -> str:
    """Résumé texte du thème: une ligne par corps puis une ligne par aspect."""
    lines = ["## Positions planétaires"]
    for placement in snapshot.planets.values():
        lines.append(
            f"- {PLANET_LABELS[placement.planet]} : {SIGN_LABELS[placement.sign]} "
            f"{placement.sign_degree:.1f}° (maison {placement.house})"
        )
    if snapshot.aspects:
        lines.append("")
        lines.append("## Aspects majeurs")
        for aspect in snapshot.aspects:
            lines.append(
                f"- {PLANET_LABELS[aspect.planet_a]} {ASPECT_LABELS[aspect.aspect_type]} "
                f"{PLANET_LABELS[aspect.planet_b]} (orbe {aspect.orb:.1f}°)"
            )
    return "\n".join(lines)


def _record_moment(record: LifeRecord) -> datetime | None:
    return record.date or record.created_at or record.updated_at


def _record_day(record: LifeRecord) -> str:
    moment = _record_moment(record)
    return moment.date().isoformat() if moment else "date inconnue"


def recent_records(
    records: Sequence[LifeRecord], limit: int = RECENT_RECORDS_LIMIT
) -> list[LifeRecord]:
    """Les `limit` souvenirs les plus récents (date de l'événement), du plus récent au plus ancien."""

    def _sort_key(record: LifeRecord) -> int:
        moment = _record_moment(record)
        return to_epoch_ms(moment) if moment else 0

    return sorted(records, key=_sort_key, reverse=True)[:limit]


def format_records(records: Sequence[LifeRecord], limit: int = RECENT_RECORDS_LIMIT) -> str:
    """Liste numérotée `N. date - titre: description` des souvenirs récents."""
    lines = []
    for idx, record in enumerate(recent_records(records, limit), start=1):
        line = f"{idx}. {_record_day(record)} - {record.title}"
        if record.description:
            line += f": {record.description}"
        lines.append(line)
    return "\n".join(lines)


def horizon_block(kind: AnalysisKind, today: date) -> HorizonBlock:
    """Consignes et plage de dates des moments clés selon l'horizon.

    Un type inconnu retombe sur l'horizon des sept prochains jours.
    """
    current = _fr_date(today)
    if kind == "past":
        return HorizonBlock(
            instructions=(
                f"En te plaçant à la date du {current}, reviens sur les grands cycles "
                "astrologiques passés et sur les souvenirs consignés pour montrer comment le "
                "passé éclaire le présent. Insiste sur:\n"
                "- les cycles marquants déjà traversés (retour de Saturne, cycles de Jupiter...)\n"
                "- la trajectoire de croissance visible dans les souvenirs\n"
                "- la façon dont ces expériences ont façonné la personne d'aujourd'hui\n"
                "- les leçons à en tirer"
            ),
            date_range="les périodes marquantes du passé",
            example_date=today - timedelta(days=180),
        )
    if kind == "monthly":
        month = MONTHS_FR[today.month - 1]
        return HorizonBlock(
            instructions=(
                f"En te plaçant à la date du {current}, analyse la tonalité d'ensemble du mois "
                f"de {month}. Insiste sur:\n"
                "- les principaux cycles astrologiques du mois\n"
                "- l'évolution de l'énergie dans les différentes maisons\n"
                "- les dates charnières du mois\n"
                "- le thème dominant et la tendance générale"
            ),
            date_range=f"le mois de {month} {today.year}",
            example_date=today.replace(day=15),
        )
    if kind == "yearly":
        return HorizonBlock(
            instructions=(
                f"En te plaçant à la date du {current}, dresse les perspectives de l'année "
                f"{today.year}. Insiste sur:\n"
                "- les grands cycles de l'année (Jupiter, Saturne...)\n"
                "- les thèmes portés par chaque maison cette année\n"
                "- les dates charnières et tournants de l'année\n"
                "- les opportunités et les défis de l'année"
            ),
            date_range=f"l'année {today.year}",
            example_date=date(today.year, 6, 15),
        )
    return HorizonBlock(
        instructions=(
            f"En te plaçant à la date du {current}, analyse les sept prochains jours. "
            "Insiste sur:\n"
            "- les principaux mouvements célestes de la semaine\n"
            "- l'effet des planètes en transit sur le thème natal\n"
            "- les moments clés à surveiller\n"
            "- la tendance énergétique et les opportunités de la semaine"
        ),
        date_range="les sept prochains jours",
        example_date=today + timedelta(days=3),
    )


def output_contract(block: HorizonBlock) -> str:
    """Description stricte du JSON attendu en sortie."""
    return f"""**Exigences impératives :**
1. Réponds uniquement par un objet JSON strict, sans aucun texte autour.
2. Structure attendue :
{{
  "futureGuidance": {{
    "paragraph1": "Premier paragraphe (300 à 500 mots) sur l'énergie d'ensemble et les influences majeures pour {block.date_range}",
    "paragraph2": "Second paragraphe (200 à 300 mots) avec des conseils concrets et des points de vigilance"
  }},
  "spiritualityIndex": 78,
  "career": {{"title": "Carrière", "content": "Analyse détaillée de la vie professionnelle (maisons et aspects concernés)"}},
  "emotion": {{"title": "Émotions", "content": "Analyse détaillée de la vie affective et relationnelle"}},
  "energy": {{"title": "Énergie", "content": "Analyse détaillée de la vitalité et de l'équilibre corps-esprit"}},
  "keyNodes": [
    {{"date": "{block.example_date.isoformat()}", "description": "Description d'un moment astrologique clé"}}
  ]
}}
3. Donne 3 à 5 moments clés (keyNodes), datés dans {block.date_range}.
4. spiritualityIndex est un entier entre 0 et 100 fondé sur les configurations spirituelles du thème (maison 12, Poissons...).
5. Appuie chaque section sur les positions, maisons et aspects précis du thème.
6. Emploie le vocabulaire astrologique tout en restant compréhensible.
7. Toutes les dates au format YYYY-MM-DD."""


def build_prompt(
    snapshot: ChartSnapshot,
    records: Sequence[LifeRecord],
    kind: AnalysisKind,
    today: date,
    limit: int = RECENT_RECORDS_LIMIT,
) -> str:
    """Assemble le prompt complet: persona, thème, souvenirs, horizon et contrat JSON."""
    block = horizon_block(kind, today)
    sections = [PERSONA, format_chart(snapshot)]
    records_text = format_records(records, limit)
    if records_text:
        sections.append(f"## Souvenirs récents\n\n{records_text}")
    sections.append(block.instructions)
    sections.append(output_contract(block))
    return "\n\n".join(sections)
