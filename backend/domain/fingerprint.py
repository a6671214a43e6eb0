"""Empreinte de cache des analyses.

Une analyse en cache reste valable tant que son empreinte est inchangée. L'empreinte combine le type
d'analyse, la date de naissance, le nombre de souvenirs, l'horodatage du dernier souvenir modifié
et, selon l'horizon, un "seau" temporel dérivé de la date courante (mois, jour ou année). Toute
variation invalide le cache paresseusement, à la lecture.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from backend.domain.entities import AnalysisKind, BirthProfile, LifeRecord


@dataclass(frozen=True)
class AnalysisContext:
    """Entrées dont dépend la validité d'une analyse en cache."""

    profile: BirthProfile | None = None
    records: Sequence[LifeRecord] = field(default_factory=tuple)


def to_epoch_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp() * 1000)


def record_timestamp(record: LifeRecord) -> int:
    """Horodatage d'un souvenir: updated_at, sinon created_at, sinon date (0 si aucun)."""
    stamp = record.updated_at or record.created_at or record.date
    return to_epoch_ms(stamp) if stamp else 0


def last_record_timestamp(records: Sequence[LifeRecord]) -> int:
    """Plus grand horodatage parmi les souvenirs, 0 si la liste est vide."""
    return max((record_timestamp(r) for r in records), default=0)


def time_bucket(kind: AnalysisKind, now: datetime) -> tuple[int, ...]:
    """Seau temporel de l'horizon: recalcul mensuel, quotidien ou annuel."""
    if kind in ("past", "monthly"):
        return (now.year, now.month)
    if kind == "next7days":
        return (now.year, now.month, now.day)
    if kind == "yearly":
        return (now.year,)
    return ()


def _birthday_key(profile: BirthProfile | None) -> str:
    if profile is None:
        return ""
    instant = profile.birth_instant
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC).isoformat()


def compute_fingerprint(
    kind: AnalysisKind, context: AnalysisContext, now: datetime | None = None
) -> str:
    """Calcule l'empreinte d'une analyse pour un contexte et une date courante.

    La relecture de vie (`insight`) ne dépend que des souvenirs.
    """
    now = now or datetime.now(UTC)
    records = list(context.records)
    bucket = "-".join(str(part) for part in time_bucket(kind, now))
    parts = [kind]
    if kind != "insight":
        parts.append(_birthday_key(context.profile))
    parts += [str(len(records)), bucket, str(last_record_timestamp(records))]
    return "_".join(parts)
