"""
Score de confiance (0–100) d'un scan et d'une exécution de ronde.
"""

from typing import Iterable

from pydantic import BaseModel

from app.schemas.thresholds import TrustPenalties


class TrustInput(BaseModel):
    geo_valid: bool
    has_photo: bool
    has_movement: bool
    impossible_speed: bool
    same_device: bool = True
    battery_plausible: bool = True


def compute_scan_trust(data: TrustInput, penalties: TrustPenalties) -> int:
    """
    Part du score de base et soustrait les pénalités publiées.
    Le résultat est borné dans [0, 100].
    """
    score = penalties.baseline
    if not data.geo_valid:
        score -= penalties.geo_invalid
    if penalties.photo_required and not data.has_photo:
        score -= penalties.no_photo
    if not data.has_movement:
        score -= penalties.no_movement
    if data.impossible_speed:
        score -= penalties.impossible_speed
    if not data.same_device:
        score -= penalties.device_change
    if not data.battery_plausible:
        score -= penalties.battery
    return max(0, min(100, score))


def aggregate_execution_trust(flags: Iterable[bool], baseline: int = 100) -> int:
    """
    Score d'une exécution à partir de la proportion de scans portant une anomalie.

    flags : un booléen par scan (True = au moins une anomalie).
    Une exécution sans scan (ou sans anomalie) vaut le score de base.
    """
    flags = list(flags)
    return execution_trust_from_counts(sum(1 for f in flags if f), len(flags), baseline)


def execution_trust_from_counts(flagged: int, total: int, baseline: int = 100) -> int:
    """Même calcul que aggregate_execution_trust, depuis des compteurs SQL."""
    score = round(max(0.0, baseline - (flagged * baseline) / max(1, total)))
    return min(100, score)
