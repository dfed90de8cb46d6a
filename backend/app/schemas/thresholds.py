"""
Profils de seuils injectés dans le détecteur d'anomalies et le calcul de confiance.
Les valeurs par défaut viennent de Settings ; un profil par tenant ou par niveau
de risque d'installation peut être construit directement.
"""

from pydantic import BaseModel

from app.config import Settings, settings


class AnomalyThresholds(BaseModel):
    max_speed_kmh: float = 25.0
    min_movement_score: float = 1.0
    min_elapsed_for_movement_sec: int = 60
    battery_max_rise: int = 5
    battery_drop_tolerance: int = 10
    battery_max_drop_per_hour: float = 30.0
    same_location_radius_m: float = 5.0

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> "AnomalyThresholds":
        return cls(
            max_speed_kmh=cfg.RONDA_MAX_SPEED_KMH,
            min_movement_score=cfg.RONDA_MIN_MOVEMENT_SCORE,
            min_elapsed_for_movement_sec=cfg.RONDA_MIN_ELAPSED_FOR_MOVEMENT_SEC,
            battery_max_rise=cfg.RONDA_BATTERY_MAX_RISE,
            battery_drop_tolerance=cfg.RONDA_BATTERY_DROP_TOLERANCE,
            battery_max_drop_per_hour=cfg.RONDA_BATTERY_MAX_DROP_PER_HOUR,
            same_location_radius_m=cfg.RONDA_SAME_LOCATION_RADIUS_M,
        )


class TrustPenalties(BaseModel):
    """Barème publié : chaque pénalité est soustraite du score de base."""

    baseline: int = 100
    geo_invalid: int = 40
    no_photo: int = 10
    no_movement: int = 20
    impossible_speed: int = 25
    device_change: int = 0
    battery: int = 0
    photo_required: bool = True

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> "TrustPenalties":
        return cls(
            baseline=cfg.RONDA_TRUST_BASELINE,
            geo_invalid=cfg.RONDA_PENALTY_GEO_INVALID,
            no_photo=cfg.RONDA_PENALTY_NO_PHOTO,
            no_movement=cfg.RONDA_PENALTY_NO_MOVEMENT,
            impossible_speed=cfg.RONDA_PENALTY_IMPOSSIBLE_SPEED,
            device_change=cfg.RONDA_PENALTY_DEVICE_CHANGE,
            battery=cfg.RONDA_PENALTY_BATTERY,
            photo_required=cfg.RONDA_PHOTO_REQUIRED,
        )
