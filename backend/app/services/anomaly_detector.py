"""
Détection d'anomalies sur les scans de ronde.

Chaque règle est indépendante, explicable en une phrase au guardia,
et paramétrée par un profil AnomalyThresholds injecté à l'appel.
Pas de modèle statistique : un opérateur doit pouvoir justifier chaque alerte.
"""

from typing import List, Optional

from pydantic import BaseModel

from app.schemas.thresholds import AnomalyThresholds

GEO_INVALID = "geo_invalid"
IMPOSSIBLE_SPEED = "velocidad_imposible"
NO_MOVEMENT = "sin_movimiento"
SUSPICIOUS_BATTERY = "bateria_sospechosa"
SAME_LOCATION = "misma_ubicacion_repetida"

# Ordre canonique des étiquettes dans la liste retournée
ANOMALY_TAGS = (GEO_INVALID, IMPOSSIBLE_SPEED, NO_MOVEMENT, SUSPICIOUS_BATTERY, SAME_LOCATION)


class AnomalyInput(BaseModel):
    """Signaux d'un scan comparé au scan précédent de la même exécution."""

    geo_valid: bool
    speed_from_prev_kmh: float = 0.0
    movement_score: float = 0.0
    elapsed_sec: int = 0  # 0 pour le premier scan de l'exécution
    battery_level: Optional[int] = None
    prev_battery_level: Optional[int] = None
    same_geo_as_prev: bool = False


def _battery_is_suspicious(data: AnomalyInput, thresholds: AnomalyThresholds) -> bool:
    if data.battery_level is None or data.prev_battery_level is None:
        return False
    delta = data.battery_level - data.prev_battery_level
    if delta > thresholds.battery_max_rise:
        return True
    max_drop = thresholds.battery_drop_tolerance + thresholds.battery_max_drop_per_hour * (data.elapsed_sec / 3600)
    return -delta > max_drop


def detect_anomalies(data: AnomalyInput, thresholds: AnomalyThresholds) -> List[str]:
    """
    Retourne les étiquettes d'anomalie déclenchées par le scan.

    - geo_invalid              : hors du rayon du checkpoint
    - velocidad_imposible      : vitesse depuis le scan précédent au-delà du plafond
    - sin_movimiento           : appareil immobile alors que du temps s'est écoulé
    - bateria_sospechosa       : batterie remontée (échange d'appareil) ou chute trop rapide
    - misma_ubicacion_repetida : même position que le scan précédent

    La liste est sans doublon, dans l'ordre de ANOMALY_TAGS.
    """
    fired = set()

    if not data.geo_valid:
        fired.add(GEO_INVALID)
    if data.speed_from_prev_kmh > thresholds.max_speed_kmh:
        fired.add(IMPOSSIBLE_SPEED)
    if (
        data.movement_score < thresholds.min_movement_score
        and data.elapsed_sec >= thresholds.min_elapsed_for_movement_sec
    ):
        fired.add(NO_MOVEMENT)
    if _battery_is_suspicious(data, thresholds):
        fired.add(SUSPICIOUS_BATTERY)
    if data.same_geo_as_prev:
        fired.add(SAME_LOCATION)

    return [tag for tag in ANOMALY_TAGS if tag in fired]
