"""
Validation de géorepérage des scans de checkpoint.
Fonctions pures : aucune dépendance à la base de données.
"""

import math

from app.schemas.ronda import GeoResult

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Distance orthodromique en mètres entre deux points (formule de haversine).

    Le terme intermédiaire est borné dans [0, 1] : deux points antipodaux ou un
    GPS falsifié à l'autre bout du monde ne provoquent pas d'erreur de domaine.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def validate_geofence(
    lat: float,
    lng: float,
    checkpoint_lat: float,
    checkpoint_lng: float,
    radius_m: float,
) -> GeoResult:
    """
    Vérifie qu'un scan est dans le rayon autorisé du checkpoint.

    valid = distance <= rayon. Un rayon de 0 exige une correspondance exacte.
    Lève ValueError si le rayon est négatif.
    """
    if radius_m < 0:
        raise ValueError(f"Rayon de géorepérage invalide : {radius_m}.")
    distance = haversine_m(lat, lng, checkpoint_lat, checkpoint_lng)
    return GeoResult(valid=distance <= radius_m, distance_m=round(distance, 2))


def speed_kmh(distance_m: float, elapsed_sec: float) -> float:
    """Vitesse déduite en km/h ; 0 si aucun temps ne s'est écoulé."""
    if elapsed_sec <= 0:
        return 0.0
    return round((distance_m / elapsed_sec) * 3.6, 2)
