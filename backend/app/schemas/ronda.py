"""
Schémas Pydantic pour les rondes de surveillance.
Endpoint appareil : POST /api/public/rondas/marcar
Lectures opérationnelles : /api/v1/rondas/...
"""

import math
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

MAX_PHOTO_URL_LENGTH = 500


class MotionData(BaseModel):
    """Télémétrie de mouvement envoyée par l'appareil (champs libres conservés)."""

    movement_score: float = Field(default=0.0, alias="movementScore")  # 0 = immobile

    model_config = {"populate_by_name": True, "extra": "allow"}

    @field_validator("movement_score")
    @classmethod
    def movement_score_valide(cls, v: float) -> float:
        if not math.isfinite(v) or v < 0:
            raise ValueError("Le score de mouvement doit être un nombre positif.")
        return v


class ScanRequest(BaseModel):
    """Scan d'un checkpoint envoyé par l'appareil du guardia."""

    execution_id: uuid.UUID = Field(alias="executionId")
    checkpoint_code: str = Field(alias="checkpointCode")
    lat: float
    lng: float
    battery_level: Optional[int] = Field(default=None, alias="batteryLevel")
    motion_data: Optional[MotionData] = Field(default=None, alias="motionData")
    photo_evidence_url: Optional[str] = Field(default=None, alias="photoEvidenceUrl")

    model_config = {"populate_by_name": True}

    @field_validator("checkpoint_code")
    @classmethod
    def code_non_vide(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le code du checkpoint ne peut pas être vide.")
        return v.strip()

    @field_validator("lat")
    @classmethod
    def latitude_valide(cls, v: float) -> float:
        if not math.isfinite(v) or not -90.0 <= v <= 90.0:
            raise ValueError("Latitude hors de l'intervalle [-90, 90].")
        return v

    @field_validator("lng")
    @classmethod
    def longitude_valide(cls, v: float) -> float:
        if not math.isfinite(v) or not -180.0 <= v <= 180.0:
            raise ValueError("Longitude hors de l'intervalle [-180, 180].")
        return v

    @field_validator("battery_level")
    @classmethod
    def batterie_valide(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not 0 <= v <= 100:
            raise ValueError("Le niveau de batterie doit être compris entre 0 et 100.")
        return v

    @field_validator("photo_evidence_url")
    @classmethod
    def photo_url_valide(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        if len(v) > MAX_PHOTO_URL_LENGTH:
            raise ValueError(f"URL de photo trop longue (maximum {MAX_PHOTO_URL_LENGTH} caractères).")
        return v.strip()


class GeoResult(BaseModel):
    """Résultat du contrôle de géorepérage."""

    valid: bool
    distance_m: float


class ScanResponse(BaseModel):
    """Accusé de réception renvoyé à l'appareil après un scan accepté."""

    scan_id: uuid.UUID
    trust_score: int
    anomalies: List[str]
    geo: GeoResult


class ExecutionResponse(BaseModel):
    """État et progression d'une exécution de ronde."""

    id: uuid.UUID
    template_id: uuid.UUID
    guard_id: Optional[uuid.UUID]
    status: str
    checkpoints_completed: int
    checkpoints_total: int
    completion_pct: float
    trust_score: Optional[int]
    started_at: Optional[datetime]

    model_config = {"from_attributes": True}


class ScanRecordResponse(BaseModel):
    """Ligne de la piste d'audit d'une exécution."""

    id: uuid.UUID
    checkpoint_id: uuid.UUID
    guard_id: uuid.UUID
    scanned_at: datetime
    lat: float
    lng: float
    geo_valid: bool
    geo_distance_m: float
    battery_level: Optional[int]
    speed_from_prev_kmh: float
    time_from_prev_sec: Optional[int]
    photo_evidence_url: Optional[str]
    integrity_hash: str
    anomalies: List[str]
    trust_score: int

    model_config = {"from_attributes": True}


class AlertResponse(BaseModel):
    id: uuid.UUID
    execution_id: uuid.UUID
    installation_id: uuid.UUID
    alert_type: str
    severity: str
    message: str
    data: dict
    created_at: Optional[datetime]

    model_config = {"from_attributes": True}


class IntegrityVerification(BaseModel):
    """Résultat du recalcul du hash d'intégrité d'un scan."""

    scan_id: uuid.UUID
    stored_hash: str
    computed_hash: str
    valid: bool
