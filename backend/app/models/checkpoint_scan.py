"""
Modèle SQLAlchemy pour les scans de checkpoint (marcaciones de ronde).

Registre probatoire append-only :
- scanned_at    : horodatage serveur UTC, précision milliseconde (entre dans le hash)
- integrity_hash: SHA-256 des faits immuables du scan, recalculable pour audit
- anomalies     : étiquettes produites par le détecteur, is_flagged = liste non vide
Aucune mise à jour ni suppression n'est acceptée par l'ORM.
"""

import uuid
from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Uuid, event, func,
)

from app.database import Base


class CheckpointScan(Base):
    """Scan d'un checkpoint pendant une exécution de ronde."""
    __tablename__ = "ronda_marcaciones"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False)
    execution_id = Column(Uuid(as_uuid=True), ForeignKey("ronda_ejecuciones.id"), nullable=False, index=True)
    checkpoint_id = Column(Uuid(as_uuid=True), ForeignKey("ronda_checkpoints.id"), nullable=False)
    guard_id = Column(Uuid(as_uuid=True), nullable=False)

    scanned_at = Column(DateTime, nullable=False, index=True)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    geo_valid = Column(Boolean, nullable=False)
    geo_distance_m = Column(Float, nullable=False)

    battery_level = Column(Integer, nullable=True)
    motion_data = Column(JSON, nullable=True)
    speed_from_prev_kmh = Column(Float, nullable=False, default=0.0)
    time_from_prev_sec = Column(Integer, nullable=True)  # NULL pour le premier scan
    photo_evidence_url = Column(String(500), nullable=True)

    integrity_hash = Column(String(64), nullable=False)
    anomalies = Column(JSON, nullable=False, default=list)
    is_flagged = Column(Boolean, nullable=False, default=False)
    trust_score = Column(Integer, nullable=False)

    created_at = Column(DateTime, server_default=func.now())


@event.listens_for(CheckpointScan, "before_update")
def _refuse_scan_update(mapper, connection, target):
    raise ValueError("CheckpointScan est append-only : modification interdite.")


@event.listens_for(CheckpointScan, "before_delete")
def _refuse_scan_delete(mapper, connection, target):
    raise ValueError("CheckpointScan est append-only : suppression interdite.")
