"""
Modèle SQLAlchemy pour les checkpoints de ronde (points de contrôle physiques).
Données de référence gérées par la configuration opérationnelle : lecture seule ici.
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Uuid, func

from app.database import Base


class Checkpoint(Base):
    """Point physique identifié au scan par le code imprimé sur son tag (QR/NFC)."""
    __tablename__ = "ronda_checkpoints"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    installation_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(100), nullable=False)       # Code présenté par l'appareil au scan

    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    geo_radius_m = Column(Integer, nullable=False, default=30)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
