"""
Modèles SQLAlchemy pour les modèles de ronde et leur séquence de checkpoints.
"""

import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Uuid, func

from app.database import Base


class RoundTemplate(Base):
    """Définition ordonnée d'une ronde pour une installation."""
    __tablename__ = "ronda_templates"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    installation_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())


class RoundTemplateCheckpoint(Base):
    """Association modèle ↔ checkpoints, avec l'ordre de passage."""
    __tablename__ = "ronda_template_checkpoints"

    template_id = Column(Uuid(as_uuid=True), ForeignKey("ronda_templates.id", ondelete="CASCADE"), primary_key=True)
    checkpoint_id = Column(Uuid(as_uuid=True), ForeignKey("ronda_checkpoints.id", ondelete="CASCADE"), primary_key=True)
    order_index = Column(Integer, nullable=False)
