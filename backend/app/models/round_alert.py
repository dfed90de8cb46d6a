"""
Modèle SQLAlchemy pour les alertes de ronde.
Créées uniquement comme effet de bord d'un scan anormal, jamais modifiées ni supprimées.
"""

import uuid
from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text, Uuid, event, func

from app.database import Base


class RoundAlert(Base):
    __tablename__ = "ronda_alertas"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False)
    execution_id = Column(Uuid(as_uuid=True), ForeignKey("ronda_ejecuciones.id"), nullable=False, index=True)
    installation_id = Column(Uuid(as_uuid=True), nullable=False)

    alert_type = Column(String(50), nullable=False)  # Étiquette la plus grave présente
    severity = Column(String(20), nullable=False)    # media, alta, critica
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=False)              # checkpoint_id, checkpoint_name, anomalies, trust_score

    created_at = Column(DateTime, server_default=func.now())


@event.listens_for(RoundAlert, "before_update")
def _refuse_alert_update(mapper, connection, target):
    raise ValueError("RoundAlert est append-only : modification interdite.")


@event.listens_for(RoundAlert, "before_delete")
def _refuse_alert_delete(mapper, connection, target):
    raise ValueError("RoundAlert est append-only : suppression interdite.")
