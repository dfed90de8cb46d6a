"""
Modèle SQLAlchemy pour les exécutions de ronde.

Cycle de vie : pendiente → en_curso → completa | incompleta.
La clôture (completa / incompleta) est faite par un processus séparé ;
le moteur de scan ne fait que passer pendiente → en_curso et tenir la progression.
"""

import uuid
from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Uuid, func

from app.database import Base

SCAN_ELIGIBLE_STATUSES = ("pendiente", "en_curso", "incompleta")


class RoundExecution(Base):
    """Une exécution concrète d'une ronde par un guardia."""
    __tablename__ = "ronda_ejecuciones"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    template_id = Column(Uuid(as_uuid=True), ForeignKey("ronda_templates.id"), nullable=False)
    guard_id = Column(Uuid(as_uuid=True), nullable=True)  # NULL = pas encore assignée

    status = Column(String(20), nullable=False, default="pendiente")  # pendiente, en_curso, completa, incompleta
    checkpoints_completed = Column(Integer, nullable=False, default=0)
    checkpoints_total = Column(Integer, nullable=False, default=0)
    completion_pct = Column(Float, nullable=False, default=0.0)
    trust_score = Column(Integer, nullable=True)  # NULL tant qu'aucun scan n'est reçu

    started_at = Column(DateTime, nullable=True)  # Premier scan accepté
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
