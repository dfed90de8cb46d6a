"""
Routers pour les rondes de surveillance.
- Endpoint public appelé par l'appareil du guardia à chaque checkpoint scanné
- Lectures opérationnelles : progression, piste d'audit, alertes, vérification d'intégrité
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.ronda import (
    AlertResponse,
    ExecutionResponse,
    IntegrityVerification,
    ScanRecordResponse,
    ScanRequest,
    ScanResponse,
)
from app.services import audit_service, round_execution_service
from app.services.errors import RondaError

# POST /api/public/rondas/marcar, sans session : l'appareil présente exécution + code checkpoint
router = APIRouter(prefix="/api/public/rondas", tags=["Rondas"])

# GET /api/v1/rondas/... : consultation pour la supervision
ops_router = APIRouter(prefix="/api/v1/rondas", tags=["Rondas supervision"])


@router.post(
    "/marcar",
    response_model=ScanResponse,
    summary="Enregistrer le scan d'un checkpoint",
)
def submit_scan(data: ScanRequest, db: Session = Depends(get_db)):
    """
    Vérifie et enregistre un scan de checkpoint pendant une exécution de ronde.

    Un scan anormal (hors rayon, vitesse impossible, appareil immobile...) est
    tout de même accepté : il est enregistré avec un score de confiance dégradé
    et génère une alerte.

    Retourne 404 si l'exécution ou le checkpoint est introuvable,
    409 si l'exécution est clôturée ou sans guardia, 503 sur conflit de persistance.
    """
    try:
        return round_execution_service.submit_scan(db, data)
    except RondaError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@ops_router.get(
    "/executions/{execution_id}",
    response_model=ExecutionResponse,
    summary="État et progression d'une exécution",
)
def get_execution(execution_id: uuid.UUID, db: Session = Depends(get_db)):
    try:
        return audit_service.get_execution(db, execution_id)
    except RondaError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@ops_router.get(
    "/executions/{execution_id}/scans",
    response_model=List[ScanRecordResponse],
    summary="Piste d'audit des scans d'une exécution",
)
def list_scans(execution_id: uuid.UUID, db: Session = Depends(get_db)):
    """Retourne tous les scans de l'exécution, du plus ancien au plus récent."""
    try:
        return audit_service.list_scans(db, execution_id)
    except RondaError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@ops_router.get(
    "/executions/{execution_id}/alerts",
    response_model=List[AlertResponse],
    summary="Alertes générées pendant une exécution",
)
def list_alerts(execution_id: uuid.UUID, db: Session = Depends(get_db)):
    try:
        return audit_service.list_alerts(db, execution_id)
    except RondaError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@ops_router.get(
    "/scans/{scan_id}/verify",
    response_model=IntegrityVerification,
    summary="Recalculer le hash d'intégrité d'un scan",
)
def verify_scan(scan_id: uuid.UUID, db: Session = Depends(get_db)):
    """
    Recalcule le hash d'intégrité depuis les faits stockés du scan.
    valid = false signifie que l'enregistrement a été altéré après sa création.
    """
    try:
        return audit_service.verify_scan_integrity(db, scan_id)
    except RondaError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
