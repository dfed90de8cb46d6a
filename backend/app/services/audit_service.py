"""
Lectures opérationnelles sur les rondes : progression, piste d'audit, alertes,
et recalcul du hash d'intégrité d'un scan enregistré.
"""

import logging
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.checkpoint_scan import CheckpointScan
from app.models.round_alert import RoundAlert
from app.models.round_execution import RoundExecution
from app.models.round_template import RoundTemplate
from app.schemas.ronda import (
    AlertResponse,
    ExecutionResponse,
    IntegrityVerification,
    ScanRecordResponse,
)
from app.services.errors import ExecutionNotFound, ScanNotFound
from app.services.integrity_hasher import compute_integrity_hash, to_iso_timestamp
from app.services.round_execution_service import SCAN_METHOD, SCAN_TYPE

logger = logging.getLogger(__name__)


def _get_execution_or_raise(db: Session, execution_id: uuid.UUID) -> RoundExecution:
    execution = db.get(RoundExecution, execution_id)
    if execution is None:
        raise ExecutionNotFound(f"Exécution {execution_id} introuvable.")
    return execution


def get_execution(db: Session, execution_id: uuid.UUID) -> ExecutionResponse:
    return ExecutionResponse.model_validate(_get_execution_or_raise(db, execution_id))


def list_scans(db: Session, execution_id: uuid.UUID) -> List[ScanRecordResponse]:
    """Piste d'audit de l'exécution, du plus ancien au plus récent."""
    _get_execution_or_raise(db, execution_id)
    scans = db.execute(
        select(CheckpointScan)
        .where(CheckpointScan.execution_id == execution_id)
        .order_by(CheckpointScan.scanned_at.asc())
    ).scalars().all()
    return [ScanRecordResponse.model_validate(s) for s in scans]


def list_alerts(db: Session, execution_id: uuid.UUID) -> List[AlertResponse]:
    """Alertes de l'exécution, de la plus récente à la plus ancienne."""
    _get_execution_or_raise(db, execution_id)
    alerts = db.execute(
        select(RoundAlert)
        .where(RoundAlert.execution_id == execution_id)
        .order_by(RoundAlert.created_at.desc())
    ).scalars().all()
    return [AlertResponse.model_validate(a) for a in alerts]


def verify_scan_integrity(db: Session, scan_id: uuid.UUID) -> IntegrityVerification:
    """
    Recalcule le hash d'un scan depuis ses faits stockés et le compare au hash enregistré.

    Un écart signifie que la ligne a été modifiée hors de l'application
    après sa création.
    """
    scan = db.get(CheckpointScan, scan_id)
    if scan is None:
        raise ScanNotFound(f"Scan {scan_id} introuvable.")
    execution = _get_execution_or_raise(db, scan.execution_id)
    template = db.get(RoundTemplate, execution.template_id)
    if template is None:
        raise ExecutionNotFound(f"Modèle de ronde {execution.template_id} introuvable.")

    computed = compute_integrity_hash(
        tenant_id=str(scan.tenant_id),
        guard_id=str(scan.guard_id),
        installation_id=str(template.installation_id),
        scan_type=SCAN_TYPE,
        timestamp_iso=to_iso_timestamp(scan.scanned_at),
        lat=scan.lat,
        lng=scan.lng,
        method_id=SCAN_METHOD,
    )
    valid = computed == scan.integrity_hash
    if not valid:
        logger.warning("Hash d'intégrité divergent pour le scan %s", scan_id)

    return IntegrityVerification(
        scan_id=scan.id,
        stored_hash=scan.integrity_hash,
        computed_hash=computed,
        valid=valid,
    )
