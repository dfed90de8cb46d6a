"""
Moteur d'exécution des rondes : réception et vérification des scans de checkpoint.

Pour chaque scan :
1. Résolution de l'exécution, du guardia assigné et du checkpoint (aucune écriture)
2. Verrou de ligne sur l'exécution (SELECT ... FOR UPDATE) jusqu'au commit :
   deux scans concurrents de la même exécution sont sérialisés, deux exécutions
   différentes ne partagent aucun verrou
3. Géorepérage, détection d'anomalies, score de confiance, hash d'intégrité
4. Dans la même transaction : insertion du scan, progression de l'exécution,
   score agrégé et alerte éventuelle, tout est annulé en cas d'échec
5. Diffusion de l'alerte en arrière-plan, après le commit

Aucun état n'est conservé en mémoire entre deux appels.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from sqlalchemy import and_, distinct, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.models.checkpoint import Checkpoint
from app.models.checkpoint_scan import CheckpointScan
from app.models.round_alert import RoundAlert
from app.models.round_execution import SCAN_ELIGIBLE_STATUSES, RoundExecution
from app.models.round_template import RoundTemplate, RoundTemplateCheckpoint
from app.schemas.ronda import GeoResult, ScanRequest, ScanResponse
from app.schemas.thresholds import AnomalyThresholds, TrustPenalties
from app.services.alert_dispatcher import dispatch_alert
from app.services.anomaly_detector import (
    GEO_INVALID,
    IMPOSSIBLE_SPEED,
    NO_MOVEMENT,
    SAME_LOCATION,
    SUSPICIOUS_BATTERY,
    AnomalyInput,
    detect_anomalies,
)
from app.services.errors import (
    CheckpointNotFound,
    ExecutionNotEligible,
    ExecutionNotFound,
    NoGuardAssigned,
    RondaError,
    TransientPersistenceFailure,
)
from app.services.geo_validator import haversine_m, speed_kmh, validate_geofence
from app.services.integrity_hasher import compute_integrity_hash, to_iso_timestamp
from app.services.trust_scorer import TrustInput, compute_scan_trust, execution_trust_from_counts

logger = logging.getLogger(__name__)

SCAN_TYPE = "checkpoint"
SCAN_METHOD = "qr_ronda"

# Table ordonnée étiquette → gravité : la première étiquette présente l'emporte.
# Ajouter un type d'anomalie = ajouter une ligne ici.
ALERT_SEVERITY_TABLE: Tuple[Tuple[str, str], ...] = (
    (GEO_INVALID, "critica"),
    (IMPOSSIBLE_SPEED, "critica"),
    (SUSPICIOUS_BATTERY, "alta"),
    (NO_MOVEMENT, "alta"),
    (SAME_LOCATION, "media"),
)


def classify_alert(anomalies: List[str]) -> Tuple[str, str]:
    """
    Retourne (type d'alerte, gravité) pour la plus grave des anomalies présentes.
    Lève ValueError si aucune anomalie connue n'est fournie.
    """
    for tag, severity in ALERT_SEVERITY_TABLE:
        if tag in anomalies:
            return tag, severity
    raise ValueError(f"Aucune anomalie classable dans {anomalies}.")


def _server_now(now: Optional[datetime] = None) -> datetime:
    """Horodatage serveur UTC naïf, tronqué à la milliseconde (format du hash)."""
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.replace(microsecond=(moment.microsecond // 1000) * 1000)


def _resolve_execution(db: Session, execution_id: uuid.UUID) -> Tuple[RoundExecution, RoundTemplate]:
    execution = db.execute(
        select(RoundExecution).where(RoundExecution.id == execution_id)
    ).scalar_one_or_none()
    if execution is None:
        raise ExecutionNotFound(f"Exécution {execution_id} introuvable.")
    if execution.status not in SCAN_ELIGIBLE_STATUSES:
        raise ExecutionNotEligible(
            f"L'exécution est en statut {execution.status} : aucun scan n'est accepté."
        )
    if execution.guard_id is None:
        raise NoGuardAssigned("Exécution sans guardia assigné.")

    template = db.get(RoundTemplate, execution.template_id)
    if template is None:
        raise ExecutionNotFound(f"Modèle de ronde {execution.template_id} introuvable.")
    return execution, template


def _resolve_checkpoint(db: Session, execution: RoundExecution, template: RoundTemplate, code: str) -> Checkpoint:
    checkpoint = db.execute(
        select(Checkpoint).where(
            Checkpoint.tenant_id == execution.tenant_id,
            Checkpoint.installation_id == template.installation_id,
            Checkpoint.code == code,
            Checkpoint.is_active.is_(True),
        )
    ).scalars().first()
    if checkpoint is None:
        raise CheckpointNotFound(f"Checkpoint {code} introuvable pour cette installation.")
    return checkpoint


def _lock_statement(execution_id: uuid.UUID):
    """SELECT ... FOR UPDATE qui écrase l'instance déjà chargée dans la session."""
    return (
        select(RoundExecution)
        .where(RoundExecution.id == execution_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


def _lock_execution(db: Session, execution_id: uuid.UUID) -> RoundExecution:
    """Verrouille la ligne d'exécution et relit son état le plus récent."""
    execution = db.execute(_lock_statement(execution_id)).scalar_one_or_none()
    if execution is None:
        raise ExecutionNotFound(f"Exécution {execution_id} introuvable.")
    if execution.status not in SCAN_ELIGIBLE_STATUSES:
        raise ExecutionNotEligible(
            f"L'exécution est en statut {execution.status} : aucun scan n'est accepté."
        )
    return execution


def _previous_scan(db: Session, execution_id: uuid.UUID) -> Optional[CheckpointScan]:
    return db.execute(
        select(CheckpointScan)
        .where(CheckpointScan.execution_id == execution_id)
        .order_by(CheckpointScan.scanned_at.desc(), CheckpointScan.created_at.desc())
        .limit(1)
    ).scalar()


def _refresh_progress(db: Session, execution: RoundExecution, baseline: int = 100) -> None:
    """Recalcule compteurs, pourcentage et score agrégé depuis les scans persistés."""
    total = db.execute(
        select(func.count())
        .select_from(RoundTemplateCheckpoint)
        .where(RoundTemplateCheckpoint.template_id == execution.template_id)
    ).scalar() or 0

    completed = db.execute(
        select(func.count(distinct(CheckpointScan.checkpoint_id)))
        .select_from(CheckpointScan)
        .join(
            RoundTemplateCheckpoint,
            and_(
                RoundTemplateCheckpoint.checkpoint_id == CheckpointScan.checkpoint_id,
                RoundTemplateCheckpoint.template_id == execution.template_id,
            ),
        )
        .where(CheckpointScan.execution_id == execution.id)
    ).scalar() or 0
    completed = min(completed, total)

    scan_count = db.execute(
        select(func.count())
        .select_from(CheckpointScan)
        .where(CheckpointScan.execution_id == execution.id)
    ).scalar() or 0
    flagged_count = db.execute(
        select(func.count())
        .select_from(CheckpointScan)
        .where(CheckpointScan.execution_id == execution.id, CheckpointScan.is_flagged.is_(True))
    ).scalar() or 0

    execution.checkpoints_total = total
    execution.checkpoints_completed = completed
    execution.completion_pct = round((completed / total) * 100, 2) if total > 0 else 0.0
    execution.trust_score = execution_trust_from_counts(flagged_count, scan_count, baseline)


def submit_scan(
    db: Session,
    data: ScanRequest,
    now: Optional[datetime] = None,
    thresholds: Optional[AnomalyThresholds] = None,
    penalties: Optional[TrustPenalties] = None,
    dispatcher: Optional[Callable[[RoundAlert], None]] = None,
) -> ScanResponse:
    """
    Vérifie, enregistre et note un scan de checkpoint.

    Lève ExecutionNotFound / CheckpointNotFound (NotFound), ExecutionNotEligible /
    NoGuardAssigned (InvalidState) avant toute écriture, et
    TransientPersistenceFailure si la transaction échoue sur un conflit ou un délai.
    Les anomalies ne sont jamais des erreurs : le scan est toujours enregistré.
    """
    thresholds = thresholds or AnomalyThresholds.from_settings()
    penalties = penalties or TrustPenalties.from_settings()
    dispatcher = dispatcher or dispatch_alert

    execution, template = _resolve_execution(db, data.execution_id)
    checkpoint = _resolve_checkpoint(db, execution, template, data.checkpoint_code)

    alert: Optional[RoundAlert] = None
    try:
        execution = _lock_execution(db, execution.id)
        scanned_at = _server_now(now)

        prev = _previous_scan(db, execution.id)
        if prev is not None:
            elapsed_sec = max(1, round((scanned_at - prev.scanned_at).total_seconds()))
            prev_distance = haversine_m(data.lat, data.lng, prev.lat, prev.lng)
            speed = speed_kmh(prev_distance, elapsed_sec)
        else:
            elapsed_sec = 0
            prev_distance = 0.0
            speed = 0.0

        geo = validate_geofence(data.lat, data.lng, checkpoint.lat, checkpoint.lng, checkpoint.geo_radius_m)
        anomalies = detect_anomalies(
            AnomalyInput(
                geo_valid=geo.valid,
                speed_from_prev_kmh=speed,
                movement_score=data.motion_data.movement_score if data.motion_data else 0.0,
                elapsed_sec=elapsed_sec,
                battery_level=data.battery_level,
                prev_battery_level=prev.battery_level if prev is not None else None,
                same_geo_as_prev=prev is not None and prev_distance <= thresholds.same_location_radius_m,
            ),
            thresholds,
        )
        trust_score = compute_scan_trust(
            TrustInput(
                geo_valid=geo.valid,
                has_photo=bool(data.photo_evidence_url),
                has_movement=NO_MOVEMENT not in anomalies,
                impossible_speed=IMPOSSIBLE_SPEED in anomalies,
                battery_plausible=SUSPICIOUS_BATTERY not in anomalies,
            ),
            penalties,
        )
        integrity_hash = compute_integrity_hash(
            tenant_id=str(execution.tenant_id),
            guard_id=str(execution.guard_id),
            installation_id=str(template.installation_id),
            scan_type=SCAN_TYPE,
            timestamp_iso=to_iso_timestamp(scanned_at),
            lat=data.lat,
            lng=data.lng,
            method_id=SCAN_METHOD,
        )

        scan = CheckpointScan(
            tenant_id=execution.tenant_id,
            execution_id=execution.id,
            checkpoint_id=checkpoint.id,
            guard_id=execution.guard_id,
            scanned_at=scanned_at,
            lat=data.lat,
            lng=data.lng,
            geo_valid=geo.valid,
            geo_distance_m=geo.distance_m,
            battery_level=data.battery_level,
            motion_data=data.motion_data.model_dump(by_alias=True) if data.motion_data else None,
            speed_from_prev_kmh=speed,
            time_from_prev_sec=elapsed_sec if prev is not None else None,
            photo_evidence_url=data.photo_evidence_url,
            integrity_hash=integrity_hash,
            anomalies=anomalies,
            is_flagged=bool(anomalies),
            trust_score=trust_score,
        )
        db.add(scan)
        db.flush()
        scan_id = scan.id

        _refresh_progress(db, execution, penalties.baseline)
        if execution.status == "pendiente":
            execution.status = "en_curso"
            execution.started_at = scanned_at

        if anomalies:
            alert_type, severity = classify_alert(anomalies)
            alert = RoundAlert(
                tenant_id=execution.tenant_id,
                execution_id=execution.id,
                installation_id=template.installation_id,
                alert_type=alert_type,
                severity=severity,
                message=f"Anomalía detectada en checkpoint {checkpoint.name}: {', '.join(anomalies)}",
                data={
                    "checkpoint_id": str(checkpoint.id),
                    "checkpoint_name": checkpoint.name,
                    "anomalies": anomalies,
                    "trust_score": trust_score,
                },
            )
            db.add(alert)

        db.commit()
    except RondaError:
        db.rollback()
        raise
    except OperationalError as exc:
        db.rollback()
        logger.warning("Conflit ou délai de persistance sur l'exécution %s : %s", data.execution_id, exc)
        raise TransientPersistenceFailure(
            "Le scan n'a pas pu être enregistré, réessayer plus tard."
        ) from exc
    except Exception:
        db.rollback()
        logger.error("Échec inattendu de l'enregistrement du scan (exécution %s)", data.execution_id, exc_info=True)
        raise

    logger.info(
        "Scan %s accepté : exécution=%s checkpoint=%s geo=%s trust=%d anomalies=%s",
        scan_id, data.execution_id, data.checkpoint_code, geo.valid, trust_score, anomalies or "aucune",
    )
    if alert is not None:
        dispatcher(alert)

    return ScanResponse(
        scan_id=scan_id,
        trust_score=trust_score,
        anomalies=anomalies,
        geo=GeoResult(valid=geo.valid, distance_m=geo.distance_m),
    )
