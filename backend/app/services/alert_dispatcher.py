"""
Diffusion des alertes de ronde (fire-and-forget).

L'alerte est déjà persistée quand elle arrive ici : la diffusion est confiée au
scheduler en arrière-plan et aucune erreur ne remonte vers le scan.
"""

import logging

from app.config import settings
from app.models.round_alert import RoundAlert
from app.scheduler import scheduler
from app.services.email_service import send_alert_email

logger = logging.getLogger(__name__)


def alert_payload(alert: RoundAlert) -> dict:
    """Copie détachée de l'alerte, utilisable hors de la session BDD."""
    data = alert.data or {}
    return {
        "alert_id": str(alert.id),
        "tenant_id": str(alert.tenant_id),
        "execution_id": str(alert.execution_id),
        "alert_type": alert.alert_type,
        "severity": alert.severity,
        "message": alert.message,
        "checkpoint_name": data.get("checkpoint_name", ""),
        "anomalies": list(data.get("anomalies", [])),
        "trust_score": data.get("trust_score", 0),
    }


def deliver_alert(payload: dict) -> None:
    """Job exécuté par le scheduler : envoie l'alerte par email à la centrale."""
    if not settings.ALERTS_EMAIL_TO:
        logger.warning(
            "Alerte %s (%s) non diffusée : ALERTS_EMAIL_TO non configuré : %s",
            payload["alert_type"], payload["severity"], payload["message"],
        )
        return
    try:
        send_alert_email(
            to_email=settings.ALERTS_EMAIL_TO,
            severity=payload["severity"],
            alert_type=payload["alert_type"],
            message=payload["message"],
            checkpoint_name=payload["checkpoint_name"],
            anomalies=payload["anomalies"],
            trust_score=payload["trust_score"],
        )
    except Exception as exc:
        logger.error("Échec de diffusion de l'alerte %s : %s", payload["alert_id"], exc)


def dispatch_alert(alert: RoundAlert) -> None:
    """Planifie la diffusion immédiate de l'alerte sans bloquer l'appelant."""
    try:
        payload = alert_payload(alert)
        scheduler.add_job(
            deliver_alert,
            trigger="date",
            args=[payload],
            id=f"ronda_alert_{payload['alert_id']}",
            replace_existing=True,
        )
        logger.debug("Diffusion planifiée pour l'alerte %s", payload["alert_id"])
    except Exception as exc:
        logger.error("Impossible de planifier la diffusion de l'alerte : %s", exc, exc_info=True)
