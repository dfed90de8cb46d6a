"""
Planificateur APScheduler partagé par l'API.

Sert de file d'exécution en arrière-plan pour la diffusion des alertes de ronde :
chaque alerte est un job ponctuel, hors du chemin d'acceptation des scans.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(job_defaults={"misfire_grace_time": 300, "coalesce": False})


def start_scheduler() -> None:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    if scheduler.running:
        return
    scheduler.start()
    logger.info("Scheduler démarré, diffusion des alertes de ronde active.")


def stop_scheduler() -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")
