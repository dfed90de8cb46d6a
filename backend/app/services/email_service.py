"""
Service d'envoi d'emails SMTP.
Utilisé pour diffuser les alertes de ronde vers la boîte de la centrale de surveillance.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List

from app.config import settings

logger = logging.getLogger(__name__)

SEVERITY_COLORS = {"critica": "#c62828", "alta": "#ef6c00", "media": "#f9a825"}


def send_alert_email(
    to_email: str,
    severity: str,
    alert_type: str,
    message: str,
    checkpoint_name: str,
    anomalies: List[str],
    trust_score: int,
) -> None:
    """
    Envoie un email HTML décrivant une alerte de ronde.
    Lève une exception en cas d'échec SMTP.
    """
    msg = MIMEMultipart("alternative")
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = f"[Ronda · {severity.upper()}] {alert_type} : {checkpoint_name}"

    color = SEVERITY_COLORS.get(severity, "#555")
    items = "".join(f"<li>{tag}</li>" for tag in anomalies)
    html_content = f"""
    <html>
      <body style="font-family: Arial, sans-serif; color: #333; max-width: 600px; margin: auto;">
        <h2 style="color: {color};">Alerta de ronda ({severity})</h2>
        <p>{message}</p>
        <p>Checkpoint : <strong>{checkpoint_name}</strong></p>
        <ul>{items}</ul>
        <p>Trust score du scan : <strong>{trust_score}</strong> / 100</p>
        <hr style="border: none; border-top: 1px solid #eee;" />
        <p style="font-size: 12px; color: #888;">
          Message généré automatiquement. Ne pas répondre à cet email.
        </p>
      </body>
    </html>
    """
    msg.attach(MIMEText(message, "plain", "utf-8"))
    msg.attach(MIMEText(html_content, "html", "utf-8"))

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as server:
        if settings.SMTP_USE_TLS:
            server.starttls()
        if settings.SMTP_USERNAME:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        server.send_message(msg)

    logger.info("Alerte %s (%s) envoyée à %s", alert_type, severity, to_email)
