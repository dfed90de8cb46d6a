"""
Tests d'intégration API pour les rondes.
Testent POST /api/public/rondas/marcar
      GET  /api/v1/rondas/executions/{id}[/scans|/alerts]
      GET  /api/v1/rondas/scans/{id}/verify
"""

import uuid
from datetime import datetime
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from app.database import get_db
from app.main import app
from app.schemas.ronda import (
    AlertResponse,
    ExecutionResponse,
    GeoResult,
    IntegrityVerification,
    ScanRecordResponse,
    ScanResponse,
)
from app.services.errors import (
    CheckpointNotFound,
    ExecutionNotEligible,
    ExecutionNotFound,
    NoGuardAssigned,
    ScanNotFound,
    TransientPersistenceFailure,
)


# --- Helpers ---

def scan_payload(**overrides) -> dict:
    payload = {
        "executionId": str(uuid.uuid4()),
        "checkpointCode": "CP-01",
        "lat": -33.4372,
        "lng": -70.6506,
        "batteryLevel": 87,
        "motionData": {"movementScore": 4.2, "samples": 12},
    }
    payload.update(overrides)
    return payload


def make_scan_response(**kwargs) -> ScanResponse:
    return ScanResponse(
        scan_id=kwargs.get("scan_id", uuid.uuid4()),
        trust_score=kwargs.get("trust_score", 90),
        anomalies=kwargs.get("anomalies", []),
        geo=GeoResult(valid=kwargs.get("valid", True), distance_m=kwargs.get("distance_m", 3.2)),
    )


# ============================================================
# POST /api/public/rondas/marcar
# ============================================================

def test_marcar_succes(client):
    """Scan valide → 200 avec score, anomalies et résultat géo."""
    with patch("app.routers.rondas.round_execution_service.submit_scan") as mock:
        mock.return_value = make_scan_response(trust_score=90)

        response = client.post("/api/public/rondas/marcar", json=scan_payload())

    assert response.status_code == 200
    data = response.json()
    assert data["trust_score"] == 90
    assert data["anomalies"] == []
    assert data["geo"] == {"valid": True, "distance_m": 3.2}
    assert "scan_id" in data


def test_marcar_payload_camel_case_transmis_au_service(client):
    execution_id = uuid.uuid4()
    with patch("app.routers.rondas.round_execution_service.submit_scan") as mock:
        mock.return_value = make_scan_response()

        client.post(
            "/api/public/rondas/marcar",
            json=scan_payload(executionId=str(execution_id), photoEvidenceUrl="https://cdn/e.jpg"),
        )

    request = mock.call_args.args[1]
    assert request.execution_id == execution_id
    assert request.checkpoint_code == "CP-01"
    assert request.motion_data.movement_score == 4.2
    assert request.photo_evidence_url == "https://cdn/e.jpg"


def test_marcar_scan_anormal_reste_un_succes(client):
    """Les anomalies ne sont pas des erreurs : 200 avec trust dégradé."""
    with patch("app.routers.rondas.round_execution_service.submit_scan") as mock:
        mock.return_value = make_scan_response(
            trust_score=50, anomalies=["geo_invalid"], valid=False, distance_m=5000.0
        )

        response = client.post("/api/public/rondas/marcar", json=scan_payload())

    assert response.status_code == 200
    assert response.json()["anomalies"] == ["geo_invalid"]
    assert response.json()["geo"]["valid"] is False


def test_marcar_latitude_hors_intervalle(client):
    """Coordonnées malformées → 400 ValidationFailure."""
    response = client.post("/api/public/rondas/marcar", json=scan_payload(lat=123.0))

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "ValidationFailure"
    assert response.json()["detail"]["code"] == "validation_failure"
    assert response.json()["detail"]["errors"][0]["loc"][-1] == "lat"


def test_marcar_code_checkpoint_manquant(client):
    payload = scan_payload()
    del payload["checkpointCode"]

    response = client.post("/api/public/rondas/marcar", json=payload)

    assert response.status_code == 400


def test_marcar_batterie_invalide(client):
    response = client.post("/api/public/rondas/marcar", json=scan_payload(batteryLevel=140))
    assert response.status_code == 400


def test_marcar_execution_id_invalide(client):
    response = client.post("/api/public/rondas/marcar", json=scan_payload(executionId="pas-un-uuid"))
    assert response.status_code == 400


def test_marcar_execution_introuvable(client):
    with patch("app.routers.rondas.round_execution_service.submit_scan") as mock:
        mock.side_effect = ExecutionNotFound("Exécution introuvable.")

        response = client.post("/api/public/rondas/marcar", json=scan_payload())

    assert response.status_code == 404
    detail = response.json()["detail"]
    assert detail["error"] == "NotFound"
    assert detail["code"] == "execution_not_found"


def test_marcar_checkpoint_introuvable(client):
    with patch("app.routers.rondas.round_execution_service.submit_scan") as mock:
        mock.side_effect = CheckpointNotFound("Checkpoint CP-01 introuvable pour cette installation.")

        response = client.post("/api/public/rondas/marcar", json=scan_payload())

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "checkpoint_not_found"


def test_marcar_execution_completa(client):
    """Exécution déjà clôturée → 409 InvalidState."""
    with patch("app.routers.rondas.round_execution_service.submit_scan") as mock:
        mock.side_effect = ExecutionNotEligible("L'exécution est en statut completa : aucun scan n'est accepté.")

        response = client.post("/api/public/rondas/marcar", json=scan_payload())

    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "InvalidState"


def test_marcar_sans_guardia(client):
    with patch("app.routers.rondas.round_execution_service.submit_scan") as mock:
        mock.side_effect = NoGuardAssigned("Exécution sans guardia assigné.")

        response = client.post("/api/public/rondas/marcar", json=scan_payload())

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "no_guard_assigned"


def test_marcar_conflit_de_persistance(client):
    with patch("app.routers.rondas.round_execution_service.submit_scan") as mock:
        mock.side_effect = TransientPersistenceFailure("Le scan n'a pas pu être enregistré, réessayer plus tard.")

        response = client.post("/api/public/rondas/marcar", json=scan_payload())

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "TransientPersistenceFailure"


def test_marcar_erreur_inattendue_sans_fuite_de_details():
    """Exception interne → 500 générique, sans le message d'origine."""
    app.dependency_overrides[get_db] = lambda: MagicMock()
    try:
        with TestClient(app, raise_server_exceptions=False) as c:
            with patch("app.routers.rondas.round_execution_service.submit_scan") as mock:
                mock.side_effect = RuntimeError("password=secret dans la chaîne de connexion")

                response = c.post("/api/public/rondas/marcar", json=scan_payload())
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["detail"]["error"] == "Unexpected"
    assert "secret" not in response.text


# ============================================================
# Lectures de supervision
# ============================================================

def test_get_execution(client):
    execution_id = uuid.uuid4()
    with patch("app.routers.rondas.audit_service.get_execution") as mock:
        mock.return_value = ExecutionResponse(
            id=execution_id,
            template_id=uuid.uuid4(),
            guard_id=uuid.uuid4(),
            status="en_curso",
            checkpoints_completed=3,
            checkpoints_total=10,
            completion_pct=30.0,
            trust_score=100,
            started_at=datetime(2026, 10, 19, 22, 0),
        )

        response = client.get(f"/api/v1/rondas/executions/{execution_id}")

    assert response.status_code == 200
    assert response.json()["completion_pct"] == 30.0
    assert response.json()["status"] == "en_curso"


def test_get_execution_introuvable(client):
    with patch("app.routers.rondas.audit_service.get_execution") as mock:
        mock.side_effect = ExecutionNotFound("Exécution introuvable.")

        response = client.get(f"/api/v1/rondas/executions/{uuid.uuid4()}")

    assert response.status_code == 404


def test_list_scans(client):
    execution_id = uuid.uuid4()
    with patch("app.routers.rondas.audit_service.list_scans") as mock:
        mock.return_value = [
            ScanRecordResponse(
                id=uuid.uuid4(),
                checkpoint_id=uuid.uuid4(),
                guard_id=uuid.uuid4(),
                scanned_at=datetime(2026, 10, 19, 22, 0),
                lat=-33.4372,
                lng=-70.6506,
                geo_valid=True,
                geo_distance_m=1.5,
                battery_level=80,
                speed_from_prev_kmh=0.0,
                time_from_prev_sec=None,
                photo_evidence_url=None,
                integrity_hash="a" * 64,
                anomalies=[],
                trust_score=90,
            )
        ]

        response = client.get(f"/api/v1/rondas/executions/{execution_id}/scans")

    assert response.status_code == 200
    assert len(response.json()) == 1
    assert response.json()[0]["integrity_hash"] == "a" * 64


def test_list_alerts(client):
    execution_id = uuid.uuid4()
    with patch("app.routers.rondas.audit_service.list_alerts") as mock:
        mock.return_value = [
            AlertResponse(
                id=uuid.uuid4(),
                execution_id=execution_id,
                installation_id=uuid.uuid4(),
                alert_type="geo_invalid",
                severity="critica",
                message="Anomalía detectada en checkpoint Punto 1: geo_invalid",
                data={"anomalies": ["geo_invalid"], "trust_score": 50},
                created_at=datetime(2026, 10, 19, 22, 0),
            )
        ]

        response = client.get(f"/api/v1/rondas/executions/{execution_id}/alerts")

    assert response.status_code == 200
    assert response.json()[0]["severity"] == "critica"


def test_verify_scan(client):
    scan_id = uuid.uuid4()
    with patch("app.routers.rondas.audit_service.verify_scan_integrity") as mock:
        mock.return_value = IntegrityVerification(
            scan_id=scan_id, stored_hash="a" * 64, computed_hash="b" * 64, valid=False
        )

        response = client.get(f"/api/v1/rondas/scans/{scan_id}/verify")

    assert response.status_code == 200
    assert response.json()["valid"] is False


def test_verify_scan_introuvable(client):
    with patch("app.routers.rondas.audit_service.verify_scan_integrity") as mock:
        mock.side_effect = ScanNotFound("Scan introuvable.")

        response = client.get(f"/api/v1/rondas/scans/{uuid.uuid4()}/verify")

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "scan_not_found"


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
