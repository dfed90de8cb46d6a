"""
Configuration partagée pour tous les tests.
- client     : override de get_db par un MagicMock (aucune connexion PostgreSQL)
- db_session : session SQLAlchemy sur SQLite en mémoire pour les flux de service
- make_round : construit un catalogue (modèle, checkpoints) et une exécution
"""

import uuid
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.models.checkpoint import Checkpoint
from app.models.round_execution import RoundExecution
from app.models.round_template import RoundTemplate, RoundTemplateCheckpoint

BASE_LAT = -33.4372
BASE_LNG = -70.6506
METERS_PER_DEGREE_LAT = 111_194.93
T0 = datetime(2026, 10, 19, 22, 0, 0)


def lat_offset(meters: float) -> float:
    """Latitude située `meters` mètres au nord de BASE_LAT."""
    return BASE_LAT + meters / METERS_PER_DEGREE_LAT


@pytest.fixture
def client():
    """Client HTTP de test avec la BDD mockée."""
    mock_db = MagicMock()
    app.dependency_overrides[get_db] = lambda: mock_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """Session sur une base SQLite en mémoire, schéma créé depuis les modèles."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def make_round(db_session):
    """
    Fabrique une ronde : n checkpoints alignés vers le nord, espacés de `spacing_m`,
    codes CP-01, CP-02, ... et une exécution dans le statut demandé.
    """

    def _make(n_checkpoints=10, spacing_m=50.0, radius_m=30, status="pendiente", with_guard=True):
        tenant_id = uuid.uuid4()
        installation_id = uuid.uuid4()
        template = RoundTemplate(tenant_id=tenant_id, installation_id=installation_id, name="Ronda nocturna")
        db_session.add(template)
        db_session.flush()

        checkpoints = []
        for i in range(n_checkpoints):
            cp = Checkpoint(
                tenant_id=tenant_id,
                installation_id=installation_id,
                name=f"Punto {i + 1}",
                code=f"CP-{i + 1:02d}",
                lat=lat_offset(i * spacing_m),
                lng=BASE_LNG,
                geo_radius_m=radius_m,
                is_active=True,
            )
            db_session.add(cp)
            db_session.flush()
            db_session.add(RoundTemplateCheckpoint(template_id=template.id, checkpoint_id=cp.id, order_index=i))
            checkpoints.append(cp)

        execution = RoundExecution(
            tenant_id=tenant_id,
            template_id=template.id,
            guard_id=uuid.uuid4() if with_guard else None,
            status=status,
            checkpoints_total=n_checkpoints,
        )
        db_session.add(execution)
        db_session.commit()
        return execution, checkpoints

    return _make
