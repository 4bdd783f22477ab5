"""Application-level behavior: health check, error envelope, bootstrap script."""

import importlib.util
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from portal.models import Role, User
from portal.services.user_service import UserService
from tests.conftest import WORKER_EMAIL, WORKER_ID

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "create_admin.py"


@pytest.fixture
def create_admin():
    spec = importlib.util.spec_from_file_location("create_admin", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_health_reports_database(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["database"] == "ok"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/no-existe")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_wrong_method_uses_error_envelope(client):
    response = client.get("/login")

    assert response.status_code == 405
    assert "error" in response.json()


def test_unhandled_error_is_sanitized(app, monkeypatch):
    async def explode(self):
        raise RuntimeError("connection string postgres://secret")

    monkeypatch.setattr(UserService, "list_areas", explode)
    response = TestClient(app, raise_server_exceptions=False).get("/areas")

    assert response.status_code == 500
    assert response.json() == {"error": "Error interno del servidor"}


class TestCreateAdminScript:
    def test_seeding_is_idempotent(self, database, create_admin):
        admin_role = database.run(create_admin.seed_catalogues)

        assert admin_role.nombre == "Administrador"
        assert len(database.rows(Role)) == 2

    def test_creates_new_administrator(self, database, create_admin):
        async def run(session):
            role = await create_admin.seed_catalogues(session)
            return await create_admin.upsert_admin(
                session, role, "nuevo@mdva.gob.pe", "55555555", "Nuevo", "Admin", "Clave1234"
            )

        user, created = database.run(run)

        assert created is True
        stored = database.get(User, user.id)
        assert stored.rol_id == 1
        assert stored.estado_id == 1

    def test_promotes_existing_account(self, database, create_admin):
        async def run(session):
            role = await create_admin.seed_catalogues(session)
            return await create_admin.upsert_admin(
                session, role, WORKER_EMAIL, "22222222", "Luis", "Mamani Ccori", "Clave1234"
            )

        user, created = database.run(run)

        assert created is False
        assert user.id == WORKER_ID
        assert database.get(User, WORKER_ID).rol_id == 1
