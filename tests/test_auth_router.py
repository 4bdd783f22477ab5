"""
Integration tests for /login, /logout and /validate-session.

Run against the seeded SQLite database with the clock, notifier and
audit sink injected through dependency overrides.
"""

import pytest
from sqlalchemy.exc import OperationalError

from portal.audit.trail import ADVERTENCIA, EXITOSO, FALLIDO, get_audit_trail
from portal.auth.rate_limit import limiter
from portal.auth.service import AuthService
from portal.auth.utils import decode_token
from portal.models import AuditLog, User
from tests.conftest import (
    SUSPENDED_EMAIL,
    SUSPENDED_PASSWORD,
    WORKER_EMAIL,
    WORKER_ID,
    WORKER_PASSWORD,
    as_user,
)


def _login(client, identifier, password):
    return client.post("/login", json={"emailOrDni": identifier, "password": password})


def _login_records(database):
    return [row for row in database.rows(AuditLog) if row.accion == "login"]


class TestLoginSuccess:
    def test_login_with_email_returns_user_and_tokens(self, client, database):
        response = _login(client, WORKER_EMAIL, WORKER_PASSWORD)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["sessionToken"]
        assert data["user"]["id"] == WORKER_ID
        assert data["user"]["email"] == WORKER_EMAIL
        assert data["user"]["rol"] == "trabajador"
        assert data["user"]["area_nombre"] == "Oficina de Transformación Digital"
        assert data["user"]["cargo_nombre"] == "Trabajador"
        assert "password" not in data["user"]

        payload = decode_token(data["token"])
        assert payload["sub"] == str(WORKER_ID)
        assert payload["type"] == "access"

    def test_login_with_dni(self, client):
        response = _login(client, "22222222", WORKER_PASSWORD)

        assert response.status_code == 200
        assert response.json()["user"]["dni"] == "22222222"

    def test_email_is_case_insensitive(self, client):
        response = _login(client, "Worker@MDVA.gob.pe", WORKER_PASSWORD)

        assert response.status_code == 200

    def test_success_stores_session_and_last_access(self, client, database):
        data = _login(client, WORKER_EMAIL, WORKER_PASSWORD).json()

        user = database.get(User, WORKER_ID)
        assert user.session_token == data["sessionToken"]
        assert user.ultimo_acceso is not None

    def test_success_is_audited(self, client, database):
        _login(client, WORKER_EMAIL, WORKER_PASSWORD)

        [record] = _login_records(database)
        assert record.usuario == WORKER_EMAIL
        assert record.resultado == EXITOSO
        assert record.ip == "testclient"


class TestLoginFailures:
    def test_missing_credentials(self, client, database):
        response = client.post("/login", json={"emailOrDni": WORKER_EMAIL})

        assert response.status_code == 400
        assert response.json() == {"error": "Faltan credenciales"}
        [record] = _login_records(database)
        assert record.resultado == FALLIDO

    def test_empty_body_is_missing_credentials(self, client):
        response = client.post("/login", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Faltan credenciales"}

    def test_wrong_password(self, client):
        response = _login(client, WORKER_EMAIL, "Wrong1234")

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Credenciales incorrectas"}

    def test_unknown_identifier_looks_like_wrong_password(self, client):
        response = _login(client, "nadie@mdva.gob.pe", "Whatever1")

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Credenciales incorrectas"}

    def test_suspended_account(self, client, database):
        response = _login(client, SUSPENDED_EMAIL, SUSPENDED_PASSWORD)

        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "Cuenta suspendida"}
        [record] = _login_records(database)
        assert record.resultado == FALLIDO

    def test_suspended_account_with_wrong_password_is_not_revealed(self, client):
        response = _login(client, SUSPENDED_EMAIL, "Wrong1234")

        assert response.status_code == 401


class TestFailedAttemptWarning:
    def test_third_failure_warns_once(self, client, database, notifier):
        statuses = []
        bodies = []
        for _ in range(4):
            response = _login(client, WORKER_EMAIL, "Wrong1234")
            statuses.append(response.status_code)
            bodies.append(response.json())

        assert statuses == [401, 401, 401, 401]
        assert "warning" not in bodies[0]
        assert "warning" not in bodies[1]
        assert bodies[2]["warning"] == "max_attempts_reached"
        assert "warning" not in bodies[3]

        warnings = [r for r in _login_records(database) if r.resultado == ADVERTENCIA]
        assert len(warnings) == 1
        assert notifier.subjects_for(WORKER_EMAIL) == ["Alerta: intentos fallidos de acceso"]

    def test_alert_mentions_attempt_count(self, client, notifier):
        for _ in range(3):
            _login(client, WORKER_EMAIL, "Wrong1234")

        [(_, _, html)] = notifier.sent
        assert "3" in html

    def test_unknown_identifier_warns_without_mail(self, client, database, notifier):
        for _ in range(3):
            response = _login(client, "nadie@mdva.gob.pe", "Whatever1")

        assert response.json()["warning"] == "max_attempts_reached"
        assert notifier.sent == []

    def test_success_resets_the_count(self, client):
        _login(client, WORKER_EMAIL, "Wrong1234")
        _login(client, WORKER_EMAIL, "Wrong1234")
        assert _login(client, WORKER_EMAIL, WORKER_PASSWORD).status_code == 200

        response = _login(client, WORKER_EMAIL, "Wrong1234")

        assert "warning" not in response.json()

    def test_failures_spread_beyond_window_never_warn(self, client, clock, database):
        for _ in range(5):
            response = _login(client, WORKER_EMAIL, "Wrong1234")
            assert "warning" not in response.json()
            clock.advance(20)

        assert [r for r in _login_records(database) if r.resultado == ADVERTENCIA] == []

    def test_window_expiry_allows_a_new_warning(self, client, clock, notifier):
        for _ in range(3):
            _login(client, WORKER_EMAIL, "Wrong1234")
        clock.advance(16)

        bodies = [_login(client, WORKER_EMAIL, "Wrong1234").json() for _ in range(3)]

        assert bodies[2]["warning"] == "max_attempts_reached"
        assert len(notifier.subjects_for(WORKER_EMAIL)) == 2

    def test_identifiers_are_counted_separately(self, client):
        _login(client, WORKER_EMAIL, "Wrong1234")
        _login(client, WORKER_EMAIL, "Wrong1234")

        response = _login(client, "22222222", "Wrong1234")

        assert "warning" not in response.json()


class TestAuditFailureIsolation:
    def test_broken_audit_store_does_not_change_responses(self, app, client, broken_audit):
        app.dependency_overrides[get_audit_trail] = lambda: broken_audit

        ok = _login(client, WORKER_EMAIL, WORKER_PASSWORD)
        bad = _login(client, WORKER_EMAIL, "Wrong1234")
        missing = client.post("/login", json={})

        assert ok.status_code == 200
        assert ok.json()["success"] is True
        assert bad.status_code == 401
        assert bad.json() == {"success": False, "error": "Credenciales incorrectas"}
        assert missing.status_code == 400


class TestSessionStartFailure:
    def test_failed_commit_is_audited_after_rollback(self, client, database, monkeypatch):
        async def failing_commit(self, user):
            user.session_token = "never-stored"
            raise OperationalError("COMMIT", {}, Exception("database is locked"))

        monkeypatch.setattr(AuthService, "start_session", failing_commit)

        response = _login(client, WORKER_EMAIL, WORKER_PASSWORD)

        assert response.status_code == 500
        assert response.json() == {"error": "Error en el servidor"}
        assert database.get(User, WORKER_ID).session_token is None
        [record] = _login_records(database)
        assert record.resultado == FALLIDO
        assert record.usuario == WORKER_EMAIL
        assert record.descripcion == "Error en el servidor al registrar la sesión"
        assert '"userId": 2' in record.detalles


class TestRateLimit:
    @pytest.fixture
    def enabled_limiter(self):
        limiter.reset()
        limiter.enabled = True
        yield limiter
        limiter.enabled = False
        limiter.reset()

    def test_forwarded_for_header_does_not_pick_the_bucket(self, client, enabled_limiter):
        statuses = [
            client.post(
                "/login",
                json={"emailOrDni": "nadie@mdva.gob.pe", "password": "Wrong1234"},
                headers={"x-forwarded-for": f"10.0.0.{i}"},
            ).status_code
            for i in range(31)
        ]

        assert statuses[:30] == [401] * 30
        assert statuses[30] == 429


class TestSessions:
    def test_validate_session_tracks_latest_login(self, client):
        first = _login(client, WORKER_EMAIL, WORKER_PASSWORD).json()["sessionToken"]
        second = _login(client, WORKER_EMAIL, WORKER_PASSWORD).json()["sessionToken"]

        old = client.post("/validate-session", json={"userId": WORKER_ID, "sessionToken": first})
        current = client.post("/validate-session", json={"userId": WORKER_ID, "sessionToken": second})

        assert first != second
        assert old.json() == {"valid": False}
        assert current.json() == {"valid": True}

    def test_validate_session_requires_both_fields(self, client):
        response = client.post("/validate-session", json={"userId": WORKER_ID})

        assert response.status_code == 400

    def test_validate_session_unknown_user(self, client):
        response = client.post("/validate-session", json={"userId": 999, "sessionToken": "abc"})

        assert response.json() == {"valid": False}

    def test_logout_clears_session(self, client, database):
        token = _login(client, WORKER_EMAIL, WORKER_PASSWORD).json()["sessionToken"]

        response = client.post("/logout", json={"userId": WORKER_ID})

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert database.get(User, WORKER_ID).session_token is None
        valid = client.post("/validate-session", json={"userId": WORKER_ID, "sessionToken": token})
        assert valid.json() == {"valid": False}

        [record] = [r for r in database.rows(AuditLog) if r.accion == "logout"]
        assert record.usuario == WORKER_EMAIL

    def test_logout_uses_caller_header(self, client, database):
        _login(client, WORKER_EMAIL, WORKER_PASSWORD)

        response = client.post("/logout", headers=as_user(WORKER_ID))

        assert response.status_code == 200
        assert database.get(User, WORKER_ID).session_token is None

    def test_logout_uses_bearer_token(self, client, database):
        token = _login(client, WORKER_EMAIL, WORKER_PASSWORD).json()["token"]

        response = client.post("/logout", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert database.get(User, WORKER_ID).session_token is None

    def test_logout_without_user(self, client):
        response = client.post("/logout")

        assert response.status_code == 400
        assert response.json() == {"error": "No se recibió userId"}

    def test_logout_unknown_user(self, client):
        response = client.post("/logout", json={"userId": 999})

        assert response.status_code == 404
        assert response.json() == {"error": "Usuario no encontrado"}
