"""
Shared test fixtures.

Every test gets a fresh SQLite file (via aiosqlite) created from the ORM
metadata and seeded with the catalogues plus three accounts: an
administrator, a worker and a suspended worker. External collaborators
(identity provider, SMTP, clock) are replaced through dependency overrides.
"""

import asyncio
from typing import Any, Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from portal.audit.trail import AuditTrail, get_audit_trail
from portal.auth.login_attempts import LoginAttemptTracker, get_login_tracker
from portal.auth.rate_limit import limiter
from portal.auth.utils import hash_password
from portal.database import Base, connection, get_async_session
from portal.integrations.identity.client import get_identity_client
from portal.integrations.identity.exceptions import IdentityApiError
from portal.main import create_application
from portal.models import Area, Cargo, Estado, Role, User
from portal.services.mailer import Notifier, get_notifier

ADMIN_ID = 1
WORKER_ID = 2
SUSPENDED_ID = 3

ADMIN_EMAIL = "admin@mdva.gob.pe"
WORKER_EMAIL = "worker@mdva.gob.pe"
SUSPENDED_EMAIL = "suspendido@mdva.gob.pe"

ADMIN_PASSWORD = "Admin1234"
WORKER_PASSWORD = "Worker1234"
SUSPENDED_PASSWORD = "Suspend1234"

# Hashed once per session: bcrypt is slow on purpose
_HASHES = {
    ADMIN_PASSWORD: hash_password(ADMIN_PASSWORD),
    WORKER_PASSWORD: hash_password(WORKER_PASSWORD),
    SUSPENDED_PASSWORD: hash_password(SUSPENDED_PASSWORD),
}


def as_user(user_id: int) -> dict[str, str]:
    """Headers identifying the caller the way the frontend does."""
    return {"x-user-id": str(user_id)}


# =============================================================================
# Fakes
# =============================================================================

class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += minutes * 60


class RecordingNotifier(Notifier):
    """Builds every message but records it instead of talking SMTP."""

    def __init__(self):
        super().__init__()
        self.sent: list[tuple[str, str, str]] = []

    def send(self, to: str, subject: str, html: str) -> bool:
        self.sent.append((to, subject, html))
        return True

    def subjects_for(self, email: str) -> list[str]:
        return [subject for to, subject, _ in self.sent if to == email]


class FakeIdentityClient:
    """Stands in for the identity provider; payloads are set per test."""

    def __init__(self):
        self.dni_payload: dict[str, Any] = {}
        self.ruc_payload: dict[str, Any] = {}
        self.error: Optional[IdentityApiError] = None
        self.calls: list[tuple[str, str]] = []

    async def fetch_dni(self, dni: str) -> dict[str, Any]:
        self.calls.append(("dni", dni))
        if self.error:
            raise self.error
        return self.dni_payload

    async def fetch_ruc(self, ruc: str) -> dict[str, Any]:
        self.calls.append(("ruc", ruc))
        if self.error:
            raise self.error
        return self.ruc_payload


# =============================================================================
# Database
# =============================================================================

class SqliteDatabase:
    """Temporary database plus helpers to inspect it from sync tests."""

    def __init__(self, url: str):
        # NullPool: TestClient and the helpers below run on different event loops
        self.engine = create_async_engine(url, poolclass=NullPool)
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def run(self, fn):
        """Run ``await fn(session)`` on a fresh session and return its result."""

        async def runner():
            async with self.session_factory() as session:
                return await fn(session)

        return asyncio.run(runner())

    def rows(self, model) -> list:
        async def fetch(session: AsyncSession):
            result = await session.execute(select(model).order_by(model.id))
            return list(result.scalars().all())

        return self.run(fetch)

    def get(self, model, pk):
        async def fetch(session: AsyncSession):
            return await session.get(model, pk)

        return self.run(fetch)


async def _create_schema(database: SqliteDatabase) -> None:
    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def _seed(session: AsyncSession) -> None:
    session.add_all([
        Role(id=1, nombre="Administrador"),
        Role(id=2, nombre="Trabajador"),
        Estado(id_estado=1, nombre_estado="activo"),
        Estado(id_estado=2, nombre_estado="suspendido"),
        Area(id=1, nombre="Oficina de Transformación Digital"),
        Area(id=2, nombre="Gerencia de Rentas"),
    ])
    await session.flush()

    session.add_all([
        Cargo(id=1, nombre="Jefe de Area", area_id=1),
        Cargo(id=2, nombre="Trabajador", area_id=1),
        Cargo(id=3, nombre="Trabajador", area_id=2),
    ])
    await session.flush()

    session.add_all([
        User(
            id=ADMIN_ID, nombres="Ana", apellidos="Quispe Rojas", dni="11111111",
            email=ADMIN_EMAIL, telefono="999111111", password=_HASHES[ADMIN_PASSWORD],
            cargo_id=1, area_id=1, rol_id=1, estado_id=1,
        ),
        User(
            id=WORKER_ID, nombres="Luis", apellidos="Mamani Ccori", dni="22222222",
            email=WORKER_EMAIL, telefono="999222222", password=_HASHES[WORKER_PASSWORD],
            cargo_id=2, area_id=1, rol_id=2, estado_id=1,
        ),
        User(
            id=SUSPENDED_ID, nombres="Rosa", apellidos="Huaman Torres", dni="33333333",
            email=SUSPENDED_EMAIL, telefono="999333333", password=_HASHES[SUSPENDED_PASSWORD],
            cargo_id=3, area_id=2, rol_id=2, estado_id=2,
        ),
    ])
    await session.commit()


@pytest.fixture
def database(tmp_path, monkeypatch) -> SqliteDatabase:
    db = SqliteDatabase(f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}")
    asyncio.run(_create_schema(db))
    db.run(_seed)

    # Anything falling back to the default factory hits the test database
    monkeypatch.setattr(connection, "async_session_factory", db.session_factory)

    yield db
    asyncio.run(db.engine.dispose())


# =============================================================================
# Application
# =============================================================================

@pytest.fixture(autouse=True)
def disable_rate_limit():
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tracker(clock) -> LoginAttemptTracker:
    return LoginAttemptTracker(window_seconds=15 * 60, clock=clock)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def identity_client() -> FakeIdentityClient:
    return FakeIdentityClient()


@pytest.fixture
def audit(database) -> AuditTrail:
    return AuditTrail(database.session_factory)


@pytest.fixture
def broken_audit(tmp_path) -> AuditTrail:
    """Audit sink whose store cannot be opened."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'audit.db'}",
        poolclass=NullPool,
    )
    return AuditTrail(async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False))


@pytest.fixture
def app(database, tracker, audit, notifier, identity_client) -> FastAPI:
    application = create_application()

    async def override_session():
        async with database.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_async_session] = override_session
    application.dependency_overrides[get_login_tracker] = lambda: tracker
    application.dependency_overrides[get_audit_trail] = lambda: audit
    application.dependency_overrides[get_notifier] = lambda: notifier
    application.dependency_overrides[get_identity_client] = lambda: identity_client
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
