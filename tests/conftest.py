"""
Pytest configuration for TalentGate backend tests.

Each test gets its own SQLite file through aiosqlite. Transactions are
opened with BEGIN IMMEDIATE so concurrent requests serialize on the write
lock the way row locks serialize them on PostgreSQL.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-talentgate-0123456789")
os.environ.setdefault("ENVIRONMENT", "development")

import uuid
from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event

from app.core import dependencies
from app.core.database import database
from app.core.dependencies import get_audit_sink, get_redis
from app.core.security import create_access_token
from app.main import app
from app.models import (
    Application,
    ApplicationStatus,
    Base,
    Candidate,
    Job,
    JobStatus,
    OrgMember,
    OrgRole,
    Organization,
    User,
)
from app.services.audit import AuditSink


def pytest_configure(config):
    """Configure pytest-asyncio mode."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


def unique_slug(prefix: str) -> str:
    """Generate a unique org slug per test."""
    return f"{prefix}-{uuid.uuid4().hex[:6]}"


def bearer(user_id: uuid.UUID, org_id: uuid.UUID | None = None) -> dict[str, str]:
    """Authorization header for a session, optionally bound to an organization."""
    return {"Authorization": f"Bearer {create_access_token(user_id, org_id)}"}


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def db_engine(tmp_path) -> AsyncGenerator[Any, None]:
    database.configure(f"sqlite+aiosqlite:///{tmp_path / 'talentgate.db'}")
    engine = database.engine

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let the "begin" listener emit BEGIN itself.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await database.dispose()
    database.reset()
    dependencies._org_ids.clear()


class Seed:
    """Writes fixtures through short-lived sessions so no lock outlives a call."""

    async def add(self, *objects: Any) -> None:
        async with database.session_factory() as session, session.begin():
            session.add_all(objects)

    async def execute(self, statement: Any) -> Any:
        async with database.session_factory() as session, session.begin():
            return await session.execute(statement)

    async def scalar(self, statement: Any) -> Any:
        async with database.session_factory() as session, session.begin():
            return await session.scalar(statement)

    async def scalars(self, statement: Any) -> list[Any]:
        async with database.session_factory() as session, session.begin():
            return list((await session.scalars(statement)).all())

    async def user(self, name: str = "Test User") -> User:
        user = User(email=f"user_{uuid.uuid4().hex[:8]}@example.com", name=name)
        await self.add(user)
        return user

    async def organization(
        self, owner: User | None = None, name: str = "Acme Recruiting"
    ) -> Organization:
        org = Organization(id=uuid.uuid4(), name=name, slug=unique_slug("org"))
        await self.add(org)
        if owner is not None:
            await self.member(owner, org, OrgRole.owner)
        return org

    async def member(self, user: User, org: Organization, role: OrgRole) -> OrgMember:
        member = OrgMember(user_id=user.id, org_id=org.id, role=role)
        await self.add(member)
        return member

    async def job(self, org: Organization, status: str = "draft") -> Job:
        job = Job(org_id=org.id, title="Backend Engineer", status=JobStatus(status))
        await self.add(job)
        return job

    async def application(self, org: Organization, status: str = "new") -> Application:
        job = await self.job(org, status="open")
        candidate = Candidate(
            org_id=org.id, first_name="Ada", last_name="Lovelace", email="ada@example.com"
        )
        await self.add(candidate)
        application = Application(
            org_id=org.id, job_id=job.id, candidate_id=candidate.id,
            status=ApplicationStatus(status),
        )
        await self.add(application)
        return application


@pytest.fixture
def seed(db_engine) -> Seed:
    return Seed()


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

@pytest.fixture
def redis_mock() -> AsyncMock:
    """Async Redis double: nothing blacklisted by default."""
    mock = AsyncMock()
    mock.exists.return_value = 0
    mock.incr.return_value = 1
    mock.expire.return_value = True
    return mock


@pytest.fixture
def audit_records() -> list[dict[str, Any]]:
    return []


@pytest.fixture
async def client(db_engine, redis_mock, audit_records) -> AsyncGenerator[AsyncClient, None]:
    async def _redis():
        return redis_mock

    def _audit_sink() -> AuditSink:
        return AuditSink(dispatch=audit_records.append)

    app.dependency_overrides[get_redis] = _redis
    app.dependency_overrides[get_audit_sink] = _audit_sink

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
