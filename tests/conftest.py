"""Shared fixtures: in-memory Mongo, a pinned clinic clock, recorded emails."""

import uuid
from datetime import datetime, timezone

import httpx
import pytest
from beanie import init_beanie
from mongomock_motor import AsyncMongoMockClient

from curequeue.constants import Role
from curequeue.database import document_models
from curequeue.models import User
from curequeue.security import token_for
from curequeue.services import notification_service
from curequeue.utils.clock import FixedClock, get_clock

# 04:30 UTC is 10:00 in Asia/Kolkata
NOW_UTC = datetime(2025, 1, 15, 4, 30, tzinfo=timezone.utc)
TODAY = "2025-01-15"

# bcrypt of "secret123", computed once to keep fixtures fast
_PASSWORD_HASH = None


def _password_hash() -> str:
    global _PASSWORD_HASH
    if _PASSWORD_HASH is None:
        from curequeue.security import hash_password

        _PASSWORD_HASH = hash_password("secret123")
    return _PASSWORD_HASH


@pytest.fixture(autouse=True)
async def db():
    """Fresh in-memory database per test."""
    client = AsyncMongoMockClient()
    database = client[f"curequeue_test_{uuid.uuid4().hex[:8]}"]
    await init_beanie(database=database, document_models=document_models())
    yield database


@pytest.fixture(autouse=True)
async def sent_emails(monkeypatch):
    """Capture emails instead of calling the provider."""
    sent = []

    async def fake_send_email(to, subject, html):
        sent.append({"to": to, "subject": subject, "html": html})
        return True

    monkeypatch.setattr(notification_service, "send_email", fake_send_email)
    yield sent
    await notification_service.drain()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW_UTC, "Asia/Kolkata")


@pytest.fixture
def make_user():
    async def _make(role: Role = Role.PATIENT, name: str | None = None, email: str | None = None) -> User:
        tag = uuid.uuid4().hex[:6]
        user = User(
            name=name or f"{role.value.title()} {tag}",
            email=email or f"{role.value}.{tag}@example.com",
            password_hash=_password_hash(),
            phone="9876543210",
            role=role,
        )
        await user.insert()
        return user

    return _make


@pytest.fixture
async def doctor(make_user) -> User:
    return await make_user(Role.DOCTOR, name="Asha Rao")


@pytest.fixture
async def patient(make_user) -> User:
    return await make_user(Role.PATIENT, name="Ravi Kumar")


@pytest.fixture
async def admin(make_user) -> User:
    return await make_user(Role.ADMIN, name="Clinic Admin")


@pytest.fixture
async def client(clock):
    """HTTP client against the app, without startup hooks (no real Mongo)."""
    from curequeue.main import app
    from curequeue.rate_limit import limiter

    app.dependency_overrides[get_clock] = lambda: clock
    limiter.enabled = False
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def headers_for():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {token_for(user)}"}

    return _headers
