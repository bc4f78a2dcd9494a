"""
Shared pytest fixtures for the portal tests.

Provides:
- Database fixtures (temporary sqlite file per test, session factory, session)
- Identity gateway bound to the test database
- Recording email sender in place of SMTP
- User and team factories
- HTTP client with dependency overrides
"""

import os
import tempfile
from pathlib import Path
from typing import List, Optional

import pytest

# Настройки читаются при импорте portal, поэтому окружение задается до него
_DEFAULT_DB = Path(tempfile.gettempdir()) / "portal-tests-default.db"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_DSN", f"sqlite+aiosqlite:///{_DEFAULT_DB}")
os.environ.setdefault("BASE_URL", "https://portal.test")

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from portal.auth.identity import IdentityGateway, get_identity_gateway
from portal.auth.jwt import create_access_token
from portal.db import Base, get_session
from portal.models import Team, UserProfile, UserRole, leader_snapshot, member_snapshot
import portal.utils.notifications as notifications


# ========== Database ==========

@pytest.fixture
async def engine(tmp_path):
    """Engine over a fresh sqlite file; separate connections are needed by the identity gateway"""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as db_session:
        yield db_session


@pytest.fixture
def identity(session_factory):
    return IdentityGateway(session_factory)


# ========== Email ==========

class RecordingEmailSender:
    """Stands in for EmailSender: keeps every message instead of talking to SMTP"""

    def __init__(self):
        self.configured = True
        self.sent = []
        self.fail_for = set()

    def send_email(self, to_email, subject, body, is_html=False) -> bool:
        recipients = to_email if isinstance(to_email, list) else [to_email]
        if any(r in self.fail_for for r in recipients):
            return False
        self.sent.append({"to": to_email, "subject": subject, "body": body})
        return True

    def recipients(self) -> List[str]:
        result = []
        for message in self.sent:
            to = message["to"]
            result.extend(to if isinstance(to, list) else [to])
        return result


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    sender = RecordingEmailSender()
    monkeypatch.setattr(notifications, "email_sender", sender)
    return sender


# ========== Factories ==========

@pytest.fixture
def make_user(session_factory, identity):
    """Creates an identity account and a matching profile"""
    counter = {"n": 0}

    async def factory(
            role: UserRole = UserRole.MEMBER,
            name: Optional[str] = None,
            email: Optional[str] = None,
            institute: str = "Parul University",
            password: str = "password123",
            **fields
    ) -> UserProfile:
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        name = name or f"User {counter['n']}"
        fields.setdefault("password_changed", True)
        uid = await identity.create_account(email, password, name)
        profile = UserProfile(
            uid=uid,
            role=UserRole(role).value,
            name=name,
            email=email,
            institute=institute,
            **fields
        )
        async with session_factory() as db_session:
            db_session.add(profile)
            await db_session.commit()
        return profile

    return factory


@pytest.fixture
def make_team(session_factory):
    """Writes a team with the given leader and members and links their profiles"""
    counter = {"n": 0}

    async def factory(
            leader: UserProfile,
            members: List[UserProfile] = (),
            name: Optional[str] = None,
            **fields
    ) -> Team:
        counter["n"] += 1
        team = Team(
            name=name or f"Team {counter['n']}",
            leader=leader_snapshot(leader.uid, leader.name, leader.email),
            institute=leader.institute,
            department="Computer Engineering",
            category="Software",
            members=[member_snapshot(m.uid, m.name, m.email) for m in members],
            **fields
        )
        async with session_factory() as db_session:
            db_session.add(team)
            await db_session.flush()
            for profile in [leader, *members]:
                stored = await db_session.get(UserProfile, profile.uid)
                stored.team_id = team.id
                if profile is leader:
                    stored.role = UserRole.LEADER.value
            await db_session.commit()
        return team

    return factory


@pytest.fixture
def fetch(session_factory):
    """Reads an entity in a fresh session, bypassing anything cached by the session under test"""
    async def reader(model, key):
        async with session_factory() as db_session:
            return await db_session.get(model, key)
    return reader


# ========== HTTP ==========

@pytest.fixture
async def client(session_factory, identity):
    from app import app

    async def override_session():
        async with session_factory() as db_session:
            yield db_session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_identity_gateway] = lambda: identity

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Bearer header for a profile"""
    def build(profile: UserProfile) -> dict:
        return {"Authorization": f"Bearer {create_access_token({'sub': profile.email})}"}
    return build
