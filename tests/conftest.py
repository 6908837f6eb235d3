"""Test fixtures — a throwaway database per test plus fake collaborators.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own SQLite file (aiosqlite) with tables created
   from the ORM metadata. Nothing leaks between tests and no database
   server is needed.
2. get_db is overridden to hand every request a fresh session from that
   test's session factory, like production does.
3. The outbound collaborators are swapped through app.dependency_overrides:
   - RecordingEmailSender keeps sent mail in memory (and can be told to fail)
   - StubIdentityBridge maps assertion strings to profiles
   - PasswordHasher runs at bcrypt cost 4 so tests stay fast

Unlike a mocked get_current_account, the authorization gate always runs
for real here — tests that need a logged-in user sign up, verify and use
the issued token.
"""

import re
import uuid
from datetime import timedelta

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from notekeeper.auth.dependencies import (
    get_email_sender,
    get_identity_bridge,
    get_password_hasher,
    get_token_service,
)
from notekeeper.auth.federated import FederatedProfile, IdentityBridge
from notekeeper.auth.password import PasswordHasher
from notekeeper.auth.tokens import TokenService
from notekeeper.db.engine import get_db
from notekeeper.db.models import Base
from notekeeper.errors import InvalidAssertion
from notekeeper.mail.sender import EmailSender
from notekeeper.main import app

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"

_CODE_RE = re.compile(r">(\d{6})<")


class RecordingEmailSender(EmailSender):
    """Keeps outgoing mail in memory. Set fail=True to simulate an outage."""

    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        if self.fail:
            return False
        self.sent.append((recipient, subject, body))
        return True

    def last_code_for(self, email: str) -> str:
        for recipient, _, body in reversed(self.sent):
            if recipient == email:
                return _CODE_RE.search(body).group(1)
        raise AssertionError(f"no mail sent to {email}")


class StubIdentityBridge(IdentityBridge):
    """Assertion string → profile (or exception to raise)."""

    provider = "stub"

    def __init__(self):
        self.assertions: dict = {}

    async def verify_assertion(self, raw_assertion: str) -> FederatedProfile:
        outcome = self.assertions.get(raw_assertion)
        if outcome is None:
            raise InvalidAssertion()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


@pytest_asyncio.fixture()
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """Session for direct setup/inspection, separate from request sessions."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def hasher():
    return PasswordHasher(rounds=4)


@pytest_asyncio.fixture()
async def tokens():
    return TokenService(secret=TEST_SECRET, expires_in=timedelta(days=7))


@pytest_asyncio.fixture()
async def mailer():
    return RecordingEmailSender()


@pytest_asyncio.fixture()
async def bridge():
    return StubIdentityBridge()


@pytest_asyncio.fixture()
async def client(session_factory, hasher, tokens, mailer, bridge):
    """HTTP client against the real app with test collaborators."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_password_hasher] = lambda: hasher
    app.dependency_overrides[get_token_service] = lambda: tokens
    app.dependency_overrides[get_email_sender] = lambda: mailer
    app.dependency_overrides[get_identity_bridge] = lambda: bridge

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def signup(client, email: str, password: str = "secret1", first="Ada", last="Lovelace"):
    return await client.post(
        "/api/auth/signup",
        json={"email": email, "password": password, "firstName": first, "lastName": last},
    )


@pytest_asyncio.fixture()
async def verified_user(client, mailer):
    """Sign up + verify a fresh account. Returns email, password, token, headers."""
    email = unique_email("verified")
    password = "secret1"
    r = await signup(client, email, password)
    assert r.status_code == 201

    r = await client.post(
        "/api/auth/verify-otp",
        json={"email": email, "otp": mailer.last_code_for(email)},
    )
    assert r.status_code == 200
    data = r.json()
    return {
        "id": data["user"]["id"],
        "email": email,
        "password": password,
        "token": data["token"],
        "headers": {"Authorization": f"Bearer {data['token']}"},
    }
