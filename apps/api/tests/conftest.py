"""
Test configuration and fixtures.

Provides:
- In-memory SQLite schema (created and dropped around each test)
- JWT minting for authenticated requests
- HTTPX AsyncClient against the ASGI app
- A stub text-generation provider
"""
import os
import time
import uuid
from collections.abc import AsyncGenerator, Generator
from dataclasses import dataclass, field

from cryptography.fernet import Fernet

# Settings are read at import time; configure before importing the app.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ["ENV"] = "dev"
os.environ["SENTRY_DSN"] = ""
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-0123456789-abcdefghijklmnop"
os.environ["FERNET_KEY"] = Fernet.generate_key().decode()
os.environ["INTERNAL_SECRET"] = "test-internal-secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_123"
os.environ["STRIPE_PRICE_ID"] = "price_test_123"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["AI_PROVIDER"] = "anthropic"
os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
os.environ["RESEND_API_KEY"] = "re_test_key"
os.environ["FREE_MODES"] = "quick"

import jwt
import pytest
import stripe
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from letter_to_you.core.config import settings
from letter_to_you.core.deps import get_db
from letter_to_you.core.security import ACCESS_TOKEN_AUDIENCE
from letter_to_you.db.base import Base
from letter_to_you.db.session import SessionLocal, engine
from letter_to_you.main import app
from letter_to_you.services import ai_provider
from letter_to_you.services.ai_provider import ChatMessage, ChatResponse
from letter_to_you.workflow.api_client import LetterApiClient

BASE_URL = "http://test"


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema per test; app code is free to commit."""
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestUser:
    id: uuid.UUID
    email: str
    display_name: str
    token: str = ""

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


def make_access_token(
    user_id: uuid.UUID | str,
    email: str | None = None,
    display_name: str | None = None,
    expires_in: int = 3600,
) -> str:
    """Mint a Supabase-style access token."""
    now = int(time.time())
    claims = {
        "sub": str(user_id),
        "aud": ACCESS_TOKEN_AUDIENCE,
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
        "email": email,
        "user_metadata": {"display_name": display_name} if display_name else {},
    }
    return jwt.encode(claims, settings.SUPABASE_JWT_SECRET, algorithm="HS256")


@pytest.fixture(scope="function")
def test_user() -> TestUser:
    user = TestUser(
        id=uuid.uuid4(),
        email=f"writer-{uuid.uuid4().hex[:8]}@example.com",
        display_name="Sam",
    )
    user.token = make_access_token(user.id, user.email, user.display_name)
    return user


@pytest.fixture(scope="function")
def mint_token():
    """Factory for access tokens of arbitrary users."""
    return make_access_token


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated AsyncClient."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session, test_user: TestUser
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient carrying the test user's bearer token."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url=BASE_URL,
        headers=test_user.headers,
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def api(db: Session) -> AsyncGenerator[LetterApiClient, None]:
    """Workflow API client wired to the ASGI app (anonymous by default)."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with LetterApiClient(BASE_URL, transport=ASGITransport(app=app)) as c:
        yield c

    app.dependency_overrides.clear()


# =============================================================================
# Text generation stub
# =============================================================================

@dataclass
class StubProvider:
    """Records calls and answers with a canned reply (or raises)."""

    reply: str = "Dear you,\n\nThis is your letter.\n\nWith care,\nYou"
    error: Exception | None = None
    calls: list[list[ChatMessage]] = field(default_factory=list)

    async def chat(self, messages, **kwargs) -> ChatResponse:
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return ChatResponse(
            content=self.reply,
            prompt_tokens=10,
            completion_tokens=20,
            total_tokens=30,
            model="stub",
        )


@pytest.fixture(scope="function")
def stub_provider(monkeypatch: pytest.MonkeyPatch) -> StubProvider:
    provider = StubProvider()
    monkeypatch.setattr(ai_provider, "get_configured_provider", lambda: provider)
    return provider


# =============================================================================
# Stripe
# =============================================================================

@pytest.fixture(autouse=True)
def stripe_lookup(monkeypatch: pytest.MonkeyPatch) -> dict:
    """
    Keep Session.retrieve offline. Tests put paid sessions in the returned
    dict; any other id behaves like an unknown session.
    """
    sessions: dict = {}

    def fake_retrieve(session_id, **kwargs):
        if session_id not in sessions:
            raise stripe.InvalidRequestError(f"No such checkout.session: {session_id}", "id")
        return sessions[session_id]

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", fake_retrieve)
    return sessions
