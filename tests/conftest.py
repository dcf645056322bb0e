"""
tests/conftest.py
Shared fixtures: in-memory database, HTTP client, and fakes for the
identity provider, Stripe gateway and Resend sender.
"""

import os

# Settings are read at import time
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SUPABASE_URL", "https://project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-test-key")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("RESEND_API_KEY", "re_test_dummy")

from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from config.database import Base, get_db
from main import app
from services.notification.service import get_email_sender
from shared.middleware.auth import AuthenticatedUser, get_identity_provider
from shared.models.models import AppRole, HostPayoutAccount, Profile, UserRoleAssignment
from shared.utils.errors import Unauthenticated, UpstreamError
from shared.utils.stripe_gateway import AccountStatus, CheckoutSession, get_payment_gateway

TEST_DATABASE_URL = "sqlite+aiosqlite://"


# ── Fakes ─────────────────────────────────────────────────────

class FakeIdentityProvider:
    """Accepts tokens of the form 'token-<user id>'."""

    async def get_user(self, token: str) -> AuthenticatedUser:
        if not token.startswith("token-"):
            raise Unauthenticated("Authentication error: invalid JWT")
        user_id = token[len("token-"):]
        return AuthenticatedUser(id=user_id, email=f"{user_id}@example.com")


class FakeStripeGateway:
    def __init__(self):
        self.calls: List[str] = []
        self.accounts_created = 0
        self.account_status = AccountStatus(
            details_submitted=True, charges_enabled=True, payouts_enabled=True
        )
        self.session = CheckoutSession(id="cs_test_1", payment_status="unpaid", status="open")
        self.customer_id: Optional[str] = None
        self.checkout_params: Dict[str, Any] = {}

    def create_express_account(self, **kwargs: Any) -> str:
        self.calls.append("create_express_account")
        self.accounts_created += 1
        return f"acct_test_{self.accounts_created}"

    def create_onboarding_link(self, account_id: str, refresh_url: str, return_url: str) -> str:
        self.calls.append("create_onboarding_link")
        return f"https://connect.stripe.com/setup/e/{account_id}"

    def retrieve_account_status(self, account_id: str) -> AccountStatus:
        self.calls.append("retrieve_account_status")
        return self.account_status

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        self.calls.append("retrieve_checkout_session")
        return self.session

    def find_customer_id(self, email: str) -> Optional[str]:
        self.calls.append("find_customer_id")
        return self.customer_id

    def create_checkout_session(self, **params: Any) -> CheckoutSession:
        self.calls.append("create_checkout_session")
        self.checkout_params = params
        return CheckoutSession(
            id="cs_test_new",
            payment_status="unpaid",
            status="open",
            url="https://checkout.stripe.com/c/pay/cs_test_new",
            metadata=params.get("metadata", {}),
        )


class FakeEmailSender:
    def __init__(self, fail_for: Optional[str] = None):
        self.sent: List[Dict[str, Any]] = []
        self.fail_for = fail_for

    def send(self, *, sender: str, to: list, subject: str, html: str) -> Optional[str]:
        if self.fail_for and self.fail_for in to:
            raise UpstreamError("Email send failed: 422 validation_error")
        self.sent.append({"from": sender, "to": to, "subject": subject, "html": html})
        return f"email_{len(self.sent)}"


# ── Helpers ───────────────────────────────────────────────────

def auth_headers(user) -> dict:
    """Bearer header the fake identity provider resolves to `user`."""
    return {"Authorization": f"Bearer token-{user.id}"}


# ── Database ──────────────────────────────────────────────────

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


# ── Fakes as fixtures ─────────────────────────────────────────

@pytest.fixture
def gateway() -> FakeStripeGateway:
    return FakeStripeGateway()


@pytest.fixture
def mailer() -> FakeEmailSender:
    return FakeEmailSender()


@pytest_asyncio.fixture
async def client(session_factory, gateway, mailer):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_provider] = lambda: FakeIdentityProvider()
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_email_sender] = lambda: mailer

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Users ─────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def guest(db: AsyncSession) -> Profile:
    profile = Profile(id="guest-1", email="guest-1@example.com", name="Anna Gość")
    db.add(profile)
    await db.commit()
    return profile


@pytest_asyncio.fixture
async def host(db: AsyncSession) -> Profile:
    profile = Profile(id="host-1", email="host-1@example.com", name="Jan Gospodarz")
    db.add_all([profile, UserRoleAssignment(user_id=profile.id, role=AppRole.HOST)])
    await db.commit()
    return profile


@pytest_asyncio.fixture
async def admin_user(db: AsyncSession) -> Profile:
    profile = Profile(id="admin-1", email="admin-1@example.com", name="Admin")
    db.add_all([profile, UserRoleAssignment(user_id=profile.id, role=AppRole.ADMIN)])
    await db.commit()
    return profile


@pytest_asyncio.fixture
async def payout_account(db: AsyncSession, host: Profile) -> HostPayoutAccount:
    """Host whose Connect account can take card payments."""
    account = HostPayoutAccount(
        user_id=host.id,
        stripe_account_id="acct_host_1",
        account_type="individual",
        onboarding_completed=True,
        charges_enabled=True,
        payouts_enabled=True,
    )
    db.add(account)
    await db.commit()
    return account
