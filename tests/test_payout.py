"""
tests/test_payout.py
Tests for Stripe Connect onboarding and status refresh.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from main import app
from services.payout.service import refresh_status
from shared.models.models import HostPayoutAccount, Profile
from shared.utils.errors import PersistenceError
from tests.conftest import auth_headers


async def _accounts(db: AsyncSession, user_id: str) -> list[HostPayoutAccount]:
    result = await db.execute(
        select(HostPayoutAccount)
        .where(HostPayoutAccount.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


# ── create-connect-account ────────────────────────────────────

@pytest.mark.asyncio
@pytest.mark.parametrize("account_type", ["partnership", "", None])
async def test_invalid_account_type_makes_no_calls(
    client: AsyncClient, host: Profile, gateway, db: AsyncSession, account_type
):
    response = await client.post(
        "/create-connect-account",
        headers=auth_headers(host),
        json={"accountType": account_type},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid account type"}
    assert gateway.calls == []
    assert await _accounts(db, host.id) == []


@pytest.mark.asyncio
async def test_fresh_onboarding_creates_account(
    client: AsyncClient, host: Profile, gateway, db: AsyncSession
):
    response = await client.post(
        "/create-connect-account",
        headers={**auth_headers(host), "Origin": "https://staging.naodludzie.pl"},
        json={"accountType": "individual"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["accountId"] == "acct_test_1"
    assert data["url"]
    assert gateway.accounts_created == 1

    (account,) = await _accounts(db, host.id)
    assert account.stripe_account_id == "acct_test_1"
    assert account.account_type == "individual"
    assert account.onboarding_completed is False
    assert account.charges_enabled is False
    assert account.payouts_enabled is False


@pytest.mark.asyncio
async def test_onboarding_is_idempotent(client: AsyncClient, host: Profile, gateway):
    first = await client.post(
        "/create-connect-account",
        headers=auth_headers(host),
        json={"accountType": "company", "businessName": "Leśne Domki sp. z o.o."},
    )
    second = await client.post(
        "/create-connect-account",
        headers=auth_headers(host),
        json={"accountType": "company"},
    )
    assert first.status_code == second.status_code == 200
    assert first.json()["accountId"] == second.json()["accountId"]
    assert gateway.accounts_created == 1
    assert gateway.calls.count("create_onboarding_link") == 2


@pytest.mark.asyncio
async def test_row_without_stripe_id_is_completed_in_place(
    client: AsyncClient, host: Profile, gateway, db: AsyncSession
):
    db.add(HostPayoutAccount(user_id=host.id, account_type="individual"))
    await db.commit()

    response = await client.post(
        "/create-connect-account",
        headers=auth_headers(host),
        json={"accountType": "individual"},
    )
    assert response.status_code == 200

    accounts = await _accounts(db, host.id)
    assert len(accounts) == 1
    assert accounts[0].stripe_account_id == response.json()["accountId"]


# ── check-connect-status ──────────────────────────────────────

@pytest.mark.asyncio
async def test_status_without_account(client: AsyncClient, host: Profile, gateway):
    response = await client.post("/check-connect-status", headers=auth_headers(host))
    assert response.status_code == 200
    assert response.json() == {
        "hasAccount": False,
        "onboardingCompleted": False,
        "chargesEnabled": False,
        "payoutsEnabled": False,
    }
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_status_refreshes_stored_flags(
    client: AsyncClient, host: Profile, gateway, db: AsyncSession
):
    db.add(HostPayoutAccount(user_id=host.id, stripe_account_id="acct_x", account_type="individual"))
    await db.commit()

    response = await client.post("/check-connect-status", headers=auth_headers(host))
    assert response.status_code == 200
    data = response.json()
    assert data["hasAccount"] is True
    assert data["stripeAccountId"] == "acct_x"
    assert data["chargesEnabled"] is True

    (account,) = await _accounts(db, host.id)
    assert account.onboarding_completed is True
    assert account.charges_enabled is True
    assert account.payouts_enabled is True


@pytest.mark.asyncio
async def test_status_write_failure_is_a_warning(
    db: AsyncSession, host: Profile, gateway, monkeypatch
):
    db.add(HostPayoutAccount(user_id=host.id, stripe_account_id="acct_x", account_type="company"))
    await db.commit()

    async def failing_commit():
        raise OperationalError("UPDATE host_stripe_accounts", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "commit", failing_commit)

    result = await refresh_status(db, gateway, host.id)
    assert result.degraded
    assert isinstance(result.warnings[0], PersistenceError)
    assert result.value.charges_enabled is True
    assert result.value.account_type == "company"


@pytest.mark.asyncio
async def test_onboarding_save_failure_returns_500(
    client: AsyncClient, host: Profile, gateway, session_factory
):
    async def failing_db():
        async with session_factory() as session:
            async def failing_commit():
                raise OperationalError("INSERT INTO host_stripe_accounts", {}, Exception("disk full"))

            session.commit = failing_commit
            yield session

    app.dependency_overrides[get_db] = failing_db

    response = await client.post(
        "/create-connect-account",
        headers=auth_headers(host),
        json={"accountType": "individual"},
    )
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to save Stripe account"}
    assert gateway.accounts_created == 1
    assert "create_onboarding_link" not in gateway.calls


@pytest.mark.asyncio
async def test_status_for_row_without_stripe_id(
    client: AsyncClient, host: Profile, gateway, db: AsyncSession
):
    db.add(HostPayoutAccount(user_id=host.id, account_type="company", business_name="Leśne Domki"))
    await db.commit()

    response = await client.post("/check-connect-status", headers=auth_headers(host))
    assert response.status_code == 200
    assert response.json() == {
        "hasAccount": True,
        "onboardingCompleted": False,
        "chargesEnabled": False,
        "payoutsEnabled": False,
        "accountType": "company",
        "businessName": "Leśne Domki",
    }
    assert gateway.calls == []
