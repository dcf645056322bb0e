"""
services/payout/service.py
Host payout accounts on Stripe Connect: create-or-resume onboarding and
refresh of the capability flags stored in host_stripe_accounts.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from shared.middleware.auth import AuthenticatedUser
from shared.models.models import AccountType, HostPayoutAccount
from shared.schemas.schemas import ConnectAccountResponse, ConnectStatusResponse
from shared.utils.errors import (
    InvalidArgument,
    OperationResult,
    PersistenceError,
    Unauthenticated,
    UpstreamError,
)
from shared.utils.steps import StepLogger
from shared.utils.stripe_gateway import StripeGateway

ACCOUNT_TYPES = {t.value for t in AccountType}

onboarding_log = StepLogger("CREATE-CONNECT-ACCOUNT")
status_log = StepLogger("CHECK-CONNECT-STATUS")


async def get_payout_account(db: AsyncSession, user_id: str) -> Optional[HostPayoutAccount]:
    result = await db.execute(
        select(HostPayoutAccount).where(HostPayoutAccount.user_id == user_id)
    )
    return result.scalar_one_or_none()


def onboarding_urls(origin: Optional[str]) -> tuple[str, str]:
    """(refresh_url, return_url) for the Stripe onboarding link."""
    base = (origin or settings.PUBLIC_BASE_URL).rstrip("/")
    return (
        f"{base}/host/dashboard?stripe_refresh=true",
        f"{base}/host/dashboard?stripe_onboarding=complete",
    )


async def create_or_resume_onboarding(
    db: AsyncSession,
    gateway: StripeGateway,
    user: AuthenticatedUser,
    account_type: Optional[str],
    business_name: Optional[str] = None,
    origin: Optional[str] = None,
) -> ConnectAccountResponse:
    """
    Return a fresh onboarding link for the user's Connect account.

    The Stripe account is created only when no stored row carries an
    account id yet; later calls reuse it. A row that fails to save after
    Stripe created the account is reported, not rolled back on Stripe.
    """
    if account_type not in ACCOUNT_TYPES:
        raise InvalidArgument("Invalid account type")
    if not user.email:
        raise Unauthenticated("User not authenticated")
    onboarding_log.step("Request body", accountType=account_type, businessName=business_name)

    account = await get_payout_account(db, user.id)

    if account and account.stripe_account_id:
        stripe_account_id = account.stripe_account_id
        onboarding_log.step("Using existing Stripe account", stripeAccountId=stripe_account_id)
    else:
        stripe_account_id = await run_in_threadpool(
            gateway.create_express_account,
            email=user.email,
            business_type=account_type,
            business_name=business_name,
            country=settings.STRIPE_ACCOUNT_COUNTRY,
            website=settings.PUBLIC_BASE_URL,
        )
        onboarding_log.step("Created new Stripe account", stripeAccountId=stripe_account_id)

        if account is None:
            account = HostPayoutAccount(user_id=user.id)
            db.add(account)
        account.stripe_account_id = stripe_account_id
        account.account_type = account_type
        account.business_name = business_name or None
        account.onboarding_completed = False
        account.charges_enabled = False
        account.payouts_enabled = False

        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            onboarding_log.error("Failed to save account to DB", error=str(e))
            raise UpstreamError("Failed to save Stripe account") from e

    refresh_url, return_url = onboarding_urls(origin)
    url = await run_in_threadpool(
        gateway.create_onboarding_link, stripe_account_id, refresh_url, return_url
    )
    onboarding_log.step("Account link created", url=url)

    return ConnectAccountResponse(url=url, account_id=stripe_account_id)


async def refresh_status(
    db: AsyncSession,
    gateway: StripeGateway,
    user_id: str,
) -> OperationResult[ConnectStatusResponse]:
    """
    Current Connect status for a host.

    Stripe is only asked when a stored account id exists. The stored
    flags are then overwritten; if that write fails the Stripe view is
    still returned, with a warning.
    """
    account = await get_payout_account(db, user_id)

    if account is None:
        status_log.step("No Stripe account found")
        return OperationResult(ConnectStatusResponse(has_account=False))

    if not account.stripe_account_id:
        status_log.step("Stripe account ID not set")
        return OperationResult(
            ConnectStatusResponse(
                has_account=True,
                account_type=account.account_type,
                business_name=account.business_name,
            )
        )

    # Read before the write: a rollback expires the instance.
    stripe_account_id = account.stripe_account_id
    account_type = account.account_type
    business_name = account.business_name

    status = await run_in_threadpool(gateway.retrieve_account_status, stripe_account_id)
    status_log.step(
        "Stripe account retrieved",
        chargesEnabled=status.charges_enabled,
        payoutsEnabled=status.payouts_enabled,
        detailsSubmitted=status.details_submitted,
    )

    warnings: list[PersistenceError] = []
    try:
        await db.execute(
            update(HostPayoutAccount)
            .where(HostPayoutAccount.user_id == user_id)
            .values(
                onboarding_completed=status.details_submitted,
                charges_enabled=status.charges_enabled,
                payouts_enabled=status.payouts_enabled,
                updated_at=datetime.now(timezone.utc),
            )
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        status_log.warning("Failed to update account status", error=str(e))
        warnings.append(PersistenceError(f"Failed to update account status: {e}"))

    return OperationResult(
        ConnectStatusResponse(
            has_account=True,
            stripe_account_id=stripe_account_id,
            onboarding_completed=status.details_submitted,
            charges_enabled=status.charges_enabled,
            payouts_enabled=status.payouts_enabled,
            account_type=account_type,
            business_name=business_name,
        ),
        warnings,
    )
