"""
services/payout/router.py
Stripe Connect onboarding and status endpoints for hosts.
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.payout.service import create_or_resume_onboarding, refresh_status
from shared.middleware.auth import AuthenticatedUser, require_user
from shared.middleware.functions import function_router
from shared.schemas.schemas import (
    ConnectAccountRequest,
    ConnectAccountResponse,
    ConnectStatusResponse,
)
from shared.utils.stripe_gateway import StripeGateway, get_payment_gateway

router = function_router(tags=["Payouts"])


@router.post(
    "/create-connect-account",
    response_model=ConnectAccountResponse,
)
async def create_connect_account(
    data: ConnectAccountRequest,
    origin: Optional[str] = Header(None),
    current_user: AuthenticatedUser = Depends(require_user),
    gateway: StripeGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db),
):
    """Create (or reuse) the host's Express account and return an onboarding link."""
    return await create_or_resume_onboarding(
        db,
        gateway,
        current_user,
        account_type=data.account_type,
        business_name=data.business_name,
        origin=origin,
    )


@router.post(
    "/check-connect-status",
    response_model=ConnectStatusResponse,
    response_model_exclude_none=True,
)
async def check_connect_status(
    current_user: AuthenticatedUser = Depends(require_user),
    gateway: StripeGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db),
):
    result = await refresh_status(db, gateway, current_user.id)
    return result.value
