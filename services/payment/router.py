"""
services/payment/router.py
Stripe Checkout for booking requests: session creation for guests and
post-checkout verification from the booking-success page.
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.payment.service import create_checkout, verify_session
from shared.middleware.auth import AuthenticatedUser, require_user
from shared.middleware.functions import function_router
from shared.schemas.schemas import (
    CreateCheckoutRequest,
    CreateCheckoutResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from shared.utils.stripe_gateway import StripeGateway, get_payment_gateway

router = function_router(tags=["Payments"])


@router.post("/create-booking-payment", response_model=CreateCheckoutResponse)
async def create_booking_payment(
    data: CreateCheckoutRequest,
    origin: Optional[str] = Header(None),
    current_user: AuthenticatedUser = Depends(require_user),
    gateway: StripeGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a Checkout session for a booking request.
    Client redirects the guest to the returned url.
    """
    return await create_checkout(db, gateway, current_user, data, origin=origin)


@router.post(
    "/verify-booking-payment",
    response_model=VerifyPaymentResponse,
    response_model_exclude_none=True,
)
async def verify_booking_payment(
    data: VerifyPaymentRequest,
    gateway: StripeGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db),
):
    """
    Called from the booking-success page with the Checkout session id.
    Unpaid sessions are a normal answer (success=false), not an error.
    """
    result = await verify_session(db, gateway, data.session_id, data.booking_request_id)
    return result.value
