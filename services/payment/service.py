"""
services/payment/service.py
Guest booking payments through Stripe Checkout with destination charges:
session creation (platform fee split) and post-checkout verification.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from services.payout.service import get_payout_account
from shared.middleware.auth import AuthenticatedUser
from shared.models.models import BookingRequest, BookingRequestStatus
from shared.schemas.schemas import (
    CreateCheckoutRequest,
    CreateCheckoutResponse,
    VerifyPaymentResponse,
)
from shared.utils.errors import InvalidArgument, OperationResult, PersistenceError, Unauthenticated
from shared.utils.steps import StepLogger
from shared.utils.stripe_gateway import StripeGateway

checkout_log = StepLogger("CREATE-BOOKING-PAYMENT")
verify_log = StepLogger("VERIFY-BOOKING-PAYMENT")


# ── Amounts ───────────────────────────────────────────────────

def split_amount(total_minor: int, fee_percent: int) -> tuple[int, int]:
    """(platform_fee, host_amount) in minor units; the fee rounds half up."""
    fee = int(
        (Decimal(total_minor) * Decimal(fee_percent) / Decimal(100)).quantize(
            Decimal(1), rounding=ROUND_HALF_UP
        )
    )
    return fee, total_minor - fee


def format_amount(value: Decimal) -> str:
    """450 -> '450', 31.50 -> '31.5' (the format stored in session metadata)."""
    return format(value.normalize(), "f")


def to_major(minor: int) -> Decimal:
    return Decimal(minor) / Decimal(100)


# ── Checkout ──────────────────────────────────────────────────

async def create_checkout(
    db: AsyncSession,
    gateway: StripeGateway,
    user: AuthenticatedUser,
    data: CreateCheckoutRequest,
    origin: Optional[str] = None,
) -> CreateCheckoutResponse:
    """
    Open a Checkout session paying the host's Connect account, minus the
    platform fee. The metadata written here is what verify_session reads.
    """
    if not data.booking_request_id or not data.price_per_night or not data.nights or not data.host_id:
        raise InvalidArgument("Missing required parameters")
    if not user.email:
        raise Unauthenticated("User not authenticated or email not available")
    checkout_log.step(
        "Request body parsed",
        bookingRequestId=data.booking_request_id,
        pricePerNight=data.price_per_night,
        nights=data.nights,
        hostId=data.host_id,
    )

    host_account = await get_payout_account(db, data.host_id)
    if host_account is None or not host_account.stripe_account_id:
        raise InvalidArgument("Host has no online payments configured")
    if not host_account.charges_enabled:
        raise InvalidArgument("Host account cannot accept payments yet")
    destination = host_account.stripe_account_id

    customer_id = await run_in_threadpool(gateway.find_customer_id, user.email)
    if customer_id:
        checkout_log.step("Existing customer found", customerId=customer_id)

    total_amount = data.price_per_night * data.nights
    total_minor = int((total_amount * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    fee_minor, host_minor = split_amount(total_minor, settings.PLATFORM_FEE_PERCENT)
    checkout_log.step(
        "Amounts calculated",
        totalAmount=total_amount,
        platformFee=fee_minor,
        hostAmount=host_minor,
        platformFeePercent=settings.PLATFORM_FEE_PERCENT,
    )

    base = (origin or settings.PUBLIC_BASE_URL).rstrip("/")
    booking_id = data.booking_request_id

    session = await run_in_threadpool(
        gateway.create_checkout_session,
        customer=customer_id,
        customer_email=None if customer_id else user.email,
        line_items=[
            {
                "price_data": {
                    "currency": settings.CURRENCY,
                    "product_data": {
                        "name": f"Rezerwacja: {data.cabin_title or ''}".strip(),
                        "description": (
                            f"{data.nights} nocy ({data.start_date} - {data.end_date}), "
                            f"{data.guests_count or 1} gości"
                        ),
                    },
                    "unit_amount": total_minor,
                },
                "quantity": 1,
            }
        ],
        mode="payment",
        success_url=f"{base}/booking-success?session_id={{CHECKOUT_SESSION_ID}}&booking_id={booking_id}",
        cancel_url=f"{base}/booking-canceled?booking_id={booking_id}",
        payment_intent_data={
            "application_fee_amount": fee_minor,
            "transfer_data": {"destination": destination},
            "metadata": {
                "booking_request_id": booking_id,
                "host_id": data.host_id,
                "guest_id": user.id,
                "platform_fee_minor": str(fee_minor),
                "host_amount_minor": str(host_minor),
            },
        },
        metadata={
            "booking_request_id": booking_id,
            "host_id": data.host_id,
            "guest_id": user.id,
            "total_amount": format_amount(total_amount),
            "platform_fee": format_amount(to_major(fee_minor)),
            "host_amount": format_amount(to_major(host_minor)),
            "nights": str(data.nights),
            "start_date": data.start_date or "",
            "end_date": data.end_date or "",
        },
    )
    checkout_log.step("Checkout session created with Connect", sessionId=session.id, url=session.url)

    return CreateCheckoutResponse(
        url=session.url,
        session_id=session.id,
        total_amount=float(total_amount),
        platform_fee=float(to_major(fee_minor)),
        host_amount=float(to_major(host_minor)),
    )


# ── Verification ──────────────────────────────────────────────

async def verify_session(
    db: AsyncSession,
    gateway: StripeGateway,
    session_id: Optional[str],
    booking_request_id: Optional[str] = None,
) -> OperationResult[VerifyPaymentResponse]:
    """
    Check a Checkout session and approve its booking request when paid.

    The booking id in the session metadata wins over the caller's
    booking_request_id. With neither, nothing is written. A failed
    status write leaves the payment result intact and adds a warning.
    """
    if not session_id:
        raise InvalidArgument("Session ID is required")
    verify_log.step("Request parsed", sessionId=session_id, bookingRequestId=booking_request_id)

    session = await run_in_threadpool(gateway.retrieve_checkout_session, session_id)
    verify_log.step("Session retrieved", status=session.status, paymentStatus=session.payment_status)

    if session.payment_status != "paid":
        return OperationResult(
            VerifyPaymentResponse(success=False, paid=False, status=session.payment_status)
        )

    metadata = session.metadata
    booking_id = metadata.get("booking_request_id") or booking_request_id
    warnings: list[PersistenceError] = []

    if booking_id:
        try:
            await db.execute(
                update(BookingRequest)
                .where(BookingRequest.id == booking_id)
                .values(
                    status=BookingRequestStatus.APPROVED,
                    updated_at=datetime.now(timezone.utc),
                )
            )
            await db.commit()
            verify_log.step("Booking status updated to approved", bookingId=booking_id)
        except SQLAlchemyError as e:
            await db.rollback()
            verify_log.warning("Failed to update booking status", error=str(e))
            warnings.append(PersistenceError(f"Failed to update booking status: {e}"))
    else:
        verify_log.step("No booking request to update")

    return OperationResult(
        VerifyPaymentResponse(
            success=True,
            paid=True,
            booking_id=metadata.get("booking_request_id"),
            platform_fee=metadata.get("platform_fee"),
            host_amount=metadata.get("host_amount"),
            total_amount=metadata.get("total_amount"),
        ),
        warnings,
    )
