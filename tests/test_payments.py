"""
tests/test_payments.py
Tests for Checkout session creation and post-checkout verification.
"""

from datetime import date

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from services.payment.service import split_amount, verify_session
from shared.models.models import BookingRequest, BookingRequestStatus, HostPayoutAccount, Profile
from shared.utils.errors import PersistenceError
from shared.utils.stripe_gateway import CheckoutSession
from tests.conftest import auth_headers


async def _booking(db: AsyncSession, booking_id: str) -> BookingRequest:
    booking = BookingRequest(
        id=booking_id,
        cabin_id="cabin-1",
        guest_id="guest-1",
        host_id="host-1",
        start_date=date(2026, 7, 10),
        end_date=date(2026, 7, 13),
        guests_count=2,
    )
    db.add(booking)
    await db.commit()
    return booking


# ── verify-booking-payment ────────────────────────────────────

@pytest.mark.asyncio
async def test_verify_requires_session_id(client: AsyncClient):
    response = await client.post("/verify-booking-payment", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "Session ID is required"}


@pytest.mark.asyncio
async def test_verify_unpaid_session_writes_nothing(
    client: AsyncClient, gateway, db: AsyncSession
):
    booking = await _booking(db, "b1")
    gateway.session = CheckoutSession(
        id="sess_1", payment_status="unpaid", metadata={"booking_request_id": "b1"}
    )

    response = await client.post("/verify-booking-payment", json={"sessionId": "sess_1"})
    assert response.status_code == 200
    assert response.json() == {"success": False, "paid": False, "status": "unpaid"}

    await db.refresh(booking)
    assert booking.status == BookingRequestStatus.PENDING


@pytest.mark.asyncio
async def test_verify_paid_session_approves_booking(
    client: AsyncClient, gateway, db: AsyncSession
):
    booking = await _booking(db, "b1")
    gateway.session = CheckoutSession(
        id="sess_1",
        payment_status="paid",
        metadata={"booking_request_id": "b1", "total_amount": "450"},
    )

    response = await client.post("/verify-booking-payment", json={"sessionId": "sess_1"})
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "paid": True,
        "bookingId": "b1",
        "totalAmount": "450",
    }

    await db.refresh(booking)
    assert booking.status == BookingRequestStatus.APPROVED


@pytest.mark.asyncio
async def test_metadata_booking_id_wins_over_fallback(
    client: AsyncClient, gateway, db: AsyncSession
):
    from_metadata = await _booking(db, "b1")
    fallback = await _booking(db, "b2")
    gateway.session = CheckoutSession(
        id="sess_1", payment_status="paid", metadata={"booking_request_id": "b1"}
    )

    response = await client.post(
        "/verify-booking-payment",
        json={"sessionId": "sess_1", "bookingRequestId": "b2"},
    )
    assert response.status_code == 200

    await db.refresh(from_metadata)
    await db.refresh(fallback)
    assert from_metadata.status == BookingRequestStatus.APPROVED
    assert fallback.status == BookingRequestStatus.PENDING


@pytest.mark.asyncio
async def test_fallback_booking_id_used_without_metadata(
    client: AsyncClient, gateway, db: AsyncSession
):
    booking = await _booking(db, "b2")
    gateway.session = CheckoutSession(id="sess_1", payment_status="paid")

    response = await client.post(
        "/verify-booking-payment",
        json={"sessionId": "sess_1", "bookingRequestId": "b2"},
    )
    assert response.status_code == 200
    assert "bookingId" not in response.json()

    await db.refresh(booking)
    assert booking.status == BookingRequestStatus.APPROVED


@pytest.mark.asyncio
async def test_paid_session_without_any_booking_id(client: AsyncClient, gateway):
    gateway.session = CheckoutSession(id="sess_1", payment_status="paid")

    response = await client.post("/verify-booking-payment", json={"sessionId": "sess_1"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "paid": True}


# ── create-booking-payment ────────────────────────────────────

@pytest.mark.asyncio
async def test_create_checkout_splits_platform_fee(
    client: AsyncClient, guest: Profile, payout_account: HostPayoutAccount, gateway
):
    response = await client.post(
        "/create-booking-payment",
        headers=auth_headers(guest),
        json={
            "bookingRequestId": "b1",
            "cabinTitle": "Chata pod lasem",
            "pricePerNight": 150,
            "nights": 3,
            "guestsCount": 2,
            "startDate": "2026-07-10",
            "endDate": "2026-07-13",
            "hostId": payout_account.user_id,
        },
    )
    assert response.status_code == 200
    data = response.json()
    assert data["sessionId"] == "cs_test_new"
    assert data["totalAmount"] == 450.0
    assert data["platformFee"] == 31.5
    assert data["hostAmount"] == 418.5

    params = gateway.checkout_params
    assert params["mode"] == "payment"
    assert params["line_items"][0]["price_data"]["unit_amount"] == 45000
    assert params["payment_intent_data"]["application_fee_amount"] == 3150
    assert params["payment_intent_data"]["transfer_data"] == {"destination": "acct_host_1"}
    assert params["metadata"]["booking_request_id"] == "b1"
    assert params["metadata"]["guest_id"] == guest.id
    assert params["metadata"]["total_amount"] == "450"
    assert params["metadata"]["platform_fee"] == "31.5"
    assert params["customer_email"] == "guest-1@example.com"


@pytest.mark.asyncio
async def test_create_checkout_reuses_customer(
    client: AsyncClient, guest: Profile, payout_account: HostPayoutAccount, gateway
):
    gateway.customer_id = "cus_existing"
    response = await client.post(
        "/create-booking-payment",
        headers=auth_headers(guest),
        json={"bookingRequestId": "b1", "pricePerNight": 200, "nights": 1, "hostId": "host-1"},
    )
    assert response.status_code == 200
    assert gateway.checkout_params["customer"] == "cus_existing"
    assert gateway.checkout_params["customer_email"] is None


@pytest.mark.asyncio
async def test_create_checkout_refuses_host_without_charges(
    client: AsyncClient, guest: Profile, payout_account: HostPayoutAccount, gateway, db: AsyncSession
):
    payout_account.charges_enabled = False
    await db.commit()

    response = await client.post(
        "/create-booking-payment",
        headers=auth_headers(guest),
        json={"bookingRequestId": "b1", "pricePerNight": 150, "nights": 3, "hostId": "host-1"},
    )
    assert response.status_code == 400
    assert "create_checkout_session" not in gateway.calls


@pytest.mark.asyncio
async def test_create_checkout_missing_parameters(client: AsyncClient, guest: Profile):
    response = await client.post(
        "/create-booking-payment",
        headers=auth_headers(guest),
        json={"bookingRequestId": "b1", "nights": 3},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required parameters"}


def test_split_amount_rounds_fee_half_up():
    assert split_amount(45000, 7) == (3150, 41850)
    assert split_amount(50, 7) == (4, 46)     # 3.5 -> 4
    assert split_amount(0, 7) == (0, 0)


@pytest.mark.asyncio
async def test_verify_write_failure_keeps_paid_result(db: AsyncSession, gateway, monkeypatch):
    await _booking(db, "b1")
    gateway.session = CheckoutSession(
        id="sess_1", payment_status="paid", metadata={"booking_request_id": "b1"}
    )

    async def failing_commit():
        raise OperationalError("UPDATE booking_requests", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "commit", failing_commit)

    result = await verify_session(db, gateway, "sess_1")
    assert result.value.paid is True
    assert result.value.booking_id == "b1"
    assert isinstance(result.warnings[0], PersistenceError)
