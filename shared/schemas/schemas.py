"""
shared/schemas/schemas.py
Pydantic v2 request/response schemas for the function endpoints.
Wire names are camelCase, matching what the web client sends.
"""

from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


# ── Base ──────────────────────────────────────────────────────

class BaseSchema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ── Payout accounts ───────────────────────────────────────────

class ConnectAccountRequest(BaseSchema):
    # Validated by the service so a bad value is a 400 with {"error"}
    account_type: Optional[str] = None
    business_name: Optional[str] = Field(None, max_length=255)


class ConnectAccountResponse(BaseSchema):
    url: str
    account_id: str


class ConnectStatusResponse(BaseSchema):
    has_account: bool
    stripe_account_id: Optional[str] = None
    onboarding_completed: bool = False
    charges_enabled: bool = False
    payouts_enabled: bool = False
    account_type: Optional[str] = None
    business_name: Optional[str] = None


# ── Booking payments ──────────────────────────────────────────

class VerifyPaymentRequest(BaseSchema):
    session_id: Optional[str] = None
    booking_request_id: Optional[str] = None


class VerifyPaymentResponse(BaseSchema):
    success: bool
    paid: bool
    status: Optional[str] = None
    booking_id: Optional[str] = None
    platform_fee: Optional[str] = None
    host_amount: Optional[str] = None
    total_amount: Optional[str] = None


class CreateCheckoutRequest(BaseSchema):
    booking_request_id: Optional[str] = None
    cabin_title: Optional[str] = None
    price_per_night: Optional[Decimal] = Field(None, gt=0)
    nights: Optional[int] = Field(None, gt=0)
    guests_count: Optional[int] = Field(None, ge=1)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    host_id: Optional[str] = None


class CreateCheckoutResponse(BaseSchema):
    url: Optional[str]
    session_id: str
    total_amount: float
    platform_fee: float
    host_amount: float


# ── Notifications ─────────────────────────────────────────────

class NewCabinNotification(BaseSchema):
    cabin_title: Optional[str] = None
    cabin_address: Optional[str] = None
    host_email: Optional[str] = None
    host_name: Optional[str] = None


class NewUserNotification(BaseSchema):
    user_id: Optional[str] = None
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    role: Literal["guest", "host"] = "guest"


class PaymentVerifiedNotification(BaseSchema):
    host_email: EmailStr
    host_name: Optional[str] = None
    cabin_title: str


class CabinStatusNotification(BaseSchema):
    host_email: EmailStr
    host_name: Optional[str] = None
    cabin_title: str
    status: Literal["active", "rejected"]


class NotificationResponse(BaseSchema):
    success: bool = True
    email_id: Optional[str] = None
