"""
shared/models/models.py
SQLAlchemy ORM models for the tables the functions read and write.
The schema itself is owned by Supabase migrations; only the columns
used here are mapped.
"""

import uuid
from datetime import date, datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from config.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


# ── Enumerations ──────────────────────────────────────────────

class AppRole(str, PyEnum):
    ADMIN = "admin"
    HOST = "host"
    GUEST = "guest"


class AccountType(str, PyEnum):
    INDIVIDUAL = "individual"
    COMPANY = "company"


class BookingRequestStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CabinStatus(str, PyEnum):
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"


def _pg_enum(enum_cls: type[PyEnum], name: str) -> Enum:
    """Map to the existing Postgres enum type by value (lowercase labels)."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


# ── Mixins ────────────────────────────────────────────────────

class TimestampMixin:
    """Adds created_at and updated_at to any model."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


# ── Models ────────────────────────────────────────────────────

class Profile(TimestampMixin, Base):
    """Public profile mirroring auth.users."""
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    def __repr__(self) -> str:
        return f"<Profile {self.email}>"


class UserRoleAssignment(Base):
    """One row per (user, role). Admin rights are a row with role=admin."""
    __tablename__ = "user_roles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    role: Mapped[AppRole] = mapped_column(_pg_enum(AppRole, "app_role"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="user_roles_user_id_role_key"),
    )


class HostPayoutAccount(TimestampMixin, Base):
    """A host's Stripe Connect account and its last known capability flags."""
    __tablename__ = "host_stripe_accounts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    stripe_account_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    account_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    business_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    charges_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    payouts_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<HostPayoutAccount {self.user_id} ({self.stripe_account_id})>"


class Cabin(TimestampMixin, Base):
    """Listing. Only the columns used by the sitemap, notifications and expiry."""
    __tablename__ = "cabins"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    host_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    status: Mapped[CabinStatus] = mapped_column(
        _pg_enum(CabinStatus, "cabin_status"), default=CabinStatus.PENDING, nullable=False
    )
    # Listings lapse after CABIN_LISTING_DAYS and go back to pending
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_cabins_status", "status"),)


class BookingRequest(TimestampMixin, Base):
    """Guest reservation request. Payment confirmation moves it to approved."""
    __tablename__ = "booking_requests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    cabin_id: Mapped[str] = mapped_column(String(64), nullable=False)
    guest_id: Mapped[str] = mapped_column(String(64), nullable=False)
    host_id: Mapped[str] = mapped_column(String(64), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    guests_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[BookingRequestStatus] = mapped_column(
        _pg_enum(BookingRequestStatus, "booking_request_status"),
        default=BookingRequestStatus.PENDING,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_booking_requests_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<BookingRequest {self.id} ({self.status})>"
