"""
tasks/booking_tasks.py
Celery tasks for the booking request and listing lifecycle.

expire_stale_booking_requests rejects pending requests the host did not
answer within BOOKING_REQUEST_EXPIRY_HOURS and emails guest and host.
expire_stale_cabins moves active listings past expires_at back to
pending and emails the host.
One failing item (update or email) never stops the rest of the batch.
"""

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from services.notification.service import (
    NotificationDispatcher,
    ResendEmailSender,
    get_notification_config,
)
from services.notification.templates import TemplateKind
from shared.models.models import (
    BookingRequest,
    BookingRequestStatus,
    Cabin,
    CabinStatus,
    Profile,
)
from shared.utils.errors import UpstreamError
from tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


# ── Helpers ────────────────────────────────────────────────────────────────────

@lru_cache()
def _get_sync_engine() -> Engine:
    """One sync engine per worker process (Celery runs sync by default)."""
    sync_url = settings.DATABASE_URL.replace("+asyncpg", "+psycopg2")
    return create_engine(sync_url, pool_pre_ping=True, pool_size=5)


def _get_sync_session() -> Session:
    return sessionmaker(bind=_get_sync_engine())()


def _get_dispatcher() -> Optional[NotificationDispatcher]:
    try:
        return NotificationDispatcher(
            get_notification_config(), ResendEmailSender(settings.RESEND_API_KEY)
        )
    except UpstreamError as e:
        logger.warning(f"Lifecycle emails disabled: {e}")
        return None


def _notify(
    dispatcher: Optional[NotificationDispatcher],
    kind: TemplateKind,
    profile: Optional[Profile],
    payload: dict,
    ref: str,
) -> None:
    if dispatcher is None or profile is None or not profile.email:
        return
    try:
        dispatcher.send_sync(kind, {**payload, "name": profile.name}, recipient=profile.email)
    except UpstreamError as e:
        logger.warning(f"Email ({kind.value}) for {ref} failed: {e}")


def _run(job, *args) -> dict:
    db = _get_sync_session()
    try:
        return job(db, _get_dispatcher(), datetime.now(timezone.utc), *args)
    except Exception as e:
        db.rollback()
        logger.exception(f"{job.__name__} failed: {e}")
        raise
    finally:
        db.close()


# ── Booking requests ───────────────────────────────────────────────────────────

def expire_requests(
    db: Session,
    dispatcher: Optional[NotificationDispatcher],
    now: datetime,
    expiry_hours: int,
) -> dict:
    cutoff = now - timedelta(hours=expiry_hours)
    expired = db.execute(
        select(BookingRequest).where(
            BookingRequest.status == BookingRequestStatus.PENDING,
            BookingRequest.created_at < cutoff,
        )
    ).scalars().all()

    logger.info(f"Found {len(expired)} expired booking requests")
    results = []

    for request in expired:
        request_id, cabin_id = request.id, request.cabin_id
        guest_id, host_id = request.guest_id, request.host_id

        try:
            request.status = BookingRequestStatus.REJECTED
            request.updated_at = now
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error updating booking request {request_id}: {e}")
            results.append({"requestId": request_id, "success": False, "error": str(e)})
            continue

        cabin = db.get(Cabin, cabin_id)
        payload = {"cabin_title": cabin.title if cabin else None, "hours": expiry_hours}
        ref = f"booking request {request_id}"

        _notify(dispatcher, TemplateKind.BOOKING_REQUEST_EXPIRED_GUEST, db.get(Profile, guest_id), payload, ref)
        _notify(dispatcher, TemplateKind.BOOKING_REQUEST_EXPIRED_HOST, db.get(Profile, host_id), payload, ref)

        results.append({"requestId": request_id, "success": True})

    return {"count": len(expired), "results": results}


# ── Listings ───────────────────────────────────────────────────────────────────

def expire_cabins(
    db: Session,
    dispatcher: Optional[NotificationDispatcher],
    now: datetime,
    listing_days: int,
) -> dict:
    expired = db.execute(
        select(Cabin).where(
            Cabin.status == CabinStatus.ACTIVE,
            Cabin.expires_at < now,
        )
    ).scalars().all()

    logger.info(f"Found {len(expired)} expired cabins")
    results = []

    for cabin in expired:
        cabin_id, title, host_id = cabin.id, cabin.title, cabin.host_id

        try:
            cabin.status = CabinStatus.PENDING
            cabin.updated_at = now
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error updating cabin {cabin_id}: {e}")
            results.append({"cabinId": cabin_id, "success": False, "error": str(e)})
            continue

        _notify(
            dispatcher,
            TemplateKind.CABIN_EXPIRED,
            db.get(Profile, host_id),
            {"cabin_title": title, "days": listing_days},
            f"cabin {cabin_id}",
        )
        results.append({"cabinId": cabin_id, "success": True, "title": title})

    return {"count": len(expired), "results": results}


# ── Periodic Tasks ─────────────────────────────────────────────────────────────

@celery_app.task
def expire_stale_booking_requests():
    """Beat task: runs every hour."""
    summary = _run(expire_requests, settings.BOOKING_REQUEST_EXPIRY_HOURS)
    logger.info(f"Expired {summary['count']} booking requests")
    return summary


@celery_app.task
def expire_stale_cabins():
    """Beat task: runs daily."""
    summary = _run(expire_cabins, settings.CABIN_LISTING_DAYS)
    logger.info(f"Deactivated {summary['count']} expired cabins")
    return summary
