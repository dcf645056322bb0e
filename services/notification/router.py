"""
services/notification/router.py
Operator and host email notifications triggered by the web client.
"""

from fastapi import Depends

from services.notification.service import (
    NotificationConfig,
    NotificationDispatcher,
    ResendEmailSender,
    get_email_sender,
    get_notification_config,
)
from services.notification.templates import REQUIRED_AUTH, TemplateKind
from shared.middleware.auth import AuthenticatedUser, RequireAuth
from shared.middleware.functions import function_router
from shared.schemas.schemas import (
    CabinStatusNotification,
    NewCabinNotification,
    NewUserNotification,
    NotificationResponse,
    PaymentVerifiedNotification,
)
from shared.utils.steps import StepLogger

router = function_router(tags=["Notifications"])

log = StepLogger("NOTIFICATIONS")


def get_dispatcher(
    config: NotificationConfig = Depends(get_notification_config),
    sender: ResendEmailSender = Depends(get_email_sender),
) -> NotificationDispatcher:
    return NotificationDispatcher(config, sender)


@router.post("/notify-admin-new-cabin", response_model=NotificationResponse)
async def notify_admin_new_cabin(
    data: NewCabinNotification,
    current_user: AuthenticatedUser = Depends(RequireAuth(REQUIRED_AUTH[TemplateKind.NEW_CABIN_PENDING])),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Tell the operator a new listing waits for approval."""
    log.step("New cabin pending approval", cabinTitle=data.cabin_title, userId=current_user.id)
    email_id = await dispatcher.send(TemplateKind.NEW_CABIN_PENDING, data.model_dump())
    return NotificationResponse(email_id=email_id)


@router.post("/notify-admin-new-user", response_model=NotificationResponse)
async def notify_admin_new_user(
    data: NewUserNotification,
    current_user: AuthenticatedUser = Depends(RequireAuth(REQUIRED_AUTH[TemplateKind.NEW_USER_REGISTERED])),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Tell the operator someone registered."""
    log.step("New user registration", role=data.role, userId=current_user.id)
    email_id = await dispatcher.send(TemplateKind.NEW_USER_REGISTERED, data.model_dump())
    return NotificationResponse(email_id=email_id)


@router.post("/notify-payment-verified", response_model=NotificationResponse)
async def notify_payment_verified(
    data: PaymentVerifiedNotification,
    current_user: AuthenticatedUser = Depends(RequireAuth(REQUIRED_AUTH[TemplateKind.PAYOUT_VERIFIED])),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Admin confirmed a host's manual verification transfer; tell the host."""
    log.step("Payment verified", cabinTitle=data.cabin_title, adminId=current_user.id)
    email_id = await dispatcher.send(
        TemplateKind.PAYOUT_VERIFIED,
        data.model_dump(),
        recipient=str(data.host_email),
    )
    return NotificationResponse(email_id=email_id)


@router.post("/send-cabin-status-email", response_model=NotificationResponse)
async def send_cabin_status_email(
    data: CabinStatusNotification,
    current_user: AuthenticatedUser = Depends(RequireAuth(REQUIRED_AUTH[TemplateKind.CABIN_STATUS])),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Admin approved (active) or rejected a listing; tell the host."""
    log.step("Cabin status changed", status=data.status, adminId=current_user.id)
    email_id = await dispatcher.send(
        TemplateKind.CABIN_STATUS,
        data.model_dump(),
        recipient=str(data.host_email),
    )
    return NotificationResponse(email_id=email_id)
