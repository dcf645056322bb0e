"""
services/notification/service.py
Email delivery through Resend. The dispatcher renders a template and
sends it to the operator address or to a supplied recipient.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, Optional

import resend
from fastapi.concurrency import run_in_threadpool

from config.settings import settings
from services.notification.templates import (
    TEMPLATES,
    EmailTemplate,
    Recipient,
    RenderedEmail,
    TemplateKind,
)
from shared.utils.errors import InvalidArgument, UpstreamError
from shared.utils.steps import StepLogger

log = StepLogger("NOTIFICATIONS")


@dataclass(frozen=True)
class NotificationConfig:
    admin_email: str
    sender: str
    templates: Mapping[TemplateKind, EmailTemplate]


@lru_cache()
def get_notification_config() -> NotificationConfig:
    """Resolved once per process from settings."""
    return NotificationConfig(
        admin_email=settings.ADMIN_EMAIL,
        sender=settings.EMAIL_FROM,
        templates=TEMPLATES,
    )


class ResendEmailSender:
    def __init__(self, api_key: str):
        if not api_key:
            raise UpstreamError("RESEND_API_KEY is not set")
        self.api_key = api_key

    def send(self, *, sender: str, to: list[str], subject: str, html: str) -> Optional[str]:
        """Send one email. Returns the Resend email id."""
        resend.api_key = self.api_key
        try:
            result = resend.Emails.send({
                "from": sender,
                "to": to,
                "subject": subject,
                "html": html,
            })
        except Exception as e:
            raise UpstreamError(f"Email send failed: {e}") from e
        return result.get("id") if result else None


def get_email_sender() -> ResendEmailSender:
    """FastAPI dependency: a fresh sender per request."""
    return ResendEmailSender(settings.RESEND_API_KEY)


class NotificationDispatcher:
    """Renders and sends templated emails. No retries."""

    def __init__(self, config: NotificationConfig, sender: ResendEmailSender):
        self.config = config
        self.sender = sender

    def render(self, kind: TemplateKind, payload: Mapping[str, Any]) -> RenderedEmail:
        return self.config.templates[kind].render(payload)

    def recipient_for(self, kind: TemplateKind, recipient: Optional[str]) -> str:
        template = self.config.templates[kind]
        if template.recipient == Recipient.ADMIN:
            return self.config.admin_email
        if not recipient:
            raise InvalidArgument("Recipient email is required")
        return recipient

    def send_sync(
        self,
        kind: TemplateKind,
        payload: Mapping[str, Any],
        recipient: Optional[str] = None,
    ) -> Optional[str]:
        to = self.recipient_for(kind, recipient)
        email = self.render(kind, payload)
        email_id = self.sender.send(
            sender=self.config.sender,
            to=[to],
            subject=email.subject,
            html=email.html,
        )
        log.step("Email sent", kind=kind.value, emailId=email_id)
        return email_id

    async def send(
        self,
        kind: TemplateKind,
        payload: Mapping[str, Any],
        recipient: Optional[str] = None,
    ) -> Optional[str]:
        return await run_in_threadpool(self.send_sync, kind, payload, recipient)
