"""
shared/utils/stripe_gateway.py
Thin wrapper around the Stripe SDK: Connect accounts, onboarding links
and Checkout sessions. Every call passes the key and API version
explicitly, so a gateway is cheap to build per request.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

import stripe

from config.settings import settings
from shared.utils.errors import UpstreamError


@dataclass(frozen=True)
class AccountStatus:
    details_submitted: bool
    charges_enabled: bool
    payouts_enabled: bool


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    payment_status: Optional[str]
    status: Optional[str] = None
    url: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


def _as_dict(obj: Any) -> Dict[str, Any]:
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return dict(obj.to_dict())
    return dict(obj)


@contextmanager
def _stripe_call(action: str) -> Iterator[None]:
    try:
        yield
    except stripe.StripeError as e:
        message = getattr(e, "user_message", None) or str(e)
        raise UpstreamError(f"Stripe error ({action}): {message}") from e


class StripeGateway:
    def __init__(self, api_key: str, api_version: str):
        if not api_key:
            raise UpstreamError("STRIPE_SECRET_KEY is not set")
        self.api_key = api_key
        self.api_version = api_version

    @property
    def _options(self) -> Dict[str, str]:
        return {"api_key": self.api_key, "stripe_version": self.api_version}

    # ── Connect ──────────────────────────────────────────────

    def create_express_account(
        self,
        *,
        email: Optional[str],
        business_type: str,
        business_name: Optional[str],
        country: str,
        website: str,
    ) -> str:
        with _stripe_call("create account"):
            account = stripe.Account.create(
                type="express",
                country=country,
                email=email,
                business_type=business_type,
                capabilities={
                    "card_payments": {"requested": True},
                    "transfers": {"requested": True},
                },
                business_profile={"name": business_name or None, "url": website},
                **self._options,
            )
        return account.id

    def create_onboarding_link(self, account_id: str, refresh_url: str, return_url: str) -> str:
        with _stripe_call("create account link"):
            link = stripe.AccountLink.create(
                account=account_id,
                refresh_url=refresh_url,
                return_url=return_url,
                type="account_onboarding",
                **self._options,
            )
        return link.url

    def retrieve_account_status(self, account_id: str) -> AccountStatus:
        with _stripe_call("retrieve account"):
            account = stripe.Account.retrieve(account_id, **self._options)
        return AccountStatus(
            details_submitted=bool(getattr(account, "details_submitted", False)),
            charges_enabled=bool(getattr(account, "charges_enabled", False)),
            payouts_enabled=bool(getattr(account, "payouts_enabled", False)),
        )

    # ── Checkout ─────────────────────────────────────────────

    def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        with _stripe_call("retrieve checkout session"):
            session = stripe.checkout.Session.retrieve(session_id, **self._options)
        return CheckoutSession(
            id=session.id,
            payment_status=getattr(session, "payment_status", None),
            status=getattr(session, "status", None),
            url=getattr(session, "url", None),
            metadata=_as_dict(getattr(session, "metadata", None)),
        )

    def find_customer_id(self, email: str) -> Optional[str]:
        with _stripe_call("list customers"):
            customers = stripe.Customer.list(email=email, limit=1, **self._options)
        return customers.data[0].id if customers.data else None

    def create_checkout_session(self, **params: Any) -> CheckoutSession:
        with _stripe_call("create checkout session"):
            session = stripe.checkout.Session.create(**params, **self._options)
        return CheckoutSession(
            id=session.id,
            payment_status=getattr(session, "payment_status", None),
            status=getattr(session, "status", None),
            url=getattr(session, "url", None),
            metadata=_as_dict(getattr(session, "metadata", None)),
        )


def get_payment_gateway() -> StripeGateway:
    """FastAPI dependency: a fresh gateway per request."""
    return StripeGateway(settings.STRIPE_SECRET_KEY, settings.STRIPE_API_VERSION)
