"""Hosted checkout (Stripe Checkout) through the official SDK."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

import stripe

from config import settings
from services.errors import PaymentError


logger = logging.getLogger(__name__)


@dataclass
class CheckoutSession:
    id: str
    url: str


def to_minor_units(price: float) -> int:
    """Convert a major-unit price (e.g. dollars) to minor units (cents)."""
    return int(round(price * 100))


def _client() -> stripe.StripeClient:
    if not settings.STRIPE_SECRET_KEY:
        raise PaymentError("Payments are not configured")
    return stripe.StripeClient(
        settings.STRIPE_SECRET_KEY,
        base_addresses={"api": settings.STRIPE_API_BASE},
        http_client=stripe.RequestsClient(timeout=settings.PAYMENT_TIMEOUT_SECONDS),
    )


def checkout_params(
    event_id: int,
    event_title: str,
    price: float,
    user_id: int,
    success_url: str,
    cancel_url: str,
    currency: str = "USD",
) -> Dict[str, Any]:
    """Parameters for a one-item card checkout session."""
    return {
        "mode": "payment",
        "payment_method_types": ["card"],
        "line_items": [
            {
                "quantity": 1,
                "price_data": {
                    "currency": currency.lower(),
                    "unit_amount": to_minor_units(price),
                    "product_data": {
                        "name": f"Registration: {event_title}",
                        "description": f"Event registration for {event_title}",
                    },
                },
            }
        ],
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": {"eventId": str(event_id), "userId": str(user_id)},
    }


def create_checkout_session(
    event_id: int,
    event_title: str,
    price: float,
    user_id: int,
    success_url: str,
    cancel_url: str,
    currency: str = "USD",
) -> CheckoutSession:
    client = _client()
    params = checkout_params(event_id, event_title, price, user_id, success_url, cancel_url, currency)
    try:
        session = client.checkout.sessions.create(params=params)
    except stripe.APIConnectionError as e:
        raise PaymentError(f"Payment processor unreachable: {e.user_message or e}")
    except stripe.StripeError as e:
        raise PaymentError(f"Payment processor error ({e.http_status}): {e.user_message or e}")
    if not session.id or not session.url:
        raise PaymentError("Payment processor returned an incomplete checkout session")
    logger.info(f"Created checkout session {session.id} for event {event_id}, user {user_id}")
    return CheckoutSession(id=session.id, url=session.url)


def verify_payment(session_id: str) -> bool:
    """True when the checkout session reports it has been paid."""
    client = _client()
    try:
        session = client.checkout.sessions.retrieve(session_id)
    except stripe.APIConnectionError as e:
        raise PaymentError(f"Payment processor unreachable: {e.user_message or e}")
    except stripe.StripeError as e:
        raise PaymentError(f"Payment processor error ({e.http_status}): {e.user_message or e}")
    return session.payment_status == "paid"


__all__ = [
    "CheckoutSession",
    "to_minor_units",
    "checkout_params",
    "create_checkout_session",
    "verify_payment",
]
