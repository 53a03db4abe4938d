"""
Stripe gateway adapter

Thin wrapper so the rest of the app never touches the stripe module directly.
Amounts sent to Stripe are in the currency's smallest unit.
"""

import logging
from typing import Optional

import stripe

from ... import config

logger = logging.getLogger(__name__)


class GatewayNotConfiguredError(Exception):
    """Raised when STRIPE_SECRET_KEY is missing"""


class GatewayError(Exception):
    """Raised when Stripe rejects or fails a request"""


def is_configured() -> bool:
    return bool(config.STRIPE_SECRET_KEY)


def is_live_mode() -> bool:
    return (config.STRIPE_SECRET_KEY or "").startswith("sk_live_")


def _client() -> None:
    if not is_configured():
        raise GatewayNotConfiguredError("Stripe is not configured")
    stripe.api_key = config.STRIPE_SECRET_KEY


def to_minor_units(amount: float) -> int:
    return int(round((amount or 0) * 100))


def from_minor_units(amount: Optional[int]) -> float:
    return (amount or 0) / 100


def get_balance() -> dict:
    """Available and pending balance, currencies upper-cased"""
    _client()
    try:
        balance = stripe.Balance.retrieve()
    except stripe.StripeError as e:
        logger.error(f"❌ Stripe balance lookup failed: {e}")
        raise GatewayError(str(e)) from e

    return {
        "available": [
            {"amount": entry.amount, "currency": entry.currency.upper()}
            for entry in balance.available
        ],
        "pending": [
            {"amount": entry.amount, "currency": entry.currency.upper()}
            for entry in balance.pending
        ],
    }


def create_checkout_session(
    booking_id: int,
    amount: float,
    currency: str,
    success_url: str,
    cancel_url: str,
    customer_email: Optional[str] = None,
    description: Optional[str] = None,
) -> dict:
    """Returns {"url", "sessionId"}"""
    _client()
    try:
        session = stripe.checkout.Session.create(
            payment_method_types=["card"],
            line_items=[
                {
                    "price_data": {
                        "currency": currency.lower(),
                        "product_data": {
                            "name": "Visit Dzaleka Tour Booking",
                            "description": description or f"Booking {booking_id}",
                        },
                        "unit_amount": to_minor_units(amount),
                    },
                    "quantity": 1,
                }
            ],
            mode="payment",
            success_url=success_url,
            cancel_url=cancel_url,
            customer_email=customer_email,
            client_reference_id=str(booking_id),
            metadata={"bookingId": str(booking_id)},
        )
    except stripe.StripeError as e:
        logger.error(f"❌ Stripe checkout creation failed for booking {booking_id}: {e}")
        raise GatewayError(f"Stripe checkout creation failed: {e}") from e

    logger.info(f"💳 Checkout session {session.id} created for booking {booking_id}")
    return {"url": session.url, "sessionId": session.id}


def list_completed_sessions(limit: int = 100) -> list[dict]:
    """Recent completed checkout sessions, normalised for reconciliation"""
    _client()
    try:
        sessions = stripe.checkout.Session.list(limit=limit, status="complete")
    except stripe.StripeError as e:
        logger.error(f"❌ Stripe session listing failed: {e}")
        raise GatewayError(str(e)) from e

    return [
        {
            "reference": s.id,
            "clientReferenceId": s.client_reference_id,
            "amount": from_minor_units(s.amount_total),
            "currency": (s.currency or config.DEFAULT_CURRENCY).upper(),
            "paymentStatus": s.payment_status,
        }
        for s in sessions.data
    ]


def construct_event(payload: bytes, signature: str):
    """Verify a webhook payload; raises ValueError on a bad payload or signature"""
    if not config.STRIPE_WEBHOOK_SECRET:
        raise GatewayNotConfiguredError("STRIPE_WEBHOOK_SECRET is not set")
    try:
        return stripe.Webhook.construct_event(payload, signature, config.STRIPE_WEBHOOK_SECRET)
    except stripe.SignatureVerificationError as e:
        logger.warning(f"⚠️ Stripe webhook signature verification failed: {e}")
        raise ValueError("Invalid signature") from e
