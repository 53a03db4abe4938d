"""Payment service - Transactions, gateway panel, checkout and webhooks"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ... import config
from ...models import Booking, User
from ..bookings.service import BookingService
from . import gateway
from .summary import TRANSACTION_STATUSES, build_transactions, reconcile_payments, summarize_transactions

logger = logging.getLogger(__name__)


def _gateway_http_error(e: Exception) -> HTTPException:
    if isinstance(e, gateway.GatewayNotConfiguredError):
        return HTTPException(status_code=503, detail="Payment gateway is not configured")
    return HTTPException(status_code=502, detail=str(e))


class PaymentService:
    """Service layer for payment business logic"""

    def __init__(self, db: Session):
        self.db = db

    def _payment_bookings(self) -> list[Booking]:
        return (
            self.db.query(Booking)
            .filter(Booking.payment_status.in_(TRANSACTION_STATUSES))
            .all()
        )

    def get_transactions(self) -> list[dict]:
        return build_transactions(self._payment_bookings(), config.DEFAULT_CURRENCY)

    def get_summary(self) -> dict:
        return summarize_transactions(self.get_transactions())

    @staticmethod
    def get_payment_config() -> dict:
        return {
            "isLiveMode": gateway.is_live_mode(),
            "provider": "stripe",
            "currency": config.DEFAULT_CURRENCY,
            "isConfigured": gateway.is_configured(),
        }

    @staticmethod
    def get_gateway_balance() -> dict:
        """Stripe's own balance; independent of the booking totals"""
        try:
            return gateway.get_balance()
        except (gateway.GatewayNotConfiguredError, gateway.GatewayError) as e:
            raise _gateway_http_error(e) from e

    def reconcile(self, limit: int = 100) -> dict:
        try:
            records = gateway.list_completed_sessions(limit)
        except (gateway.GatewayNotConfiguredError, gateway.GatewayError) as e:
            raise _gateway_http_error(e) from e

        paid = self.db.query(Booking).filter(Booking.payment_status == "paid").all()
        result = reconcile_payments(paid, records)
        logger.info(
            f"💰 Reconciliation: {result['matchedCount']} matched, "
            f"{result['discrepancyCount']} discrepancies"
        )
        return result

    def create_checkout(self, booking_id: int, user: User) -> dict:
        booking_service = BookingService(self.db)
        booking = booking_service.get_booking(booking_id)

        if not booking_service.is_owner(booking, user) and user.role != "admin":
            raise HTTPException(status_code=403, detail="You can only pay for your own bookings")
        if booking.payment_status == "paid":
            raise HTTPException(status_code=400, detail="Booking is already paid")
        if booking.status == "cancelled":
            raise HTTPException(status_code=400, detail="Cannot pay for a cancelled booking")
        amount = booking.total_amount or 0
        if amount <= 0:
            raise HTTPException(status_code=400, detail="Invalid booking amount")

        try:
            session = gateway.create_checkout_session(
                booking.id,
                amount,
                config.DEFAULT_CURRENCY,
                f"{config.FRONTEND_URL}/my-bookings?payment_success=true&booking_id={booking.id}",
                f"{config.FRONTEND_URL}/my-bookings?payment_cancel=true",
                booking.visitor_email,
                f"Booking: {booking.booking_reference}",
            )
        except (gateway.GatewayNotConfiguredError, gateway.GatewayError) as e:
            raise _gateway_http_error(e) from e
        return {"checkoutUrl": session["url"], "sessionId": session["sessionId"]}

    def handle_webhook(self, payload: bytes, signature: Optional[str]) -> dict:
        if not signature:
            raise HTTPException(status_code=400, detail="Missing Stripe signature")
        try:
            event = gateway.construct_event(payload, signature)
        except gateway.GatewayNotConfiguredError as e:
            raise _gateway_http_error(e) from e
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Webhook Error: {e}") from e

        logger.info(f"📨 Stripe webhook received: {event.type}")
        if event.type == "checkout.session.completed":
            session = event.data.object
            reference_id = session.client_reference_id
            try:
                booking_id = int(reference_id)
            except (TypeError, ValueError):
                logger.warning(f"⚠️ Checkout session {session.id} has no booking reference")
                return {"received": True}

            BookingService(self.db).mark_paid(
                booking_id,
                session.id,
                {"amountTotal": session.amount_total, "currency": session.currency},
            )
        return {"received": True}
