"""Payment router - Admin payment pages, booking checkout and Stripe webhook"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_role
from ...database import get_db
from ...models import User
from .service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Payments"])

require_admin = require_role("admin")


class TransactionResponse(BaseModel):
    id: int
    date: Optional[datetime] = None
    visitorName: str
    amount: float
    currency: str
    method: str
    status: str
    reference: str
    bookingReference: str
    paymentFees: Optional[float] = None
    netAmount: Optional[float] = None


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db)


# ============================================================================
# ADMIN PAYMENT ENDPOINTS
# ============================================================================


@router.get("/api/admin/transactions", response_model=list[TransactionResponse])
async def list_transactions(
    current_user: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return service.get_transactions()


@router.get("/api/admin/payments/summary")
async def get_payment_summary(
    current_user: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return service.get_summary()


@router.get("/api/admin/payment-config")
async def get_payment_config(current_user: User = Depends(require_admin)):
    return PaymentService.get_payment_config()


@router.get("/api/admin/stripe/balance")
async def get_stripe_balance(current_user: User = Depends(require_admin)):
    return PaymentService.get_gateway_balance()


@router.get("/api/admin/payments/reconciliation")
async def reconcile_payments(
    limit: int = Query(100, ge=1, le=100),
    current_user: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    """Match completed Stripe checkout sessions against paid card bookings"""
    return service.reconcile(limit)


# ============================================================================
# CHECKOUT & WEBHOOK
# ============================================================================


@router.post("/api/bookings/{booking_id}/pay")
async def pay_for_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    """Start a Stripe Checkout session for the booking's total"""
    return service.create_checkout(booking_id, current_user)


@router.post("/api/webhooks/stripe")
async def stripe_webhook(request: Request, service: PaymentService = Depends(get_payment_service)):
    payload = await request.body()
    return service.handle_webhook(payload, request.headers.get("stripe-signature"))
