"""Customer service - CRM view of visitor accounts and their bookings"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Booking, User
from .repository import CustomerRepository
from .schemas import CustomerUpdate

logger = logging.getLogger(__name__)

CUSTOMER_FIELD_MAP = {
    "preferences": "preferences",
    "adminNotes": "admin_notes",
    "tags": "tags",
    "dateOfBirth": "date_of_birth",
    "address": "address",
    "country": "country",
    "preferredLanguage": "preferred_language",
    "preferredContactMethod": "preferred_contact_method",
    "marketingConsent": "marketing_consent",
}


def belongs_to(booking: Booking, user: User) -> bool:
    if booking.visitor_user_id == user.id:
        return True
    return (booking.visitor_email or "").lower() == (user.email or "").lower()


def customer_stats(bookings: list[Booking]) -> dict:
    """Visit count, spend and last visit; cancelled bookings add no spend"""
    active = [b for b in bookings if b.status != "cancelled"]
    visit_dates = [b.visit_date for b in active if b.visit_date]
    return {
        "totalVisits": len([b for b in bookings if b.status == "completed"]),
        "totalSpend": sum(b.total_amount or 0 for b in active),
        "lastVisit": max(visit_dates) if visit_dates else None,
        "bookingCount": len(bookings),
    }


class CustomerService:
    """Service layer for customer business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CustomerRepository()

    def get_customers(self, search: Optional[str] = None) -> list[tuple[User, dict]]:
        visitors = self.repo.get_visitors(self.db, search)
        bookings = self.repo.get_bookings_for_users(self.db, visitors)
        return [
            (user, customer_stats([b for b in bookings if belongs_to(b, user)]))
            for user in visitors
        ]

    def get_customer(self, user_id: int) -> User:
        user = self.repo.get_visitor_by_id(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="Customer not found")
        return user

    def get_customer_detail(self, user_id: int) -> tuple[User, list[Booking], dict]:
        user = self.get_customer(user_id)
        bookings = self.repo.get_bookings_for_users(self.db, [user])
        return user, bookings, customer_stats(bookings)

    def update_customer(self, user_id: int, data: CustomerUpdate) -> User:
        user = self.get_customer(user_id)
        provided = data.model_dump(exclude_unset=True)
        updates = {CUSTOMER_FIELD_MAP[field]: value for field, value in provided.items()}
        if "marketing_consent" in updates and updates["marketing_consent"] is None:
            updates["marketing_consent"] = False
        user = self.repo.update_customer(self.db, user, **updates)
        logger.info(f"✅ Customer {user.id} updated: {', '.join(provided) or 'no changes'}")
        return user
