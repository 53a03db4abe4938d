"""Customer repository - Database operations for visitor accounts"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import Booking, User


class CustomerRepository:
    """Repository for customer database operations"""

    @staticmethod
    def get_visitors(db: Session, search: Optional[str] = None) -> list[User]:
        query = db.query(User).filter(User.role == "visitor")
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    User.email.ilike(term),
                    User.first_name.ilike(term),
                    User.last_name.ilike(term),
                )
            )
        return query.order_by(User.created_at.desc()).all()

    @staticmethod
    def get_visitor_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id, User.role == "visitor").first()

    @staticmethod
    def get_bookings_for_users(db: Session, users: list[User]) -> list[Booking]:
        """Bookings linked to any of the users by account or by email"""
        if not users:
            return []
        user_ids = [u.id for u in users]
        emails = [u.email.lower() for u in users]
        return (
            db.query(Booking)
            .options(joinedload(Booking.guide))
            .filter(
                or_(
                    Booking.visitor_user_id.in_(user_ids),
                    func.lower(Booking.visitor_email).in_(emails),
                )
            )
            .order_by(Booking.visit_date.desc())
            .all()
        )

    @staticmethod
    def update_customer(db: Session, user: User, **updates) -> User:
        for key, value in updates.items():
            setattr(user, key, value)
        db.commit()
        db.refresh(user)
        return user
