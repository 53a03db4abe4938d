"""Calendar repository - Booking and guide queries for calendar views"""

from datetime import date

from sqlalchemy.orm import Session, joinedload

from ...models import Booking, Guide


class CalendarRepository:
    """Repository for calendar database operations"""

    @staticmethod
    def get_bookings_between(
        db: Session, start: date, end: date, include_cancelled: bool = False
    ) -> list[Booking]:
        query = (
            db.query(Booking)
            .options(joinedload(Booking.guide))
            .filter(Booking.visit_date >= start, Booking.visit_date <= end)
        )
        if not include_cancelled:
            query = query.filter(Booking.status != "cancelled")
        return query.order_by(Booking.visit_date, Booking.visit_time).all()

    @staticmethod
    def get_active_guides(db: Session) -> list[Guide]:
        return (
            db.query(Guide)
            .filter(Guide.deleted_at.is_(None), Guide.is_active.is_(True))
            .order_by(Guide.first_name, Guide.last_name)
            .all()
        )
