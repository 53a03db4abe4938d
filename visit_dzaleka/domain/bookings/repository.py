"""Booking repository - Database operations for bookings"""

from datetime import date
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import Booking, BookingActivityLog, Guide, MeetingPoint


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_booking_by_id(db: Session, booking_id: int) -> Optional[Booking]:
        return (
            db.query(Booking)
            .options(joinedload(Booking.guide), joinedload(Booking.meeting_point))
            .filter(Booking.id == booking_id)
            .first()
        )

    @staticmethod
    def get_booking_by_reference(db: Session, reference: str) -> Optional[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.booking_reference == reference.strip().upper())
            .first()
        )

    @staticmethod
    def list_bookings(
        db: Session,
        status: Optional[str] = None,
        guide_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
    ) -> list[Booking]:
        """List bookings with optional filters, latest visit first"""
        query = db.query(Booking).options(joinedload(Booking.guide))

        if status:
            query = query.filter(Booking.status == status)
        if guide_id is not None:
            query = query.filter(Booking.assigned_guide_id == guide_id)
        if date_from:
            query = query.filter(Booking.visit_date >= date_from)
        if date_to:
            query = query.filter(Booking.visit_date <= date_to)
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Booking.visitor_name.ilike(term),
                    Booking.visitor_email.ilike(term),
                    Booking.booking_reference.ilike(term),
                )
            )

        return query.order_by(Booking.visit_date.desc(), Booking.visit_time.desc()).all()

    @staticmethod
    def list_visitor_bookings(db: Session, user_id: int, email: str) -> list[Booking]:
        """Bookings linked to the account, or made with its email before signing up"""
        return (
            db.query(Booking)
            .options(joinedload(Booking.guide))
            .filter(
                or_(
                    Booking.visitor_user_id == user_id,
                    func.lower(Booking.visitor_email) == email.lower(),
                )
            )
            .order_by(Booking.visit_date.desc())
            .all()
        )

    @staticmethod
    def list_bookings_on(db: Session, day: date, guide_id: Optional[int] = None) -> list[Booking]:
        query = db.query(Booking).filter(Booking.visit_date == day, Booking.status != "cancelled")
        if guide_id is not None:
            query = query.filter(Booking.assigned_guide_id == guide_id)
        return query.order_by(Booking.visit_time).all()

    @staticmethod
    def create_booking(db: Session, **booking_data) -> Booking:
        booking = Booking(**booking_data)
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def add_activity(
        db: Session,
        booking: Booking,
        user_id: Optional[int],
        action: str,
        old_status: Optional[str],
        new_status: Optional[str],
        description: Optional[str] = None,
    ) -> BookingActivityLog:
        entry = BookingActivityLog(
            booking_id=booking.id,
            user_id=user_id,
            action=action,
            description=description,
            old_status=old_status,
            new_status=new_status,
        )
        db.add(entry)
        return entry

    @staticmethod
    def get_activity(db: Session, booking_id: int) -> list[BookingActivityLog]:
        return (
            db.query(BookingActivityLog)
            .options(joinedload(BookingActivityLog.user))
            .filter(BookingActivityLog.booking_id == booking_id)
            .order_by(BookingActivityLog.id)
            .all()
        )

    @staticmethod
    def get_guide(db: Session, guide_id: int) -> Optional[Guide]:
        return db.query(Guide).filter(Guide.id == guide_id).first()

    @staticmethod
    def get_guide_for_user(db: Session, user_id: int) -> Optional[Guide]:
        return (
            db.query(Guide)
            .filter(Guide.user_id == user_id, Guide.deleted_at.is_(None))
            .first()
        )

    @staticmethod
    def get_meeting_point(db: Session, meeting_point_id: int) -> Optional[MeetingPoint]:
        return db.query(MeetingPoint).filter(MeetingPoint.id == meeting_point_id).first()

    @staticmethod
    def save(db: Session, booking: Booking) -> Booking:
        db.commit()
        db.refresh(booking)
        return booking
