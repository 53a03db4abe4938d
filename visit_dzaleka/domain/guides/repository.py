"""Guide repository - Database operations for guides and availability"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Booking, Guide, GuideAvailability


class GuideRepository:
    """Repository for guide database operations"""

    @staticmethod
    def get_guides(db: Session, active_only: bool = False) -> list[Guide]:
        """Get all guides that have not been deleted"""
        query = db.query(Guide).filter(Guide.deleted_at.is_(None))
        if active_only:
            query = query.filter(Guide.is_active.is_(True))
        return query.order_by(Guide.first_name, Guide.last_name).all()

    @staticmethod
    def get_guide_by_id(db: Session, guide_id: int) -> Optional[Guide]:
        return (
            db.query(Guide)
            .filter(Guide.id == guide_id, Guide.deleted_at.is_(None))
            .first()
        )

    @staticmethod
    def get_guide_for_user(db: Session, user_id: int) -> Optional[Guide]:
        return (
            db.query(Guide)
            .filter(Guide.user_id == user_id, Guide.deleted_at.is_(None))
            .first()
        )

    @staticmethod
    def create_guide(db: Session, **guide_data) -> Guide:
        guide = Guide(**guide_data)
        db.add(guide)
        db.commit()
        db.refresh(guide)
        return guide

    @staticmethod
    def update_guide(db: Session, guide: Guide, **updates) -> Guide:
        """Update a guide with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(guide, key):
                setattr(guide, key, value)
        db.commit()
        db.refresh(guide)
        return guide

    @staticmethod
    def soft_delete_guide(db: Session, guide: Guide) -> None:
        guide.deleted_at = datetime.utcnow()
        guide.is_active = False
        db.commit()

    @staticmethod
    def get_leaderboard(db: Session, limit: int = 10) -> list[Guide]:
        return (
            db.query(Guide)
            .filter(Guide.deleted_at.is_(None), Guide.is_active.is_(True))
            .order_by(
                Guide.completed_tours.desc(),
                Guide.rating.desc(),
                Guide.total_earnings.desc(),
            )
            .limit(limit)
            .all()
        )

    # Availability
    @staticmethod
    def get_availability(db: Session, guide_id: int) -> list[GuideAvailability]:
        return (
            db.query(GuideAvailability)
            .filter(GuideAvailability.guide_id == guide_id)
            .order_by(GuideAvailability.day_of_week, GuideAvailability.date, GuideAvailability.start_time)
            .all()
        )

    @staticmethod
    def get_availability_for_guides(db: Session, guide_ids: list[int]) -> dict[int, list[GuideAvailability]]:
        """Availability entries grouped by guide id"""
        grouped = {guide_id: [] for guide_id in guide_ids}
        if not guide_ids:
            return grouped
        entries = (
            db.query(GuideAvailability)
            .filter(GuideAvailability.guide_id.in_(guide_ids))
            .all()
        )
        for entry in entries:
            grouped[entry.guide_id].append(entry)
        return grouped

    @staticmethod
    def get_availability_entry(db: Session, entry_id: int) -> Optional[GuideAvailability]:
        return db.query(GuideAvailability).filter(GuideAvailability.id == entry_id).first()

    @staticmethod
    def create_availability(db: Session, **entry_data) -> GuideAvailability:
        entry = GuideAvailability(**entry_data)
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry

    @staticmethod
    def delete_availability(db: Session, entry: GuideAvailability) -> None:
        db.delete(entry)
        db.commit()

    # Bookings
    @staticmethod
    def get_week_booking_counts(db: Session, week_start: date, week_end: date) -> dict[int, int]:
        """Non-cancelled bookings per guide between week_start and week_end inclusive"""
        rows = (
            db.query(Booking.assigned_guide_id, func.count(Booking.id))
            .filter(
                Booking.assigned_guide_id.isnot(None),
                Booking.visit_date >= week_start,
                Booking.visit_date <= week_end,
                Booking.status != "cancelled",
            )
            .group_by(Booking.assigned_guide_id)
            .all()
        )
        return {guide_id: count for guide_id, count in rows}

    @staticmethod
    def get_guide_bookings(db: Session, guide_id: int, status: Optional[str] = None) -> list[Booking]:
        query = db.query(Booking).filter(Booking.assigned_guide_id == guide_id)
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.visit_date.desc(), Booking.visit_time.desc()).all()
