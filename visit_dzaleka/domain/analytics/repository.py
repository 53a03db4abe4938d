"""Analytics repository - Database operations for page views"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Booking, PageView


class AnalyticsRepository:
    """Repository for page view database operations"""

    @staticmethod
    def create_page_view(db: Session, **data) -> PageView:
        view = PageView(**data)
        db.add(view)
        db.commit()
        db.refresh(view)
        return view

    @staticmethod
    def count_sessions_since(db: Session, since: datetime) -> int:
        return (
            db.query(func.count(func.distinct(PageView.session_id)))
            .filter(PageView.created_at >= since)
            .scalar()
            or 0
        )

    @staticmethod
    def get_page_views(
        db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> list[PageView]:
        query = db.query(PageView)
        if start:
            query = query.filter(PageView.created_at >= start)
        if end:
            query = query.filter(PageView.created_at < end)
        return query.order_by(PageView.created_at).all()

    @staticmethod
    def count_bookings(db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None) -> int:
        query = db.query(func.count(Booking.id))
        if start:
            query = query.filter(Booking.created_at >= start)
        if end:
            query = query.filter(Booking.created_at < end)
        return query.scalar() or 0
