"""Calendar service - Month and week views, drag-and-drop rescheduling"""

import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Booking, Guide, User
from ..bookings.repository import BookingRepository
from ..bookings.service import BookingService
from ..guides.suggestion import week_bounds
from . import grid
from .repository import CalendarRepository
from .schemas import CalendarReschedule

logger = logging.getLogger(__name__)


class CalendarService:
    """Service layer for calendar views"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CalendarRepository()

    def _resolve_filter(self, raw: Optional[str], user: User) -> grid.GuideFilter:
        """Guides always see only their own tours"""
        if user.role == "guide":
            own = BookingRepository.get_guide_for_user(self.db, user.id)
            if not own:
                raise HTTPException(status_code=404, detail="No guide profile linked to this account")
            return own.id
        try:
            return grid.parse_guide_filter(raw)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    def month_view(
        self,
        year: int,
        month: int,
        user: User,
        guide: Optional[str] = None,
        include_cancelled: bool = False,
    ) -> list[list[dict]]:
        guide_filter = self._resolve_filter(guide, user)
        try:
            start, end = grid.month_bounds(year, month)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        bookings = self.repo.get_bookings_between(self.db, start, end, include_cancelled)
        return grid.build_month_grid(
            year,
            month,
            bookings,
            self.repo.get_active_guides(self.db),
            date.today(),
            guide_filter,
        )

    def week_view(
        self,
        anchor: date,
        user: User,
        guide: Optional[str] = None,
        include_cancelled: bool = False,
    ) -> tuple[date, date, list[dict]]:
        guide_filter = self._resolve_filter(guide, user)
        start, end = week_bounds(anchor)
        bookings = self.repo.get_bookings_between(self.db, start, end, include_cancelled)
        days = grid.build_week_grid(
            anchor,
            bookings,
            self.repo.get_active_guides(self.db),
            date.today(),
            guide_filter,
        )
        return start, end, days

    def available_guides(self, day: date) -> list[Guide]:
        return grid.available_guides_for_day(self.repo.get_active_guides(self.db), day)

    def reschedule(self, data: CalendarReschedule, user: User) -> Booking:
        """A drop goes through the same path as a form reschedule; failures change nothing"""
        booking_service = BookingService(self.db)
        booking = booking_service.get_booking(data.bookingId)
        try:
            target_date, target_time = grid.drop_target(
                data.view, data.targetDate, data.targetHour, booking.visit_time
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        logger.info(
            f"📅 Calendar drop: booking {booking.id} to {target_date} {target_time} ({data.view} view)"
        )
        return booking_service.reschedule(
            booking.id, target_date, target_time, user, data.version
        )
