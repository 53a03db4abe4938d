"""Calendar router - FastAPI endpoints for the scheduling calendar"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import require_role
from ...database import get_db
from ...models import User
from ..bookings.router import audit_booking_change
from ..bookings.schemas import BookingResponse, booking_audit_values, booking_to_response
from ..bookings.service import BookingService
from .schemas import (
    CalendarGuide,
    CalendarReschedule,
    MonthView,
    WeekView,
    guide_to_calendar,
    month_day_to_response,
    week_day_to_response,
)
from .service import CalendarService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/calendar", tags=["Calendar"])

require_staff = require_role("admin", "coordinator")
require_operations = require_role("admin", "coordinator", "guide", "security")


def get_calendar_service(db: Session = Depends(get_db)) -> CalendarService:
    """Dependency injection for CalendarService"""
    return CalendarService(db)


@router.get("/month", response_model=MonthView)
async def get_month_view(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    guide: Optional[str] = Query(None, description="Guide id, 'unassigned' or 'all'"),
    includeCancelled: bool = Query(False),
    current_user: User = Depends(require_operations),
    service: CalendarService = Depends(get_calendar_service),
):
    weeks = service.month_view(year, month, current_user, guide, includeCancelled)
    return MonthView(
        year=year,
        month=month,
        weeks=[[month_day_to_response(cell) for cell in week] for week in weeks],
    )


@router.get("/week", response_model=WeekView)
async def get_week_view(
    date: date = Query(..., description="Any day in the week"),
    guide: Optional[str] = Query(None, description="Guide id, 'unassigned' or 'all'"),
    includeCancelled: bool = Query(False),
    current_user: User = Depends(require_operations),
    service: CalendarService = Depends(get_calendar_service),
):
    start, end, days = service.week_view(date, current_user, guide, includeCancelled)
    return WeekView(
        weekStart=start,
        weekEnd=end,
        days=[week_day_to_response(day) for day in days],
    )


@router.get("/available-guides", response_model=list[CalendarGuide])
async def get_available_guides(
    date: date = Query(...),
    current_user: User = Depends(require_staff),
    service: CalendarService = Depends(get_calendar_service),
):
    return [guide_to_calendar(g) for g in service.available_guides(date)]


@router.post("/reschedule", response_model=BookingResponse)
async def reschedule_from_calendar(
    data: CalendarReschedule,
    request: Request,
    current_user: User = Depends(require_staff),
    service: CalendarService = Depends(get_calendar_service),
):
    """Move a booking dropped on a month cell (date only) or week slot (date and hour)"""
    before = booking_audit_values(BookingService(service.db).get_booking(data.bookingId))
    booking = service.reschedule(data, current_user)
    audit_booking_change(service.db, current_user, "reschedule", booking, before, request)
    return booking_to_response(booking)
