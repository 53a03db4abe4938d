import logging
import math
from datetime import date, timedelta

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import require_role
from ..database import get_db
from ..models import Booking, Guide, User
from ..workers.reminder_worker import send_due_reminders

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Dashboard"])

require_staff = require_role("admin", "coordinator")
require_admin = require_role("admin")


# Rolling window, in days, for the growth comparison
GROWTH_WINDOW_DAYS = 30


def _growth(current: int, previous: int) -> int:
    """Whole-percent change; half values round up"""
    if previous == 0:
        return 100 if current else 0
    return math.floor((current - previous) / previous * 100 + 0.5)


def dashboard_stats(bookings: list[Booking], active_guides: int, today: date) -> dict:
    """
    Headline numbers for the admin dashboard

    weeklyRevenue: completed or paid bookings visiting from seven days ago onwards
    monthlyGrowth: bookings created in the last 30 days against the 30 before, in percent
    """
    week_start = today - timedelta(days=7)
    window_start = today - timedelta(days=GROWTH_WINDOW_DAYS)
    previous_start = today - timedelta(days=2 * GROWTH_WINDOW_DAYS)

    created_recently = 0
    created_before = 0
    for b in bookings:
        created = b.created_at.date() if b.created_at else None
        if created is None:
            continue
        if created >= window_start:
            created_recently += 1
        elif created >= previous_start:
            created_before += 1

    return {
        "totalBookings": len(bookings),
        "pendingRequests": sum(1 for b in bookings if b.status == "pending"),
        "activeGuides": active_guides,
        "todayTours": sum(1 for b in bookings if b.visit_date == today and b.status != "cancelled"),
        "weeklyRevenue": sum(
            b.total_amount or 0
            for b in bookings
            if b.visit_date >= week_start and (b.status == "completed" or b.payment_status == "paid")
        ),
        "monthlyGrowth": _growth(created_recently, created_before),
    }


def weekly_trend(bookings: list[Booking], today: date) -> list[dict]:
    """Bookings and booked value per visit day over the last seven days"""
    days = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        day_bookings = [b for b in bookings if b.visit_date == day and b.status != "cancelled"]
        days.append({
            "date": day.isoformat(),
            "day": day.strftime("%a"),
            "bookings": len(day_bookings),
            "revenue": sum(b.total_amount or 0 for b in day_bookings),
        })
    return days


@router.get("/api/stats")
async def get_stats(
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    bookings = db.query(Booking).all()
    active_guides = (
        db.query(Guide).filter(Guide.is_active.is_(True), Guide.deleted_at.is_(None)).count()
    )
    return dashboard_stats(bookings, active_guides, date.today())


@router.get("/api/stats/weekly")
async def get_weekly_stats(
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    today = date.today()
    bookings = (
        db.query(Booking)
        .filter(Booking.visit_date >= today - timedelta(days=6), Booking.visit_date <= today)
        .all()
    )
    return weekly_trend(bookings, today)


@router.post("/api/admin/reminders/trigger")
async def trigger_reminders(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Run one reminder cycle now instead of waiting for the worker"""
    result = await send_due_reminders(db)
    logger.info(f"📧 Reminders triggered by {current_user.email}: {result}")
    return result
