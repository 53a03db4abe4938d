"""
Visit Reminder Background Worker
Emails visitors a day before their tour and keeps guide stats reconciled
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..config import REMINDER_WORKER_INTERVAL_SECONDS
from ..database import SessionLocal
from ..domain.guides.stats import reconcile_guide_stats
from ..email_service import send_visit_reminder
from ..models import Booking

logger = logging.getLogger(__name__)

REMINDER_STATUSES = ("pending", "confirmed")
REMINDER_WINDOW_START = timedelta(hours=24)
REMINDER_WINDOW_END = timedelta(hours=25)

# Stats reconciliation runs once every this many worker cycles
RECONCILE_EVERY_CYCLES = 12


def visit_start(booking: Booking) -> Optional[datetime]:
    """Local start of the visit, None when the stored time is unreadable"""
    try:
        hour, minute = (int(part) for part in booking.visit_time.split(":")[:2])
    except (AttributeError, ValueError):
        return None
    return datetime(booking.visit_date.year, booking.visit_date.month, booking.visit_date.day, hour, minute)


def is_due_for_reminder(booking: Booking, now: datetime) -> bool:
    """Pending or confirmed, not yet reminded, starting 24 to 25 hours from now"""
    if booking.status not in REMINDER_STATUSES or booking.reminder_sent_at:
        return False
    start = visit_start(booking)
    if start is None:
        return False
    return REMINDER_WINDOW_START <= start - now < REMINDER_WINDOW_END


def find_due_bookings(db: Session, now: datetime) -> list[Booking]:
    # Visit times are wall-clock, so narrow by date first and compare exactly in Python
    candidates = (
        db.query(Booking)
        .filter(
            Booking.status.in_(REMINDER_STATUSES),
            Booking.reminder_sent_at.is_(None),
            Booking.visit_date >= (now + REMINDER_WINDOW_START).date(),
            Booking.visit_date <= (now + REMINDER_WINDOW_END).date(),
        )
        .all()
    )
    return [b for b in candidates if is_due_for_reminder(b, now)]


async def send_due_reminders(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Send every due reminder and stamp reminder_sent_at on success.
    Failed sends are left unstamped so the next cycle retries them.

    Returns:
        {"checked", "sent", "failed"}
    """
    now = now or datetime.now()
    due = find_due_bookings(db, now)
    if not due:
        logger.info("✅ No visit reminders due")
        return {"checked": 0, "sent": 0, "failed": 0}

    logger.info(f"📧 Sending {len(due)} visit reminders")
    sent = 0
    failed = 0
    for booking in due:
        if await send_visit_reminder(booking.id):
            booking.reminder_sent_at = datetime.utcnow()
            db.commit()
            sent += 1
            logger.info(f"✅ Reminder sent for booking {booking.booking_reference}")
        else:
            failed += 1
            logger.error(f"❌ Reminder failed for booking {booking.booking_reference}")

    return {"checked": len(due), "sent": sent, "failed": failed}


async def process_reminders():
    db = SessionLocal()
    try:
        await send_due_reminders(db)
    except Exception as e:
        logger.error(f"❌ Error in process_reminders: {e}")
        db.rollback()
    finally:
        db.close()


def reconcile_all_guide_stats():
    db = SessionLocal()
    try:
        reconcile_guide_stats(db)
    except Exception as e:
        logger.error(f"❌ Error reconciling guide stats: {e}")
        db.rollback()
    finally:
        db.close()


async def run_reminder_worker(interval_seconds: int = REMINDER_WORKER_INTERVAL_SECONDS):
    """
    Main worker loop
    Sends due reminders every interval and reconciles guide stats periodically
    """
    logger.info(f"🚀 Reminder worker started (interval {interval_seconds}s)")
    cycle = 0
    while True:
        await process_reminders()
        if cycle % RECONCILE_EVERY_CYCLES == 0:
            reconcile_all_guide_stats()
        cycle += 1
        await asyncio.sleep(interval_seconds)
