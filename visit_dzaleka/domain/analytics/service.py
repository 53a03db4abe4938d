"""Analytics service - Page views, live visitors and conversion"""

import logging
import re
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import PageView
from .repository import AnalyticsRepository
from .schemas import PageViewCreate

logger = logging.getLogger(__name__)

LIVE_WINDOW_MINUTES = 5
TOP_PAGES_LIMIT = 10

MOBILE_PATTERN = re.compile(r"mobile|iphone|android.*mobile|windows phone")
TABLET_PATTERN = re.compile(r"tablet|ipad|android(?!.*mobile)")


def detect_device_type(user_agent: Optional[str]) -> str:
    """mobile, tablet or desktop from a User-Agent string"""
    if not user_agent:
        return "desktop"
    ua = user_agent.lower()
    if MOBILE_PATTERN.search(ua):
        return "mobile"
    if TABLET_PATTERN.search(ua):
        return "tablet"
    return "desktop"


def summarize_page_views(views: list[PageView]) -> dict:
    pages = Counter(v.page for v in views)
    devices = Counter(v.device_type or "desktop" for v in views)
    daily = Counter(v.created_at.date().isoformat() for v in views)
    return {
        "totalViews": len(views),
        "uniqueSessions": len({v.session_id for v in views}),
        "topPages": [
            {"page": page, "views": count}
            for page, count in pages.most_common(TOP_PAGES_LIMIT)
        ],
        "deviceBreakdown": {
            "desktop": devices.get("desktop", 0),
            "mobile": devices.get("mobile", 0),
            "tablet": devices.get("tablet", 0),
        },
        "dailyViews": [{"date": day, "views": daily[day]} for day in sorted(daily)],
    }


def _range(start_date: Optional[date], end_date: Optional[date]) -> tuple[Optional[datetime], Optional[datetime]]:
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="startDate must be on or before endDate")
    start = datetime.combine(start_date, time.min) if start_date else None
    end = datetime.combine(end_date + timedelta(days=1), time.min) if end_date else None
    return start, end


class AnalyticsService:
    """Service layer for site analytics"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AnalyticsRepository()

    def record_page_view(self, data: PageViewCreate, user_id: Optional[int] = None) -> PageView:
        view = self.repo.create_page_view(
            self.db,
            session_id=data.sessionId,
            page=data.page,
            referrer=data.referrer,
            user_agent=data.userAgent,
            device_type=detect_device_type(data.userAgent),
            user_id=user_id,
        )
        logger.debug(f"👁️ Page view {data.page} ({view.device_type})")
        return view

    def live_visitors(self) -> int:
        since = datetime.utcnow() - timedelta(minutes=LIVE_WINDOW_MINUTES)
        return self.repo.count_sessions_since(self.db, since)

    def page_view_stats(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> dict:
        start, end = _range(start_date, end_date)
        return summarize_page_views(self.repo.get_page_views(self.db, start, end))

    def conversion_stats(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> dict:
        """Bookings per unique visitor session over the same window"""
        start, end = _range(start_date, end_date)
        sessions = len({v.session_id for v in self.repo.get_page_views(self.db, start, end)})
        bookings = self.repo.count_bookings(self.db, start, end)
        return {
            "uniqueSessions": sessions,
            "bookings": bookings,
            "conversionRate": round(bookings / sessions * 100, 2) if sessions else 0.0,
        }
