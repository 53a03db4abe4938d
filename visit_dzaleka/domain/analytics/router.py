"""Analytics router - Page view tracking and reports"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_optional_user, require_role
from ...database import get_db
from ...models import User
from .schemas import LiveVisitorsResponse, PageViewCreate, PageViewStats
from .service import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])

require_admin = require_role("admin")


def get_analytics_service(db: Session = Depends(get_db)) -> AnalyticsService:
    """Dependency injection for AnalyticsService"""
    return AnalyticsService(db)


@router.post("/pageview", status_code=201)
async def record_page_view(
    data: PageViewCreate,
    current_user: Optional[User] = Depends(get_optional_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Public tracking beacon; the device type is derived from the user agent"""
    service.record_page_view(data, current_user.id if current_user else None)
    return {"success": True}


@router.get("/live", response_model=LiveVisitorsResponse)
async def live_visitors(service: AnalyticsService = Depends(get_analytics_service)):
    return {"count": service.live_visitors()}


@router.get("/pageviews", response_model=PageViewStats)
async def page_view_stats(
    startDate: Optional[date] = Query(None),
    endDate: Optional[date] = Query(None),
    current_user: User = Depends(require_admin),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return service.page_view_stats(startDate, endDate)


@router.get("/conversion")
async def conversion_stats(
    startDate: Optional[date] = Query(None),
    endDate: Optional[date] = Query(None),
    current_user: User = Depends(require_admin),
    service: AnalyticsService = Depends(get_analytics_service),
):
    return service.conversion_stats(startDate, endDate)
