"""Analytics schemas"""

from typing import Optional

from pydantic import BaseModel, Field


class PageViewCreate(BaseModel):
    page: str = Field(min_length=1, max_length=500)
    sessionId: str = Field(min_length=1, max_length=100)
    referrer: Optional[str] = Field(default=None, max_length=500)
    userAgent: Optional[str] = None


class LiveVisitorsResponse(BaseModel):
    count: int


class PageCount(BaseModel):
    page: str
    views: int


class DailyViews(BaseModel):
    date: str
    views: int


class PageViewStats(BaseModel):
    totalViews: int
    uniqueSessions: int
    topPages: list[PageCount]
    deviceBreakdown: dict[str, int]
    dailyViews: list[DailyViews]
