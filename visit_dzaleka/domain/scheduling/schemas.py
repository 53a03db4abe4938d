"""Calendar schemas - Pydantic models for calendar views and drops"""

import datetime as dt
from datetime import date
from typing import Optional

from pydantic import BaseModel, field_validator

from ..bookings.schemas import BookingResponse, booking_to_response
from .grid import VIEWS


class CalendarReschedule(BaseModel):
    """A booking dropped onto a calendar cell"""

    bookingId: int
    targetDate: date
    targetHour: Optional[int] = None
    view: str = "month"
    version: Optional[int] = None

    @field_validator("view")
    @classmethod
    def check_view(cls, v):
        if v not in VIEWS:
            raise ValueError(f"Invalid view. Must be one of: {', '.join(VIEWS)}")
        return v


class CalendarGuide(BaseModel):
    id: int
    name: str


class MonthDay(BaseModel):
    date: dt.date
    inCurrentMonth: bool
    isToday: bool
    bookings: list[BookingResponse]
    availableGuides: list[CalendarGuide]


class MonthView(BaseModel):
    year: int
    month: int
    weeks: list[list[MonthDay]]


class WeekSlot(BaseModel):
    hour: int
    label: str
    bookings: list[BookingResponse]


class WeekDay(BaseModel):
    date: dt.date
    isToday: bool
    slots: list[WeekSlot]
    outsideHours: list[BookingResponse]
    availableGuides: list[CalendarGuide]


class WeekView(BaseModel):
    weekStart: date
    weekEnd: date
    days: list[WeekDay]


def guide_to_calendar(guide) -> CalendarGuide:
    return CalendarGuide(id=guide.id, name=guide.full_name)


def month_day_to_response(cell: dict) -> MonthDay:
    return MonthDay(
        date=cell["date"],
        inCurrentMonth=cell["inCurrentMonth"],
        isToday=cell["isToday"],
        bookings=[booking_to_response(b) for b in cell["bookings"]],
        availableGuides=[guide_to_calendar(g) for g in cell["availableGuides"]],
    )


def week_day_to_response(column: dict) -> WeekDay:
    return WeekDay(
        date=column["date"],
        isToday=column["isToday"],
        slots=[
            WeekSlot(
                hour=slot["hour"],
                label=slot["label"],
                bookings=[booking_to_response(b) for b in slot["bookings"]],
            )
            for slot in column["slots"]
        ],
        outsideHours=[booking_to_response(b) for b in column["outsideHours"]],
        availableGuides=[guide_to_calendar(g) for g in column["availableGuides"]],
    )
