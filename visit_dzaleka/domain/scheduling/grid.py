"""
Calendar grids

Pure functions over already-loaded bookings and guides. Weeks run Sunday to
Saturday; the week view has hourly slots from 07:00 to 18:00.
"""

import calendar
from datetime import date, timedelta
from typing import Optional, Union

from ...shared.validators import weekday_name
from ..guides.suggestion import week_bounds

SLOT_HOURS = list(range(7, 19))
VIEWS = ("month", "week")

GuideFilter = Optional[Union[int, str]]


def parse_guide_filter(raw: Optional[str]) -> GuideFilter:
    """None or "all" for every booking, "unassigned", or a guide id"""
    if raw is None or raw == "" or raw == "all":
        return None
    if raw == "unassigned":
        return raw
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError("guide must be a guide id, 'unassigned' or 'all'") from e


def filter_bookings(bookings: list, guide_filter: GuideFilter) -> list:
    if guide_filter is None:
        return list(bookings)
    if guide_filter == "unassigned":
        return [b for b in bookings if not b.assigned_guide_id]
    return [b for b in bookings if b.assigned_guide_id == guide_filter]


def available_guides_for_day(guides: list, day: date) -> list:
    """Active, non-deleted guides who work on the day's weekday"""
    name = weekday_name(day)
    return [
        g
        for g in guides
        if g.is_active and g.deleted_at is None and name in (g.available_days or [])
    ]


def booking_hour(booking) -> Optional[int]:
    try:
        return int((booking.visit_time or "").split(":")[0])
    except ValueError:
        return None


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First Sunday on or before the 1st to the last Saturday on or after month end"""
    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    return week_bounds(first)[0], week_bounds(last)[1]


def _bookings_by_day(bookings: list) -> dict:
    by_day = {}
    for booking in sorted(bookings, key=lambda b: b.visit_time or ""):
        by_day.setdefault(booking.visit_date, []).append(booking)
    return by_day


def build_month_grid(
    year: int,
    month: int,
    bookings: list,
    guides: list,
    today: date,
    guide_filter: GuideFilter = None,
) -> list[list[dict]]:
    """
    Weeks of day cells covering the month.

    Each cell: date, inCurrentMonth, isToday, bookings, availableGuides.
    """
    start, end = month_bounds(year, month)
    by_day = _bookings_by_day(filter_bookings(bookings, guide_filter))

    weeks = []
    day = start
    while day <= end:
        week = []
        for _ in range(7):
            week.append(
                {
                    "date": day,
                    "inCurrentMonth": day.month == month,
                    "isToday": day == today,
                    "bookings": by_day.get(day, []),
                    "availableGuides": available_guides_for_day(guides, day),
                }
            )
            day += timedelta(days=1)
        weeks.append(week)
    return weeks


def build_week_grid(
    anchor: date,
    bookings: list,
    guides: list,
    today: date,
    guide_filter: GuideFilter = None,
) -> list[dict]:
    """
    Seven day columns for the week containing anchor.

    Bookings are placed in the slot of their visit hour; ones outside
    07:00-18:00 are listed under outsideHours.
    """
    start, _ = week_bounds(anchor)
    by_day = _bookings_by_day(filter_bookings(bookings, guide_filter))

    days = []
    for offset in range(7):
        day = start + timedelta(days=offset)
        day_bookings = by_day.get(day, [])
        slots = [
            {
                "hour": hour,
                "label": f"{hour:02d}:00",
                "bookings": [b for b in day_bookings if booking_hour(b) == hour],
            }
            for hour in SLOT_HOURS
        ]
        days.append(
            {
                "date": day,
                "isToday": day == today,
                "slots": slots,
                "outsideHours": [b for b in day_bookings if booking_hour(b) not in SLOT_HOURS],
                "availableGuides": available_guides_for_day(guides, day),
            }
        )
    return days


def drop_target(view: str, target_date: date, target_hour: Optional[int], current_time: str) -> tuple[date, str]:
    """
    New (visit_date, visit_time) for a calendar drop.

    Month drops keep the visit time; week drops move it to the slot hour.
    """
    if view not in VIEWS:
        raise ValueError(f"Invalid view. Must be one of: {', '.join(VIEWS)}")
    if view == "month":
        return target_date, current_time
    if target_hour is None:
        raise ValueError("targetHour is required for the week view")
    if target_hour not in SLOT_HOURS:
        raise ValueError(f"targetHour must be between {SLOT_HOURS[0]} and {SLOT_HOURS[-1]}")
    return target_date, f"{target_hour:02d}:00"
