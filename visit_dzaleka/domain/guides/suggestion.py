"""
Guide suggestion scoring

Each active guide gets a 0-100 score for a visit:
- zone expertise   0-30
- availability     0-25
- weekly workload  0-25
- visitor rating   0-20
"""

from datetime import date, timedelta
from typing import Optional

ZONE_MAX = 30
AVAILABILITY_MAX = 25
WORKLOAD_MAX = 25
RATING_MAX = 20

# 0 = Sunday, matching GuideAvailability.day_of_week
SUNDAY_FIRST_DAYS = ["sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]


def round_half_up(value: float) -> int:
    return int(value + 0.5)


def sunday_index(value: date) -> int:
    """Day of week with Sunday as 0"""
    return (value.weekday() + 1) % 7


def week_bounds(value: date) -> tuple[date, date]:
    """Sunday and Saturday of the week containing value"""
    start = value - timedelta(days=sunday_index(value))
    return start, start + timedelta(days=6)


def time_to_minutes(value: str) -> int:
    hours, _, minutes = value.partition(":")
    return int(hours) * 60 + int(minutes or 0)


def is_time_in_range(check: str, start: str, end: str) -> bool:
    return time_to_minutes(start) <= time_to_minutes(check) <= time_to_minutes(end)


def zone_expertise_score(guide_zones: Optional[list], selected_zones: list) -> int:
    if not selected_zones:
        # Nothing requested, partial credit for everyone
        return 15
    guide_zones = [str(z) for z in (guide_zones or [])]
    if not guide_zones:
        return 5
    matching = [z for z in selected_zones if str(z) in guide_zones]
    return round_half_up(len(matching) / len(selected_zones) * ZONE_MAX)


def availability_score(
    available_days: Optional[list],
    availability: list,
    visit_date: date,
    visit_time: str,
) -> int:
    """
    available_days filters first. A date-specific entry beats recurring ones;
    with no entries at all the guide is assumed likely available.
    """
    day_index = sunday_index(visit_date)
    day_name = SUNDAY_FIRST_DAYS[day_index]
    available_days = available_days or []

    if available_days and day_name not in available_days:
        return 0

    for entry in availability:
        if entry.date == visit_date:
            if not entry.is_available:
                return 0
            if is_time_in_range(visit_time, entry.start_time, entry.end_time):
                return AVAILABILITY_MAX
            return 10

    recurring = [a for a in availability if a.is_recurring and a.day_of_week == day_index]
    if recurring:
        if any(is_time_in_range(visit_time, a.start_time, a.end_time) for a in recurring):
            return AVAILABILITY_MAX
        return 15

    return 20


def workload_score(week_booking_count: int) -> int:
    if week_booking_count == 0:
        return 25
    if week_booking_count <= 2:
        return 20
    if week_booking_count <= 4:
        return 15
    if week_booking_count <= 6:
        return 10
    return 5


def rating_score(rating: Optional[float], total_ratings: Optional[int]) -> int:
    if not total_ratings:
        return 10
    return round_half_up((rating or 0) / 5 * RATING_MAX)


def build_reasons(breakdown: dict, total_ratings: Optional[int]) -> list[str]:
    reasons = []

    zone = breakdown["zoneExpertise"]
    if zone >= 25:
        reasons.append("Expert in all selected zones")
    elif zone >= 15:
        reasons.append("Familiar with most selected zones")
    elif zone > 0:
        reasons.append("Some zone experience")

    availability = breakdown["availability"]
    if availability >= 25:
        reasons.append("Fully available at requested time")
    elif availability >= 15:
        reasons.append("Available on requested date")
    elif availability == 0:
        reasons.append("May not be available")

    workload = breakdown["workload"]
    if workload >= 25:
        reasons.append("No other bookings this week")
    elif workload >= 20:
        reasons.append("Light schedule this week")
    elif workload <= 10:
        reasons.append("Busy week, consider backup")

    rating = breakdown["rating"]
    if rating >= 18:
        reasons.append("Highly rated by visitors")
    elif rating >= 10 and not total_ratings:
        reasons.append("New guide, no ratings yet")

    return reasons


def top_reason(breakdown: dict) -> str:
    """Category with the best score relative to its maximum; earlier categories win ties"""
    categories = [
        ("zone expertise", breakdown["zoneExpertise"], ZONE_MAX),
        ("availability", breakdown["availability"], AVAILABILITY_MAX),
        ("light workload", breakdown["workload"], WORKLOAD_MAX),
        ("high rating", breakdown["rating"], RATING_MAX),
    ]
    best = categories[0]
    for category in categories[1:]:
        if category[1] / category[2] > best[1] / best[2]:
            best = category
    return f"Best for {best[0]}"


def score_guide(
    guide,
    availability: list,
    week_booking_count: int,
    visit_date: date,
    visit_time: str,
    selected_zones: list,
) -> dict:
    breakdown = {
        "zoneExpertise": zone_expertise_score(guide.assigned_zones, selected_zones),
        "availability": availability_score(
            guide.available_days, availability, visit_date, visit_time
        ),
        "workload": workload_score(week_booking_count),
        "rating": rating_score(guide.rating, guide.total_ratings),
    }
    return {
        "guide": guide,
        "score": sum(breakdown.values()),
        "breakdown": breakdown,
        "reasons": build_reasons(breakdown, guide.total_ratings),
        "topReason": top_reason(breakdown),
    }


def rank_guides(
    guides: list,
    availability_by_guide: dict,
    week_counts: dict,
    visit_date: date,
    visit_time: str,
    selected_zones: list,
    exclude_ids: Optional[list[int]] = None,
) -> list[dict]:
    """Score active guides and sort best first; ties keep input order"""
    exclude_ids = set(exclude_ids or [])
    suggestions = [
        score_guide(
            guide,
            availability_by_guide.get(guide.id, []),
            week_counts.get(guide.id, 0),
            visit_date,
            visit_time,
            selected_zones,
        )
        for guide in guides
        if guide.is_active and guide.deleted_at is None and guide.id not in exclude_ids
    ]
    return sorted(suggestions, key=lambda s: s["score"], reverse=True)
