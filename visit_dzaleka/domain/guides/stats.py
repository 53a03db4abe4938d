"""
Guide performance counters

The counters on Guide are updated in the same transaction as the booking write
that changes them. reconcile_guide_stats recomputes them from booking rows and
corrects any drift.
"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Booking, Guide

logger = logging.getLogger(__name__)

STAT_FIELDS = ("total_tours", "completed_tours", "total_earnings", "rating", "total_ratings")


def record_assignment(db: Session, old_guide_id: Optional[int], new_guide_id: Optional[int]) -> None:
    """Move one active tour from the old guide (if any) to the new one (if any)"""
    if old_guide_id == new_guide_id:
        return
    if old_guide_id:
        old_guide = db.query(Guide).filter(Guide.id == old_guide_id).first()
        if old_guide:
            old_guide.total_tours = max(0, (old_guide.total_tours or 0) - 1)
    if new_guide_id:
        new_guide = db.query(Guide).filter(Guide.id == new_guide_id).first()
        if new_guide:
            new_guide.total_tours = (new_guide.total_tours or 0) + 1


def record_cancellation(guide: Optional[Guide]) -> None:
    if guide:
        guide.total_tours = max(0, (guide.total_tours or 0) - 1)


def record_completion(guide: Optional[Guide], amount: Optional[float]) -> None:
    if guide:
        guide.completed_tours = (guide.completed_tours or 0) + 1
        guide.total_earnings = (guide.total_earnings or 0) + (amount or 0)


def record_rating(guide: Optional[Guide], rating: int) -> None:
    """Fold one visitor rating into the running average"""
    if not guide:
        return
    count = guide.total_ratings or 0
    current = guide.rating or 0
    guide.rating = round((current * count + rating) / (count + 1), 2)
    guide.total_ratings = count + 1


def completion_rate(total_tours: int, completed_tours: int) -> float:
    if not total_tours:
        return 0.0
    return round(completed_tours / total_tours * 100, 1)


def compute_guide_stats(db: Session, guide_id: int) -> dict:
    """Recompute a guide's counters from the booking rows"""
    total_tours = (
        db.query(func.count(Booking.id))
        .filter(Booking.assigned_guide_id == guide_id, Booking.status != "cancelled")
        .scalar()
        or 0
    )
    completed_tours, total_earnings = (
        db.query(func.count(Booking.id), func.coalesce(func.sum(Booking.total_amount), 0))
        .filter(Booking.assigned_guide_id == guide_id, Booking.status == "completed")
        .one()
    )
    total_ratings, average_rating = (
        db.query(func.count(Booking.visitor_rating), func.avg(Booking.visitor_rating))
        .filter(Booking.assigned_guide_id == guide_id, Booking.visitor_rating.isnot(None))
        .one()
    )

    return {
        "total_tours": int(total_tours),
        "completed_tours": int(completed_tours or 0),
        "total_earnings": float(total_earnings or 0),
        "rating": round(float(average_rating), 2) if average_rating is not None else 0.0,
        "total_ratings": int(total_ratings or 0),
    }


def stats_drift(guide: Guide, computed: dict) -> dict:
    """Fields whose stored value differs from the recomputed one"""
    drift = {}
    for field in STAT_FIELDS:
        stored = getattr(guide, field) or 0
        expected = computed[field]
        if abs(float(stored) - float(expected)) > 0.005:
            drift[field] = {"stored": stored, "computed": expected}
    return drift


def reconcile_guide_stats(db: Session, guide_id: Optional[int] = None) -> list[dict]:
    """
    Recompute every counter from bookings and write corrections.

    Args:
        db: Database session (committed here)
        guide_id: Limit to one guide; all guides when None

    Returns:
        One entry per corrected guide: {"guideId", "drift"}
    """
    query = db.query(Guide)
    if guide_id is not None:
        query = query.filter(Guide.id == guide_id)

    corrections = []
    for guide in query.all():
        computed = compute_guide_stats(db, guide.id)
        drift = stats_drift(guide, computed)
        if drift:
            for field, value in computed.items():
                setattr(guide, field, value)
            corrections.append({"guideId": guide.id, "drift": drift})
            logger.warning(f"⚠️ Corrected stats drift for guide {guide.id}: {drift}")

    db.commit()
    logger.info(f"✅ Guide stats reconciled ({len(corrections)} corrected)")
    return corrections
