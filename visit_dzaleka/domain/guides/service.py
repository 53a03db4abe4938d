"""Guide service - Business logic for guides, availability and suggestions"""

import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import is_staff
from ...models import Booking, Guide, GuideAvailability, User
from ...shared.validators import validate_time_string
from ..training.service import TrainingService
from . import stats as guide_stats
from .repository import GuideRepository
from .schemas import AvailabilityCreate, GuideCreate, GuideUpdate
from .suggestion import rank_guides, week_bounds

logger = logging.getLogger(__name__)

GUIDE_FIELD_MAP = {
    "firstName": "first_name",
    "lastName": "last_name",
    "phone": "phone",
    "email": "email",
    "userId": "user_id",
    "bio": "bio",
    "profileImageUrl": "profile_image_url",
    "languages": "languages",
    "specialties": "specialties",
    "assignedZones": "assigned_zones",
    "availableDays": "available_days",
    "preferredTimes": "preferred_times",
    "emergencyContactName": "emergency_contact_name",
    "emergencyContactPhone": "emergency_contact_phone",
    "preferredPaymentMethod": "preferred_payment_method",
    "additionalNotes": "additional_notes",
    "isActive": "is_active",
}


def _parse_id_list(raw: Optional[str], label: str) -> list[int]:
    """Comma-separated ids from a query string; blanks are ignored"""
    if not raw:
        return []
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid {label}") from e


class GuideService:
    """Service layer for guide business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = GuideRepository()

    def get_guides(self, active_only: bool = False) -> list[Guide]:
        return self.repo.get_guides(self.db, active_only)

    def get_guide(self, guide_id: int) -> Guide:
        guide = self.repo.get_guide_by_id(self.db, guide_id)
        if not guide:
            raise HTTPException(status_code=404, detail="Guide not found")
        return guide

    def get_own_guide(self, user: User) -> Guide:
        guide = self.repo.get_guide_for_user(self.db, user.id)
        if not guide:
            raise HTTPException(status_code=404, detail="No guide profile linked to this account")
        return guide

    def get_guide_for_user(self, guide_id: int, user: User) -> Guide:
        """Staff see every guide; a guide only sees their own profile"""
        guide = self.get_guide(guide_id)
        if is_staff(user):
            return guide
        if guide.user_id is not None and guide.user_id == user.id:
            return guide
        raise HTTPException(status_code=403, detail="You do not have access to this guide")

    def _check_linked_user(self, user_id: Optional[int], guide_id: Optional[int] = None) -> None:
        if user_id is None:
            return
        linked_user = self.db.query(User).filter(User.id == user_id).first()
        if not linked_user:
            raise HTTPException(status_code=404, detail="Linked user not found")
        existing = self.repo.get_guide_for_user(self.db, user_id)
        if existing and existing.id != guide_id:
            raise HTTPException(
                status_code=400, detail="This user is already linked to another guide profile"
            )

    def create_guide(self, data: GuideCreate) -> Guide:
        logger.info(f"📥 Creating guide {data.firstName} {data.lastName}")
        self._check_linked_user(data.userId)

        guide_data = {
            column: getattr(data, field) for field, column in GUIDE_FIELD_MAP.items()
        }
        guide_data["first_name"] = data.firstName.strip()
        guide_data["last_name"] = data.lastName.strip()
        guide = self.repo.create_guide(self.db, **guide_data)
        logger.info(f"✅ Guide {guide.id} created")
        return guide

    def update_guide(self, guide_id: int, data: GuideUpdate) -> Guide:
        guide = self.get_guide(guide_id)
        if data.userId is not None:
            self._check_linked_user(data.userId, guide.id)

        updates = {
            column: getattr(data, field)
            for field, column in GUIDE_FIELD_MAP.items()
            if getattr(data, field) is not None
        }
        return self.repo.update_guide(self.db, guide, **updates)

    def delete_guide(self, guide_id: int) -> None:
        """Soft delete; bookings keep pointing at the guide row"""
        guide = self.get_guide(guide_id)
        self.repo.soft_delete_guide(self.db, guide)
        logger.info(f"🗑️ Guide {guide_id} soft-deleted")

    def get_leaderboard(self, limit: int = 10) -> list[Guide]:
        return self.repo.get_leaderboard(self.db, limit)

    def get_guide_bookings(self, guide_id: int, user: User, status: Optional[str] = None) -> list[Booking]:
        guide = self.get_guide_for_user(guide_id, user)
        return self.repo.get_guide_bookings(self.db, guide.id, status)

    def get_guide_training(self, guide_id: int, user: User) -> dict:
        guide = self.get_guide_for_user(guide_id, user)
        return TrainingService(self.db).training_overview(guide.user_id)

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def get_availability(self, guide_id: int, user: User) -> list[GuideAvailability]:
        guide = self.get_guide_for_user(guide_id, user)
        return self.repo.get_availability(self.db, guide.id)

    def add_availability(self, guide_id: int, data: AvailabilityCreate, user: User) -> GuideAvailability:
        guide = self.get_guide_for_user(guide_id, user)
        # A dated entry overrides a single day; a weekday entry repeats
        is_recurring = data.isRecurring if data.isRecurring is not None else data.date is None
        entry = self.repo.create_availability(
            self.db,
            guide_id=guide.id,
            day_of_week=data.dayOfWeek,
            date=data.date,
            start_time=data.startTime,
            end_time=data.endTime,
            is_available=data.isAvailable,
            is_recurring=is_recurring,
        )
        logger.info(f"✅ Availability {entry.id} added for guide {guide.id}")
        return entry

    def delete_availability(self, entry_id: int, user: User) -> None:
        entry = self.repo.get_availability_entry(self.db, entry_id)
        if not entry:
            raise HTTPException(status_code=404, detail="Availability entry not found")
        self.get_guide_for_user(entry.guide_id, user)
        self.repo.delete_availability(self.db, entry)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_stats(self, guide_id: int, user: User) -> dict:
        """Stored counters alongside a fresh recomputation from bookings"""
        guide = self.get_guide_for_user(guide_id, user)
        computed = guide_stats.compute_guide_stats(self.db, guide.id)
        drift = guide_stats.stats_drift(guide, computed)
        if drift:
            logger.warning(f"⚠️ Guide {guide.id} counters drifted: {drift}")
        return {
            "guideId": guide.id,
            "totalTours": guide.total_tours or 0,
            "completedTours": guide.completed_tours or 0,
            "totalEarnings": guide.total_earnings or 0,
            "rating": guide.rating or 0,
            "totalRatings": guide.total_ratings or 0,
            "completionRate": guide_stats.completion_rate(
                guide.total_tours or 0, guide.completed_tours or 0
            ),
            "computed": {
                **computed,
                "completion_rate": guide_stats.completion_rate(
                    computed["total_tours"], computed["completed_tours"]
                ),
            },
            "drift": drift,
        }

    def reconcile_stats(self, guide_id: Optional[int] = None) -> list[dict]:
        if guide_id is not None:
            self.get_guide(guide_id)
        return guide_stats.reconcile_guide_stats(self.db, guide_id)

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def suggest_guides(
        self,
        visit_date: Optional[str],
        visit_time: Optional[str],
        selected_zones: Optional[str] = None,
        exclude_guide_ids: Optional[str] = None,
    ) -> list[dict]:
        if not visit_date or not visit_time:
            raise HTTPException(status_code=400, detail="visitDate and visitTime are required")
        try:
            parsed_date = date.fromisoformat(visit_date)
            parsed_time = validate_time_string(visit_time)
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Invalid visitDate or visitTime") from e

        zones = [z.strip() for z in (selected_zones or "").split(",") if z.strip()]
        exclude_ids = _parse_id_list(exclude_guide_ids, "excludeGuideIds")

        guides = self.repo.get_guides(self.db, active_only=True)
        week_start, week_end = week_bounds(parsed_date)
        suggestions = rank_guides(
            guides,
            self.repo.get_availability_for_guides(self.db, [g.id for g in guides]),
            self.repo.get_week_booking_counts(self.db, week_start, week_end),
            parsed_date,
            parsed_time,
            zones,
            exclude_ids,
        )
        logger.info(f"🧭 {len(suggestions)} guide suggestions for {parsed_date} {parsed_time}")
        return suggestions
