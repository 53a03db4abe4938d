"""Guide router - FastAPI endpoints for guides, availability and suggestions"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_role
from ...database import get_db
from ...models import User
from ...services.audit_service import record_audit
from ..bookings.schemas import BookingResponse, booking_to_response
from .schemas import (
    AvailabilityCreate,
    AvailabilityResponse,
    GuideCreate,
    GuideResponse,
    GuideStatsResponse,
    GuideSuggestionResponse,
    GuideUpdate,
    availability_to_response,
    guide_to_response,
)
from .service import GuideService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/guides", tags=["Guides"])

require_staff = require_role("admin", "coordinator")
require_admin = require_role("admin")


def get_guide_service(db: Session = Depends(get_db)) -> GuideService:
    """Dependency injection for GuideService"""
    return GuideService(db)


# ============================================================================
# COLLECTION ENDPOINTS
# ============================================================================


@router.get("", response_model=list[GuideResponse])
async def list_guides(
    activeOnly: bool = Query(False),
    current_user: User = Depends(require_staff),
    service: GuideService = Depends(get_guide_service),
):
    return [guide_to_response(g) for g in service.get_guides(activeOnly)]


@router.get("/leaderboard", response_model=list[GuideResponse])
async def get_leaderboard(
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    service: GuideService = Depends(get_guide_service),
):
    """Top guides by completed tours, then rating"""
    return [guide_to_response(g) for g in service.get_leaderboard(limit)]


@router.get("/me", response_model=GuideResponse)
async def get_my_guide_profile(
    current_user: User = Depends(get_current_user),
    service: GuideService = Depends(get_guide_service),
):
    return guide_to_response(service.get_own_guide(current_user))


@router.get("/suggest", response_model=list[GuideSuggestionResponse])
async def suggest_guides(
    visitDate: Optional[str] = Query(None),
    visitTime: Optional[str] = Query(None),
    selectedZones: Optional[str] = Query(None),
    excludeGuideIds: Optional[str] = Query(None),
    current_user: User = Depends(require_staff),
    service: GuideService = Depends(get_guide_service),
):
    """
    Rank active guides for a visit.

    selectedZones and excludeGuideIds are comma-separated ids.
    """
    suggestions = service.suggest_guides(visitDate, visitTime, selectedZones, excludeGuideIds)
    return [
        GuideSuggestionResponse(
            guideId=s["guide"].id,
            guideName=s["guide"].full_name,
            score=s["score"],
            breakdown=s["breakdown"],
            reasons=s["reasons"],
            topReason=s["topReason"],
            guide=guide_to_response(s["guide"]),
        )
        for s in suggestions
    ]


@router.post("/reconcile-stats")
async def reconcile_stats(
    guideId: Optional[int] = Query(None),
    current_user: User = Depends(require_admin),
    service: GuideService = Depends(get_guide_service),
):
    """Recompute guide counters from bookings and correct drift"""
    corrections = service.reconcile_stats(guideId)
    return {"corrected": len(corrections), "corrections": corrections}


@router.delete("/availability/{entry_id}")
async def delete_availability(
    entry_id: int,
    current_user: User = Depends(get_current_user),
    service: GuideService = Depends(get_guide_service),
):
    service.delete_availability(entry_id, current_user)
    return {"message": "Availability entry deleted"}


@router.post("", response_model=GuideResponse, status_code=201)
async def create_guide(
    data: GuideCreate,
    current_user: User = Depends(require_staff),
    service: GuideService = Depends(get_guide_service),
):
    guide = service.create_guide(data)
    record_audit(service.db, current_user.id, "create", "guide", guide.id, new_values={"name": guide.full_name})
    service.db.commit()
    return guide_to_response(guide)


# ============================================================================
# SINGLE GUIDE ENDPOINTS
# ============================================================================


@router.get("/{guide_id}", response_model=GuideResponse)
async def get_guide(
    guide_id: int,
    current_user: User = Depends(get_current_user),
    service: GuideService = Depends(get_guide_service),
):
    return guide_to_response(service.get_guide_for_user(guide_id, current_user))


@router.patch("/{guide_id}", response_model=GuideResponse)
async def update_guide(
    guide_id: int,
    data: GuideUpdate,
    current_user: User = Depends(require_staff),
    service: GuideService = Depends(get_guide_service),
):
    guide = service.update_guide(guide_id, data)
    record_audit(
        service.db,
        current_user.id,
        "update",
        "guide",
        guide.id,
        new_values=data.model_dump(exclude_none=True),
    )
    service.db.commit()
    return guide_to_response(guide)


@router.delete("/{guide_id}")
async def delete_guide(
    guide_id: int,
    current_user: User = Depends(require_staff),
    service: GuideService = Depends(get_guide_service),
):
    service.delete_guide(guide_id)
    record_audit(service.db, current_user.id, "delete", "guide", guide_id)
    service.db.commit()
    return {"message": "Guide deleted successfully"}


@router.get("/{guide_id}/bookings", response_model=list[BookingResponse])
async def get_guide_bookings(
    guide_id: int,
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: GuideService = Depends(get_guide_service),
):
    return [booking_to_response(b) for b in service.get_guide_bookings(guide_id, current_user, status)]


@router.get("/{guide_id}/stats", response_model=GuideStatsResponse)
async def get_guide_stats(
    guide_id: int,
    current_user: User = Depends(get_current_user),
    service: GuideService = Depends(get_guide_service),
):
    return service.get_stats(guide_id, current_user)


@router.get("/{guide_id}/training")
async def get_guide_training(
    guide_id: int,
    current_user: User = Depends(get_current_user),
    service: GuideService = Depends(get_guide_service),
):
    return service.get_guide_training(guide_id, current_user)


@router.get("/{guide_id}/availability", response_model=list[AvailabilityResponse])
async def get_availability(
    guide_id: int,
    current_user: User = Depends(get_current_user),
    service: GuideService = Depends(get_guide_service),
):
    return [availability_to_response(a) for a in service.get_availability(guide_id, current_user)]


@router.post("/{guide_id}/availability", response_model=AvailabilityResponse, status_code=201)
async def add_availability(
    guide_id: int,
    data: AvailabilityCreate,
    current_user: User = Depends(get_current_user),
    service: GuideService = Depends(get_guide_service),
):
    return availability_to_response(service.add_availability(guide_id, data, current_user))
