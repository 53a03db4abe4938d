"""Catalog router - Public reference data, staff CRUD and pricing"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_optional_user, is_staff, require_role
from ...database import get_db
from ...models import User
from ...services.audit_service import record_audit
from ..bookings.schemas import PriceCalculationRequest
from .schemas import (
    MeetingPointCreate,
    MeetingPointResponse,
    MeetingPointUpdate,
    PointOfInterestCreate,
    PointOfInterestResponse,
    PointOfInterestUpdate,
    PriceCalculationResponse,
    PricingEntry,
    PricingUpdate,
    ZoneCreate,
    ZoneResponse,
    ZoneUpdate,
    meeting_point_to_response,
    poi_to_response,
    zone_to_response,
)
from .service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Catalog"])

require_staff = require_role("admin", "coordinator")
require_admin = require_role("admin")


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


def _include_inactive(flag: bool, user: Optional[User]) -> bool:
    """Inactive rows are only listed for staff who ask for them"""
    return flag and user is not None and is_staff(user)


def _audit(service: CatalogService, user: User, action: str, entity_type: str, entity_id, values=None):
    record_audit(service.db, user.id, action, entity_type, entity_id, new_values=values)
    service.db.commit()


# ============================================================================
# Zones
# ============================================================================

@router.get("/api/zones", response_model=list[ZoneResponse])
async def list_zones(
    includeInactive: bool = Query(False),
    current_user: Optional[User] = Depends(get_optional_user),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.get_zones(_include_inactive(includeInactive, current_user))


@router.get("/api/zones/analytics")
async def zone_analytics(
    current_user: User = Depends(require_staff),
    service: CatalogService = Depends(get_catalog_service),
):
    """Booking demand and guide coverage per zone"""
    return service.get_zone_analytics()


@router.get("/api/zones/{zone_id}", response_model=ZoneResponse)
async def get_zone(zone_id: int, service: CatalogService = Depends(get_catalog_service)):
    return zone_to_response(service.get_zone(zone_id))


@router.post("/api/zones", response_model=ZoneResponse, status_code=201)
async def create_zone(
    data: ZoneCreate,
    current_user: User = Depends(require_staff),
    service: CatalogService = Depends(get_catalog_service),
):
    zone = service.create_zone(data)
    _audit(service, current_user, "create", "zone", zone.id, {"name": zone.name})
    return zone_to_response(zone)


@router.patch("/api/zones/{zone_id}", response_model=ZoneResponse)
async def update_zone(
    zone_id: int,
    data: ZoneUpdate,
    current_user: User = Depends(require_staff),
    service: CatalogService = Depends(get_catalog_service),
):
    zone = service.update_zone(zone_id, data)
    _audit(service, current_user, "update", "zone", zone.id, data.model_dump(exclude_none=True))
    return zone_to_response(zone)


@router.delete("/api/zones/{zone_id}", response_model=ZoneResponse)
async def delete_zone(
    zone_id: int,
    current_user: User = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    zone = service.deactivate_zone(zone_id)
    _audit(service, current_user, "delete", "zone", zone_id)
    return zone_to_response(zone)


# ============================================================================
# Points of interest
# ============================================================================

@router.get("/api/points-of-interest", response_model=list[PointOfInterestResponse])
async def list_points_of_interest(
    zoneId: Optional[int] = Query(None),
    includeInactive: bool = Query(False),
    current_user: Optional[User] = Depends(get_optional_user),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.get_points_of_interest(zoneId, _include_inactive(includeInactive, current_user))


@router.post("/api/points-of-interest", response_model=PointOfInterestResponse, status_code=201)
async def create_point_of_interest(
    data: PointOfInterestCreate,
    current_user: User = Depends(require_staff),
    service: CatalogService = Depends(get_catalog_service),
):
    poi = service.create_point_of_interest(data)
    _audit(service, current_user, "create", "point_of_interest", poi.id, {"name": poi.name})
    return poi_to_response(poi)


@router.patch("/api/points-of-interest/{poi_id}", response_model=PointOfInterestResponse)
async def update_point_of_interest(
    poi_id: int,
    data: PointOfInterestUpdate,
    current_user: User = Depends(require_staff),
    service: CatalogService = Depends(get_catalog_service),
):
    poi = service.update_point_of_interest(poi_id, data)
    _audit(service, current_user, "update", "point_of_interest", poi.id, data.model_dump(exclude_none=True))
    return poi_to_response(poi)


@router.delete("/api/points-of-interest/{poi_id}", response_model=PointOfInterestResponse)
async def delete_point_of_interest(
    poi_id: int,
    current_user: User = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    poi = service.deactivate_point_of_interest(poi_id)
    _audit(service, current_user, "delete", "point_of_interest", poi_id)
    return poi_to_response(poi)


# ============================================================================
# Meeting points
# ============================================================================

@router.get("/api/meeting-points", response_model=list[MeetingPointResponse])
async def list_meeting_points(
    includeInactive: bool = Query(False),
    current_user: Optional[User] = Depends(get_optional_user),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.get_meeting_points(_include_inactive(includeInactive, current_user))


@router.post("/api/meeting-points", response_model=MeetingPointResponse, status_code=201)
async def create_meeting_point(
    data: MeetingPointCreate,
    current_user: User = Depends(require_staff),
    service: CatalogService = Depends(get_catalog_service),
):
    meeting_point = service.create_meeting_point(data)
    _audit(service, current_user, "create", "meeting_point", meeting_point.id, {"name": meeting_point.name})
    return meeting_point_to_response(meeting_point)


@router.patch("/api/meeting-points/{meeting_point_id}", response_model=MeetingPointResponse)
async def update_meeting_point(
    meeting_point_id: int,
    data: MeetingPointUpdate,
    current_user: User = Depends(require_staff),
    service: CatalogService = Depends(get_catalog_service),
):
    meeting_point = service.update_meeting_point(meeting_point_id, data)
    _audit(
        service, current_user, "update", "meeting_point", meeting_point.id,
        data.model_dump(exclude_none=True),
    )
    return meeting_point_to_response(meeting_point)


@router.delete("/api/meeting-points/{meeting_point_id}", response_model=MeetingPointResponse)
async def delete_meeting_point(
    meeting_point_id: int,
    current_user: User = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    meeting_point = service.deactivate_meeting_point(meeting_point_id)
    _audit(service, current_user, "delete", "meeting_point", meeting_point_id)
    return meeting_point_to_response(meeting_point)


# ============================================================================
# Pricing
# ============================================================================

@router.get("/api/pricing", response_model=list[PricingEntry])
async def get_pricing(service: CatalogService = Depends(get_catalog_service)):
    return service.get_pricing()


@router.patch("/api/pricing", response_model=list[PricingEntry])
async def update_pricing(
    data: PricingUpdate,
    current_user: User = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    table = service.update_pricing(data)
    _audit(
        service, current_user, "update", "pricing", None,
        {"items": [i.model_dump(exclude_none=True) for i in data.items]},
    )
    return table


@router.post("/api/calculate-price", response_model=PriceCalculationResponse)
async def calculate_price(
    data: PriceCalculationRequest,
    service: CatalogService = Depends(get_catalog_service),
):
    """Public quote for the booking form"""
    return service.calculate(data)
