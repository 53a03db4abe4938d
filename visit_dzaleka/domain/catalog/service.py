"""Catalog service - Reference data and tour pricing"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import (
    MEETING_POINTS_KEY,
    POINTS_OF_INTEREST_KEY,
    PRICING_KEY,
    REFERENCE_DATA_TTL,
    ZONES_KEY,
    cached,
    invalidate_reference_cache,
)
from ...config import DEFAULT_CURRENCY
from ...models import MeetingPoint, PointOfInterest, PricingConfig, Zone
from ..bookings.pricing import (
    DEFAULT_ADDITIONAL_HOUR_PRICE,
    DEFAULT_BASE_PRICES,
    GROUP_SIZES,
    calculate_price,
    load_pricing,
)
from ..bookings.schemas import PriceCalculationRequest
from .repository import CatalogRepository
from .schemas import (
    PricingUpdate,
    meeting_point_to_response,
    poi_to_response,
    zone_to_response,
)

logger = logging.getLogger(__name__)

CURRENCY = DEFAULT_CURRENCY

ZONE_FIELD_MAP = {
    "name": "name",
    "description": "description",
    "icon": "icon",
    "color": "color",
    "isActive": "is_active",
}

POI_FIELD_MAP = {
    "name": "name",
    "zoneId": "zone_id",
    "description": "description",
    "category": "category",
    "isActive": "is_active",
}

MEETING_POINT_FIELD_MAP = {
    "name": "name",
    "description": "description",
    "address": "address",
    "isActive": "is_active",
}

PRICING_FIELD_MAP = {
    "name": "name",
    "minPeople": "min_people",
    "maxPeople": "max_people",
    "basePrice": "base_price",
    "additionalHourPrice": "additional_hour_price",
    "isActive": "is_active",
}

# Shown for group sizes that have no PricingConfig row yet
DEFAULT_GROUP_DETAILS = {
    "individual": ("Individual", 1, 1),
    "small_group": ("Small group", 2, 5),
    "large_group": ("Large group", 6, 15),
    "custom": ("Custom group", 16, None),
}


def _columns(data, field_map: dict) -> dict:
    return {column: getattr(data, field) for field, column in field_map.items() if hasattr(data, field)}


@cached(key_prefix=ZONES_KEY, ttl=REFERENCE_DATA_TTL)
def active_zones(db: Session) -> list[dict]:
    return [zone_to_response(z).model_dump(mode="json") for z in CatalogRepository.list_rows(db, Zone)]


@cached(key_prefix=MEETING_POINTS_KEY, ttl=REFERENCE_DATA_TTL)
def active_meeting_points(db: Session) -> list[dict]:
    return [
        meeting_point_to_response(m).model_dump(mode="json")
        for m in CatalogRepository.list_rows(db, MeetingPoint)
    ]


@cached(key_prefix=POINTS_OF_INTEREST_KEY, ttl=REFERENCE_DATA_TTL)
def active_points_of_interest(db: Session) -> list[dict]:
    return [
        poi_to_response(p).model_dump(mode="json")
        for p in CatalogRepository.list_points_of_interest(db)
    ]


def pricing_table(configs: list) -> list[dict]:
    """Every group size with its configured price, falling back to the defaults"""
    by_size = {c.group_size: c for c in configs}
    table = []
    for size in GROUP_SIZES:
        config = by_size.get(size)
        if config:
            table.append({
                "groupSize": size,
                "name": config.name,
                "minPeople": config.min_people,
                "maxPeople": config.max_people,
                "basePrice": config.base_price,
                "additionalHourPrice": config.additional_hour_price,
                "currency": config.currency or CURRENCY,
                "isActive": config.is_active,
                "isDefault": False,
            })
        else:
            name, min_people, max_people = DEFAULT_GROUP_DETAILS[size]
            table.append({
                "groupSize": size,
                "name": name,
                "minPeople": min_people,
                "maxPeople": max_people,
                "basePrice": DEFAULT_BASE_PRICES[size],
                "additionalHourPrice": DEFAULT_ADDITIONAL_HOUR_PRICE,
                "currency": CURRENCY,
                "isActive": True,
                "isDefault": True,
            })
    return table


@cached(key_prefix=PRICING_KEY, ttl=REFERENCE_DATA_TTL)
def current_pricing(db: Session) -> list[dict]:
    return pricing_table(CatalogRepository.get_pricing_configs(db))


def zone_usage_counts(zones: list, booking_zones: list[list], guide_zones: list[list]) -> list[dict]:
    """Bookings requesting each zone and guides covering it, most booked first"""
    rows = []
    for zone in zones:
        key = str(zone.id)
        rows.append({
            "zoneId": zone.id,
            "name": zone.name,
            "isActive": zone.is_active,
            "bookingCount": sum(1 for selected in booking_zones if key in {str(z) for z in selected}),
            "guideCount": sum(1 for assigned in guide_zones if key in {str(z) for z in assigned}),
        })
    rows.sort(key=lambda r: (-r["bookingCount"], r["name"]))
    return rows


class CatalogService:
    """Service layer for zones, points of interest, meeting points and pricing"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CatalogRepository()

    def _get_or_404(self, model, row_id: int, label: str):
        row = self.repo.get_row(self.db, model, row_id)
        if not row:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        return row

    # Zones

    def get_zones(self, include_inactive: bool = False) -> list[dict]:
        if include_inactive:
            return [
                zone_to_response(z).model_dump(mode="json")
                for z in self.repo.list_rows(self.db, Zone, include_inactive=True)
            ]
        return active_zones(self.db)

    def get_zone(self, zone_id: int) -> Zone:
        return self._get_or_404(Zone, zone_id, "Zone")

    def create_zone(self, data) -> Zone:
        zone = self.repo.create_row(self.db, Zone, **_columns(data, ZONE_FIELD_MAP))
        invalidate_reference_cache(ZONES_KEY)
        logger.info(f"✅ Zone {zone.id} created: {zone.name}")
        return zone

    def update_zone(self, zone_id: int, data) -> Zone:
        zone = self.get_zone(zone_id)
        zone = self.repo.update_row(self.db, zone, **_columns(data, ZONE_FIELD_MAP))
        invalidate_reference_cache(ZONES_KEY)
        return zone

    def deactivate_zone(self, zone_id: int) -> Zone:
        """Zones stay referenced by bookings and guides, so they are only hidden"""
        zone = self.get_zone(zone_id)
        zone = self.repo.update_row(self.db, zone, is_active=False)
        invalidate_reference_cache(ZONES_KEY)
        logger.info(f"🗑️ Zone {zone_id} deactivated")
        return zone

    def get_zone_analytics(self) -> list[dict]:
        zones = self.repo.list_rows(self.db, Zone, include_inactive=True)
        booking_zones, guide_zones = self.repo.zone_usage(self.db)
        return zone_usage_counts(zones, booking_zones, guide_zones)

    # Points of interest

    def get_points_of_interest(
        self, zone_id: Optional[int] = None, include_inactive: bool = False
    ) -> list[dict]:
        if zone_id is None and not include_inactive:
            return active_points_of_interest(self.db)
        return [
            poi_to_response(p).model_dump(mode="json")
            for p in self.repo.list_points_of_interest(self.db, zone_id, include_inactive)
        ]

    def _check_zone(self, zone_id: Optional[int]) -> None:
        if zone_id is not None and not self.repo.get_row(self.db, Zone, zone_id):
            raise HTTPException(status_code=400, detail="Zone not found")

    def create_point_of_interest(self, data) -> PointOfInterest:
        self._check_zone(data.zoneId)
        poi = self.repo.create_row(self.db, PointOfInterest, **_columns(data, POI_FIELD_MAP))
        invalidate_reference_cache(POINTS_OF_INTEREST_KEY)
        logger.info(f"✅ Point of interest {poi.id} created: {poi.name}")
        return poi

    def update_point_of_interest(self, poi_id: int, data) -> PointOfInterest:
        poi = self._get_or_404(PointOfInterest, poi_id, "Point of interest")
        self._check_zone(data.zoneId)
        poi = self.repo.update_row(self.db, poi, **_columns(data, POI_FIELD_MAP))
        invalidate_reference_cache(POINTS_OF_INTEREST_KEY)
        return poi

    def deactivate_point_of_interest(self, poi_id: int) -> PointOfInterest:
        poi = self._get_or_404(PointOfInterest, poi_id, "Point of interest")
        poi = self.repo.update_row(self.db, poi, is_active=False)
        invalidate_reference_cache(POINTS_OF_INTEREST_KEY)
        logger.info(f"🗑️ Point of interest {poi_id} deactivated")
        return poi

    # Meeting points

    def get_meeting_points(self, include_inactive: bool = False) -> list[dict]:
        if include_inactive:
            return [
                meeting_point_to_response(m).model_dump(mode="json")
                for m in self.repo.list_rows(self.db, MeetingPoint, include_inactive=True)
            ]
        return active_meeting_points(self.db)

    def create_meeting_point(self, data) -> MeetingPoint:
        meeting_point = self.repo.create_row(
            self.db, MeetingPoint, **_columns(data, MEETING_POINT_FIELD_MAP)
        )
        invalidate_reference_cache(MEETING_POINTS_KEY)
        logger.info(f"✅ Meeting point {meeting_point.id} created: {meeting_point.name}")
        return meeting_point

    def update_meeting_point(self, meeting_point_id: int, data) -> MeetingPoint:
        meeting_point = self._get_or_404(MeetingPoint, meeting_point_id, "Meeting point")
        meeting_point = self.repo.update_row(
            self.db, meeting_point, **_columns(data, MEETING_POINT_FIELD_MAP)
        )
        invalidate_reference_cache(MEETING_POINTS_KEY)
        return meeting_point

    def deactivate_meeting_point(self, meeting_point_id: int) -> MeetingPoint:
        meeting_point = self._get_or_404(MeetingPoint, meeting_point_id, "Meeting point")
        meeting_point = self.repo.update_row(self.db, meeting_point, is_active=False)
        invalidate_reference_cache(MEETING_POINTS_KEY)
        logger.info(f"🗑️ Meeting point {meeting_point_id} deactivated")
        return meeting_point

    # Pricing

    def get_pricing(self) -> list[dict]:
        return current_pricing(self.db)

    def update_pricing(self, data: PricingUpdate) -> list[dict]:
        """Upsert one PricingConfig row per group size in the payload"""
        for item in data.items:
            updates = {
                column: getattr(item, field)
                for field, column in PRICING_FIELD_MAP.items()
                if getattr(item, field) is not None
            }
            config = self.repo.get_pricing_config(self.db, item.groupSize)
            if config:
                self.repo.update_row(self.db, config, **updates)
                continue

            name, min_people, max_people = DEFAULT_GROUP_DETAILS[item.groupSize]
            row = {
                "group_size": item.groupSize,
                "name": name,
                "min_people": min_people,
                "max_people": max_people,
                "base_price": DEFAULT_BASE_PRICES[item.groupSize],
                "additional_hour_price": DEFAULT_ADDITIONAL_HOUR_PRICE,
                "currency": CURRENCY,
            }
            row.update(updates)
            self.repo.create_row(self.db, PricingConfig, **row)

        invalidate_reference_cache(PRICING_KEY)
        logger.info(f"💰 Pricing updated for {', '.join(i.groupSize for i in data.items)}")
        return pricing_table(self.repo.get_pricing_configs(self.db))

    def calculate(self, data: PriceCalculationRequest) -> dict:
        base_prices, hour_prices = load_pricing(self.db)
        hour_price = hour_prices.get(data.groupSize, DEFAULT_ADDITIONAL_HOUR_PRICE)
        try:
            total = calculate_price(
                data.groupSize,
                data.tourType,
                data.customDuration,
                base_prices=base_prices,
                additional_hour_price=hour_price,
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        return {
            "groupSize": data.groupSize,
            "tourType": data.tourType,
            "customDuration": data.customDuration,
            "basePrice": base_prices[data.groupSize],
            "additionalHourPrice": hour_price,
            "totalAmount": total,
            "currency": CURRENCY,
        }
