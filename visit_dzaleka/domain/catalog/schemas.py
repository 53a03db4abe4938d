"""Catalog schemas - Zones, points of interest, meeting points and pricing"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..bookings.pricing import GROUP_SIZES


class ZoneCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    isActive: bool = True


class ZoneUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    isActive: Optional[bool] = None


class ZoneResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    isActive: bool
    createdAt: Optional[datetime] = None

    class Config:
        from_attributes = True


class PointOfInterestCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    zoneId: Optional[int] = None
    description: Optional[str] = None
    category: Optional[str] = None
    isActive: bool = True


class PointOfInterestUpdate(BaseModel):
    name: Optional[str] = None
    zoneId: Optional[int] = None
    description: Optional[str] = None
    category: Optional[str] = None
    isActive: Optional[bool] = None


class PointOfInterestResponse(BaseModel):
    id: int
    zoneId: Optional[int] = None
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    isActive: bool
    createdAt: Optional[datetime] = None

    class Config:
        from_attributes = True


class MeetingPointCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    address: Optional[str] = None
    isActive: bool = True


class MeetingPointUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    isActive: Optional[bool] = None


class MeetingPointResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    address: Optional[str] = None
    isActive: bool
    createdAt: Optional[datetime] = None

    class Config:
        from_attributes = True


class PricingEntry(BaseModel):
    groupSize: str
    name: str
    minPeople: Optional[int] = None
    maxPeople: Optional[int] = None
    basePrice: float
    additionalHourPrice: float
    currency: str
    isActive: bool = True
    isDefault: bool = False


class PricingItemUpdate(BaseModel):
    groupSize: str
    name: Optional[str] = None
    minPeople: Optional[int] = Field(default=None, ge=1)
    maxPeople: Optional[int] = Field(default=None, ge=1)
    basePrice: Optional[float] = Field(default=None, ge=0)
    additionalHourPrice: Optional[float] = Field(default=None, ge=0)
    isActive: Optional[bool] = None

    @field_validator("groupSize")
    @classmethod
    def check_group_size(cls, v):
        if v not in GROUP_SIZES:
            raise ValueError(f"Invalid group size. Must be one of: {', '.join(GROUP_SIZES)}")
        return v


class PricingUpdate(BaseModel):
    items: list[PricingItemUpdate] = Field(min_length=1)


class PriceCalculationResponse(BaseModel):
    groupSize: str
    tourType: str
    customDuration: Optional[int] = None
    basePrice: float
    additionalHourPrice: float
    totalAmount: float
    currency: str


def zone_to_response(zone) -> ZoneResponse:
    return ZoneResponse(
        id=zone.id,
        name=zone.name,
        description=zone.description,
        icon=zone.icon,
        color=zone.color,
        isActive=zone.is_active,
        createdAt=zone.created_at,
    )


def poi_to_response(poi) -> PointOfInterestResponse:
    return PointOfInterestResponse(
        id=poi.id,
        zoneId=poi.zone_id,
        name=poi.name,
        description=poi.description,
        category=poi.category,
        isActive=poi.is_active,
        createdAt=poi.created_at,
    )


def meeting_point_to_response(meeting_point) -> MeetingPointResponse:
    return MeetingPointResponse(
        id=meeting_point.id,
        name=meeting_point.name,
        description=meeting_point.description,
        address=meeting_point.address,
        isActive=meeting_point.is_active,
        createdAt=meeting_point.created_at,
    )
