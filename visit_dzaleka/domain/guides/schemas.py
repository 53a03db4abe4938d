"""Guide domain schemas - Pydantic models for validation"""

import datetime as dt
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import (
    validate_email,
    validate_phone,
    validate_time_string,
    validate_weekday_names,
)
from .stats import completion_rate


class GuideCreate(BaseModel):
    """Schema for creating a guide profile"""

    firstName: str
    lastName: str
    phone: str
    email: Optional[str] = None
    userId: Optional[int] = None
    bio: Optional[str] = None
    profileImageUrl: Optional[str] = None
    languages: list[str] = []
    specialties: list[str] = []
    assignedZones: list[int] = []
    availableDays: list[str] = []
    preferredTimes: list[str] = []
    emergencyContactName: Optional[str] = None
    emergencyContactPhone: Optional[str] = None
    preferredPaymentMethod: Optional[str] = None
    additionalNotes: Optional[str] = None
    isActive: bool = True

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone", "emergencyContactPhone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("availableDays")
    @classmethod
    def check_days(cls, v):
        return validate_weekday_names(v)


class GuideUpdate(BaseModel):
    """Schema for updating a guide; only provided fields change"""

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    userId: Optional[int] = None
    bio: Optional[str] = None
    profileImageUrl: Optional[str] = None
    languages: Optional[list[str]] = None
    specialties: Optional[list[str]] = None
    assignedZones: Optional[list[int]] = None
    availableDays: Optional[list[str]] = None
    preferredTimes: Optional[list[str]] = None
    emergencyContactName: Optional[str] = None
    emergencyContactPhone: Optional[str] = None
    preferredPaymentMethod: Optional[str] = None
    additionalNotes: Optional[str] = None
    isActive: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone", "emergencyContactPhone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("availableDays")
    @classmethod
    def check_days(cls, v):
        return validate_weekday_names(v)


class GuideResponse(BaseModel):
    """Schema for guide response"""

    id: int
    userId: Optional[int] = None
    firstName: str
    lastName: str
    fullName: str
    email: Optional[str] = None
    phone: str
    bio: Optional[str] = None
    profileImageUrl: Optional[str] = None
    languages: list = []
    specialties: list = []
    assignedZones: list = []
    availableDays: list = []
    preferredTimes: list = []
    emergencyContactName: Optional[str] = None
    emergencyContactPhone: Optional[str] = None
    preferredPaymentMethod: Optional[str] = None
    additionalNotes: Optional[str] = None
    isActive: bool
    totalTours: int
    completedTours: int
    totalEarnings: float
    rating: float
    totalRatings: int
    completionRate: float
    createdAt: Optional[datetime] = None

    class Config:
        from_attributes = True


class AvailabilityCreate(BaseModel):
    dayOfWeek: Optional[int] = None
    date: Optional[dt.date] = None
    startTime: str
    endTime: str
    isAvailable: bool = True
    isRecurring: Optional[bool] = None

    @field_validator("startTime", "endTime")
    @classmethod
    def check_time(cls, v):
        return validate_time_string(v)

    @field_validator("dayOfWeek")
    @classmethod
    def check_day(cls, v):
        if v is not None and not 0 <= v <= 6:
            raise ValueError("dayOfWeek must be between 0 (Sunday) and 6 (Saturday)")
        return v

    @model_validator(mode="after")
    def check_entry(self):
        if self.dayOfWeek is None and self.date is None:
            raise ValueError("Either dayOfWeek or date is required")
        if self.startTime >= self.endTime:
            raise ValueError("startTime must be before endTime")
        return self


class AvailabilityResponse(BaseModel):
    id: int
    guideId: int
    dayOfWeek: Optional[int] = None
    date: Optional[dt.date] = None
    startTime: str
    endTime: str
    isAvailable: bool
    isRecurring: bool

    class Config:
        from_attributes = True


class GuideStatsResponse(BaseModel):
    guideId: int
    totalTours: int
    completedTours: int
    totalEarnings: float
    rating: float
    totalRatings: int
    completionRate: float
    computed: dict
    drift: dict


class SuggestionBreakdown(BaseModel):
    zoneExpertise: int
    availability: int
    workload: int
    rating: int


class GuideSuggestionResponse(BaseModel):
    guideId: int
    guideName: str
    score: int
    breakdown: SuggestionBreakdown
    reasons: list[str]
    topReason: str
    guide: GuideResponse


def guide_to_response(guide) -> GuideResponse:
    return GuideResponse(
        id=guide.id,
        userId=guide.user_id,
        firstName=guide.first_name,
        lastName=guide.last_name,
        fullName=guide.full_name,
        email=guide.email,
        phone=guide.phone,
        bio=guide.bio,
        profileImageUrl=guide.profile_image_url,
        languages=guide.languages or [],
        specialties=guide.specialties or [],
        assignedZones=guide.assigned_zones or [],
        availableDays=guide.available_days or [],
        preferredTimes=guide.preferred_times or [],
        emergencyContactName=guide.emergency_contact_name,
        emergencyContactPhone=guide.emergency_contact_phone,
        preferredPaymentMethod=guide.preferred_payment_method,
        additionalNotes=guide.additional_notes,
        isActive=guide.is_active,
        totalTours=guide.total_tours or 0,
        completedTours=guide.completed_tours or 0,
        totalEarnings=guide.total_earnings or 0,
        rating=guide.rating or 0,
        totalRatings=guide.total_ratings or 0,
        completionRate=completion_rate(guide.total_tours or 0, guide.completed_tours or 0),
        createdAt=guide.created_at,
    )


def availability_to_response(entry) -> AvailabilityResponse:
    return AvailabilityResponse(
        id=entry.id,
        guideId=entry.guide_id,
        dayOfWeek=entry.day_of_week,
        date=entry.date,
        startTime=entry.start_time,
        endTime=entry.end_time,
        isAvailable=entry.is_available,
        isRecurring=entry.is_recurring,
    )
