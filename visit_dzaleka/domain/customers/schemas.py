"""Customer (CRM) schemas - Pydantic models for validation"""

from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...schemas import CONTACT_METHODS, CustomerProfileResponse
from ...utils.sanitization import sanitize_dict, sanitize_string
from ..bookings.schemas import BookingResponse


class CustomerUpdate(BaseModel):
    """Admin-editable CRM fields"""

    preferences: Optional[dict[str, Any]] = None
    adminNotes: Optional[str] = None
    tags: Optional[list[str]] = None
    dateOfBirth: Optional[date] = None
    address: Optional[str] = None
    country: Optional[str] = None
    preferredLanguage: Optional[str] = None
    preferredContactMethod: Optional[str] = None
    marketingConsent: Optional[bool] = None

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v):
        if v is None:
            return v
        # Keep first occurrence order, drop blanks
        seen = []
        for tag in v:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @field_validator("preferences")
    @classmethod
    def clean_preferences(cls, v):
        return sanitize_dict(v)

    @field_validator("adminNotes", "address")
    @classmethod
    def clean_text(cls, v):
        return sanitize_string(v)

    @field_validator("preferredContactMethod")
    @classmethod
    def check_contact_method(cls, v):
        if v is not None and v not in CONTACT_METHODS:
            raise ValueError(f"Invalid contact method. Must be one of: {', '.join(CONTACT_METHODS)}")
        return v


class CustomerStats(BaseModel):
    totalVisits: int
    totalSpend: float
    lastVisit: Optional[date] = None
    bookingCount: int


class CustomerSummary(CustomerProfileResponse):
    stats: CustomerStats


class CustomerDetail(BaseModel):
    user: CustomerProfileResponse
    bookings: list[BookingResponse]
    stats: CustomerStats
