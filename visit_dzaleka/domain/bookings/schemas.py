"""Booking domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_email, validate_phone, validate_time_string
from ...utils.sanitization import sanitize_string
from .pricing import GROUP_SIZES, TOUR_TYPES
from .state_machine import BOOKING_STATUSES, available_actions

PAYMENT_METHODS = ("airtel_money", "tnm_mpamba", "cash", "card")
PAYMENT_STATUSES = ("pending", "paid", "refunded")


def _one_of(value: Optional[str], allowed: tuple, label: str) -> Optional[str]:
    if value is not None and value not in allowed:
        raise ValueError(f"Invalid {label}. Must be one of: {', '.join(allowed)}")
    return value


class BookingCreate(BaseModel):
    """Schema for a public booking request"""

    visitorName: str = Field(min_length=1, max_length=255)
    visitorEmail: str
    visitorPhone: str
    visitorOrganization: Optional[str] = None
    visitDate: date
    visitTime: str
    groupSize: str
    numberOfPeople: int = Field(default=1, ge=1, le=500)
    tourType: str = "standard"
    customDuration: Optional[int] = Field(default=None, ge=1, le=12)
    meetingPointId: Optional[int] = None
    selectedZones: list[int] = []
    selectedInterests: list[str] = []
    specialRequests: Optional[str] = None
    accessibilityNeeds: Optional[str] = None
    referralSource: Optional[str] = None
    paymentMethod: str = "cash"
    source: str = "website"

    @field_validator("visitorEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("visitorPhone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("visitTime")
    @classmethod
    def check_time(cls, v):
        return validate_time_string(v)

    @field_validator("visitDate")
    @classmethod
    def check_date(cls, v):
        if v < date.today():
            raise ValueError("Visit date cannot be in the past")
        return v

    @field_validator("groupSize")
    @classmethod
    def check_group_size(cls, v):
        return _one_of(v, GROUP_SIZES, "group size")

    @field_validator("tourType")
    @classmethod
    def check_tour_type(cls, v):
        return _one_of(v, TOUR_TYPES, "tour type")

    @field_validator("paymentMethod")
    @classmethod
    def check_payment_method(cls, v):
        return _one_of(v, PAYMENT_METHODS, "payment method")

    @field_validator("specialRequests", "accessibilityNeeds", "visitorOrganization")
    @classmethod
    def clean_text(cls, v):
        return sanitize_string(v)


class BookingStatusUpdate(BaseModel):
    status: str
    adminNotes: Optional[str] = None
    version: Optional[int] = None

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        return _one_of(v, BOOKING_STATUSES, "status")


class BookingReschedule(BaseModel):
    visitDate: date
    visitTime: Optional[str] = None
    version: Optional[int] = None

    @field_validator("visitTime")
    @classmethod
    def check_time(cls, v):
        return validate_time_string(v)


class BookingAssign(BaseModel):
    guideId: Optional[int] = None
    version: Optional[int] = None


class BookingPaymentUpdate(BaseModel):
    paymentStatus: str
    paymentReference: Optional[str] = None
    paymentFees: Optional[float] = Field(default=None, ge=0)
    netAmount: Optional[float] = Field(default=None, ge=0)
    version: Optional[int] = None

    @field_validator("paymentStatus")
    @classmethod
    def check_payment_status(cls, v):
        return _one_of(v, PAYMENT_STATUSES, "payment status")


class BookingNotesUpdate(BaseModel):
    adminNotes: Optional[str] = None
    version: Optional[int] = None


class BookingActionRequest(BaseModel):
    """Body for check-in, start, check-out and no-show; all fields optional"""

    version: Optional[int] = None


class BookingCompleteRequest(BaseModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    version: Optional[int] = None


class RateGuideRequest(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None


class GuideSummary(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None


class BookingResponse(BaseModel):
    """Schema for booking response"""

    id: int
    bookingReference: str
    source: Optional[str] = None
    visitorName: str
    visitorEmail: str
    visitorPhone: str
    visitorUserId: Optional[int] = None
    visitorOrganization: Optional[str] = None
    visitDate: date
    visitTime: str
    groupSize: str
    numberOfPeople: int
    tourType: str
    customDuration: Optional[int] = None
    meetingPointId: Optional[int] = None
    selectedZones: list = []
    selectedInterests: list = []
    specialRequests: Optional[str] = None
    accessibilityNeeds: Optional[str] = None
    referralSource: Optional[str] = None
    paymentMethod: str
    paymentStatus: str
    paymentReference: Optional[str] = None
    paymentVerifiedAt: Optional[datetime] = None
    paymentFees: Optional[float] = None
    netAmount: Optional[float] = None
    totalAmount: float
    status: str
    assignedGuideId: Optional[int] = None
    assignedGuide: Optional[GuideSummary] = None
    adminNotes: Optional[str] = None
    checkInTime: Optional[datetime] = None
    checkOutTime: Optional[datetime] = None
    visitorRating: Optional[int] = None
    version: int
    availableActions: list[str] = []
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingVerifyResponse(BaseModel):
    """Public view of a booking looked up by reference"""

    bookingReference: str
    visitorName: str
    visitDate: date
    visitTime: str
    numberOfPeople: int
    tourType: str
    status: str
    paymentStatus: str
    meetingPoint: Optional[str] = None


class ActivityLogResponse(BaseModel):
    id: int
    bookingId: int
    userId: Optional[int] = None
    userName: Optional[str] = None
    action: str
    description: Optional[str] = None
    oldStatus: Optional[str] = None
    newStatus: Optional[str] = None
    createdAt: datetime

    class Config:
        from_attributes = True


class PriceCalculationRequest(BaseModel):
    groupSize: str
    tourType: str = "standard"
    customDuration: Optional[int] = Field(default=None, ge=1, le=12)

    @field_validator("groupSize")
    @classmethod
    def check_group_size(cls, v):
        return _one_of(v, GROUP_SIZES, "group size")

    @field_validator("tourType")
    @classmethod
    def check_tour_type(cls, v):
        return _one_of(v, TOUR_TYPES, "tour type")


def booking_to_response(booking) -> BookingResponse:
    guide = booking.guide
    return BookingResponse(
        id=booking.id,
        bookingReference=booking.booking_reference,
        source=booking.source,
        visitorName=booking.visitor_name,
        visitorEmail=booking.visitor_email,
        visitorPhone=booking.visitor_phone,
        visitorUserId=booking.visitor_user_id,
        visitorOrganization=booking.visitor_organization,
        visitDate=booking.visit_date,
        visitTime=booking.visit_time,
        groupSize=booking.group_size,
        numberOfPeople=booking.number_of_people,
        tourType=booking.tour_type,
        customDuration=booking.custom_duration,
        meetingPointId=booking.meeting_point_id,
        selectedZones=booking.selected_zones or [],
        selectedInterests=booking.selected_interests or [],
        specialRequests=booking.special_requests,
        accessibilityNeeds=booking.accessibility_needs,
        referralSource=booking.referral_source,
        paymentMethod=booking.payment_method,
        paymentStatus=booking.payment_status,
        paymentReference=booking.payment_reference,
        paymentVerifiedAt=booking.payment_verified_at,
        paymentFees=booking.payment_fees,
        netAmount=booking.net_amount,
        totalAmount=booking.total_amount or 0,
        status=booking.status,
        assignedGuideId=booking.assigned_guide_id,
        assignedGuide=(
            GuideSummary(id=guide.id, name=guide.full_name, phone=guide.phone, email=guide.email)
            if guide
            else None
        ),
        adminNotes=booking.admin_notes,
        checkInTime=booking.check_in_time,
        checkOutTime=booking.check_out_time,
        visitorRating=booking.visitor_rating,
        version=booking.version,
        availableActions=available_actions(booking.status),
        createdAt=booking.created_at,
        updatedAt=booking.updated_at,
    )


def booking_audit_values(booking) -> dict:
    """Fields whose changes are written to the audit trail"""

    def _iso(value):
        return value.isoformat() if value is not None else None

    return {
        "status": booking.status,
        "visitDate": _iso(booking.visit_date),
        "visitTime": booking.visit_time,
        "assignedGuideId": booking.assigned_guide_id,
        "paymentStatus": booking.payment_status,
        "paymentReference": booking.payment_reference,
        "paymentFees": booking.payment_fees,
        "netAmount": booking.net_amount,
        "adminNotes": booking.admin_notes,
        "checkInTime": _iso(booking.check_in_time),
        "checkOutTime": _iso(booking.check_out_time),
        "visitorRating": booking.visitor_rating,
    }
