"""Booking router - FastAPI endpoints for the booking lifecycle"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_optional_user, require_role
from ...database import get_db
from ...email_service import (
    send_admin_new_booking_notice,
    send_booking_confirmation,
    send_booking_status_update,
    send_guide_assignment,
)
from ...models import User
from ...services.audit_service import record_audit
from ...services.booking_pdf import generate_booking_pdf
from .schemas import (
    ActivityLogResponse,
    BookingActionRequest,
    BookingAssign,
    BookingCompleteRequest,
    BookingCreate,
    BookingNotesUpdate,
    BookingPaymentUpdate,
    BookingReschedule,
    BookingResponse,
    BookingStatusUpdate,
    BookingVerifyResponse,
    RateGuideRequest,
    booking_audit_values,
    booking_to_response,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])

require_staff = require_role("admin", "coordinator")
require_operations = require_role("admin", "coordinator", "guide", "security")


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def audit_booking_change(
    db: Session, user: Optional[User], action: str, booking, before: dict, request: Optional[Request] = None
) -> None:
    """Write the fields an action changed to the audit trail; no-op writes are skipped"""
    after = booking_audit_values(booking)
    changed = [key for key in after if after[key] != before.get(key)]
    if not changed:
        return
    record_audit(
        db,
        user.id if user else None,
        action,
        "booking",
        booking.id,
        old_values={key: before.get(key) for key in changed} if before else None,
        new_values={key: after[key] for key in changed},
        request=request,
    )
    db.commit()


# ============================================================================
# PUBLIC & VISITOR ENDPOINTS
# ============================================================================


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: Optional[User] = Depends(get_optional_user),
    service: BookingService = Depends(get_booking_service),
):
    """Submit a booking request. Links the visitor account when signed in."""
    booking = service.create_booking(data, current_user)
    audit_booking_change(service.db, current_user, "create", booking, {}, request)
    background_tasks.add_task(send_booking_confirmation, booking.id)
    background_tasks.add_task(send_admin_new_booking_notice, booking.id)
    return booking_to_response(booking)


@router.get("/my-bookings", response_model=list[BookingResponse])
async def get_my_bookings(
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return [booking_to_response(b) for b in service.my_bookings(current_user)]


@router.get("/verify/{reference}", response_model=BookingVerifyResponse)
async def verify_booking(
    reference: str,
    service: BookingService = Depends(get_booking_service),
):
    """Public lookup by booking reference with limited fields"""
    booking = service.verify_booking(reference)
    return BookingVerifyResponse(
        bookingReference=booking.booking_reference,
        visitorName=booking.visitor_name,
        visitDate=booking.visit_date,
        visitTime=booking.visit_time,
        numberOfPeople=booking.number_of_people,
        tourType=booking.tour_type,
        status=booking.status,
        paymentStatus=booking.payment_status,
        meetingPoint=booking.meeting_point.name if booking.meeting_point else None,
    )


@router.post("/{booking_id}/visitor-cancel", response_model=BookingResponse)
async def visitor_cancel_booking(
    booking_id: int,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    before = booking_audit_values(service.get_booking(booking_id))
    booking = service.visitor_cancel(booking_id, current_user)
    audit_booking_change(service.db, current_user, "visitor_cancel", booking, before, request)
    return booking_to_response(booking)


@router.post("/{booking_id}/rate-guide", response_model=BookingResponse)
async def rate_guide(
    booking_id: int,
    data: RateGuideRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    before = booking_audit_values(service.get_booking(booking_id))
    booking = service.rate_guide(booking_id, data.rating, current_user, data.comment)
    audit_booking_change(service.db, current_user, "rate_guide", booking, before, request)
    return booking_to_response(booking)


# ============================================================================
# STAFF QUERIES
# ============================================================================


@router.get("", response_model=list[BookingResponse])
async def list_bookings(
    status: Optional[str] = Query(None),
    guideId: Optional[int] = Query(None),
    dateFrom: Optional[date] = Query(None),
    dateTo: Optional[date] = Query(None),
    search: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """List bookings. Guides only see tours assigned to them."""
    bookings = service.list_bookings(current_user, status, guideId, dateFrom, dateTo, search)
    return [booking_to_response(b) for b in bookings]


@router.get("/today", response_model=list[BookingResponse])
async def get_todays_bookings(
    current_user: User = Depends(require_operations),
    service: BookingService = Depends(get_booking_service),
):
    return [booking_to_response(b) for b in service.todays_bookings(current_user)]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return booking_to_response(service.get_booking_for_user(booking_id, current_user))


@router.get("/{booking_id}/activity", response_model=list[ActivityLogResponse])
async def get_booking_activity(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    logs = service.get_activity(booking_id, current_user)
    return [
        ActivityLogResponse(
            id=log.id,
            bookingId=log.booking_id,
            userId=log.user_id,
            userName=log.user.full_name if log.user else None,
            action=log.action,
            description=log.description,
            oldStatus=log.old_status,
            newStatus=log.new_status,
            createdAt=log.created_at,
        )
        for log in logs
    ]


@router.get("/{booking_id}/pdf")
async def download_booking_pdf(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.get_booking_for_user(booking_id, current_user)
    pdf_bytes = generate_booking_pdf(booking)
    filename = f"DzalekaVisit-{booking.booking_reference}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================================================
# STAFF MUTATIONS
# ============================================================================


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    data: BookingStatusUpdate,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_staff),
    service: BookingService = Depends(get_booking_service),
):
    before = booking_audit_values(service.get_booking(booking_id))
    booking, changed = service.update_status(
        booking_id, data.status, current_user, data.adminNotes, data.version
    )
    audit_booking_change(service.db, current_user, "update_status", booking, before, request)
    if changed:
        background_tasks.add_task(send_booking_status_update, booking.id)
    return booking_to_response(booking)


@router.patch("/{booking_id}/reschedule", response_model=BookingResponse)
async def reschedule_booking(
    booking_id: int,
    data: BookingReschedule,
    request: Request,
    current_user: User = Depends(require_staff),
    service: BookingService = Depends(get_booking_service),
):
    before = booking_audit_values(service.get_booking(booking_id))
    booking = service.reschedule(
        booking_id, data.visitDate, data.visitTime, current_user, data.version
    )
    audit_booking_change(service.db, current_user, "reschedule", booking, before, request)
    return booking_to_response(booking)


@router.patch("/{booking_id}/assign", response_model=BookingResponse)
async def assign_guide(
    booking_id: int,
    data: BookingAssign,
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_staff),
    service: BookingService = Depends(get_booking_service),
):
    before = booking_audit_values(service.get_booking(booking_id))
    booking, assigned = service.assign_guide(booking_id, data.guideId, current_user, data.version)
    audit_booking_change(service.db, current_user, "assign_guide", booking, before, request)
    if assigned:
        background_tasks.add_task(send_guide_assignment, booking.id)
    return booking_to_response(booking)


@router.patch("/{booking_id}/payment", response_model=BookingResponse)
async def update_payment(
    booking_id: int,
    data: BookingPaymentUpdate,
    request: Request,
    current_user: User = Depends(require_staff),
    service: BookingService = Depends(get_booking_service),
):
    before = booking_audit_values(service.get_booking(booking_id))
    booking = service.update_payment(booking_id, data, current_user)
    audit_booking_change(service.db, current_user, "verify_payment", booking, before, request)
    return booking_to_response(booking)


@router.patch("/{booking_id}/notes", response_model=BookingResponse)
async def update_notes(
    booking_id: int,
    data: BookingNotesUpdate,
    request: Request,
    current_user: User = Depends(require_staff),
    service: BookingService = Depends(get_booking_service),
):
    before = booking_audit_values(service.get_booking(booking_id))
    booking = service.update_notes(booking_id, data.adminNotes, current_user, data.version)
    audit_booking_change(service.db, current_user, "update_notes", booking, before, request)
    return booking_to_response(booking)


# ============================================================================
# DAY-OF-VISIT OPERATIONS
# ============================================================================


@router.post("/{booking_id}/check-in", response_model=BookingResponse)
async def check_in(
    booking_id: int,
    request: Request,
    data: Optional[BookingActionRequest] = None,
    current_user: User = Depends(require_operations),
    service: BookingService = Depends(get_booking_service),
):
    version = data.version if data else None
    before = booking_audit_values(service.get_booking(booking_id))
    booking = service.check_in(booking_id, current_user, version)
    audit_booking_change(service.db, current_user, "check_in", booking, before, request)
    return booking_to_response(booking)


@router.post("/{booking_id}/start", response_model=BookingResponse)
async def start_tour(
    booking_id: int,
    request: Request,
    data: Optional[BookingActionRequest] = None,
    current_user: User = Depends(require_operations),
    service: BookingService = Depends(get_booking_service),
):
    version = data.version if data else None
    before = booking_audit_values(service.get_booking(booking_id))
    booking = service.start_tour(booking_id, current_user, version)
    audit_booking_change(service.db, current_user, "start_tour", booking, before, request)
    return booking_to_response(booking)


@router.post("/{booking_id}/check-out", response_model=BookingResponse)
async def check_out(
    booking_id: int,
    request: Request,
    data: Optional[BookingActionRequest] = None,
    current_user: User = Depends(require_operations),
    service: BookingService = Depends(get_booking_service),
):
    version = data.version if data else None
    before = booking_audit_values(service.get_booking(booking_id))
    booking = service.check_out(booking_id, current_user, version)
    audit_booking_change(service.db, current_user, "check_out", booking, before, request)
    return booking_to_response(booking)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_tour(
    booking_id: int,
    request: Request,
    data: Optional[BookingCompleteRequest] = None,
    current_user: User = Depends(require_operations),
    service: BookingService = Depends(get_booking_service),
):
    rating = data.rating if data else None
    version = data.version if data else None
    before = booking_audit_values(service.get_booking(booking_id))
    booking = service.complete(booking_id, current_user, rating, version)
    audit_booking_change(service.db, current_user, "complete", booking, before, request)
    return booking_to_response(booking)


@router.post("/{booking_id}/no-show", response_model=BookingResponse)
async def mark_no_show(
    booking_id: int,
    request: Request,
    data: Optional[BookingActionRequest] = None,
    current_user: User = Depends(require_operations),
    service: BookingService = Depends(get_booking_service),
):
    version = data.version if data else None
    before = booking_audit_values(service.get_booking(booking_id))
    booking = service.no_show(booking_id, current_user, version)
    audit_booking_change(service.db, current_user, "no_show", booking, before, request)
    return booking_to_response(booking)
