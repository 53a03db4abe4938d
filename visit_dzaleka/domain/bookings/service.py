"""Booking service - Business logic for the booking lifecycle"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import is_staff
from ...models import Booking, BookingActivityLog, Guide, User
from ...services.notification_service import create_notification, notify_staff
from ...shared.validators import weekday_name
from ..guides import stats as guide_stats
from .pricing import price_for_booking
from .references import generate_unique_reference
from .repository import BookingRepository
from .schemas import BookingCreate, BookingPaymentUpdate
from .state_machine import SCHEDULABLE_STATUSES, ensure_transition

logger = logging.getLogger(__name__)

LOW_RATING_THRESHOLD = 3


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    # ------------------------------------------------------------------
    # Lookups and access control
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.repo.get_booking_by_id(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    @staticmethod
    def is_owner(booking: Booking, user: Optional[User]) -> bool:
        if not user:
            return False
        if booking.visitor_user_id == user.id:
            return True
        return (booking.visitor_email or "").lower() == (user.email or "").lower()

    def _guide_profile_id(self, user: User) -> Optional[int]:
        guide = self.repo.get_guide_for_user(self.db, user.id)
        return guide.id if guide else None

    def get_booking_for_user(self, booking_id: int, user: User) -> Booking:
        """Staff, the assigned guide, or the visitor who owns the booking"""
        booking = self.get_booking(booking_id)
        if is_staff(user) or user.role == "security":
            return booking
        if user.role == "guide" and booking.assigned_guide_id == self._guide_profile_id(user):
            return booking
        if self.is_owner(booking, user):
            return booking
        raise HTTPException(status_code=403, detail="You do not have access to this booking")

    def list_bookings(
        self,
        user: User,
        status: Optional[str] = None,
        guide_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
    ) -> list[Booking]:
        if user.role == "guide":
            # Guides only ever see their own tours
            own_id = self._guide_profile_id(user)
            if own_id is None:
                return []
            guide_id = own_id
        elif not is_staff(user):
            raise HTTPException(status_code=403, detail="Insufficient permissions")

        return self.repo.list_bookings(self.db, status, guide_id, date_from, date_to, search)

    def my_bookings(self, user: User) -> list[Booking]:
        return self.repo.list_visitor_bookings(self.db, user.id, user.email)

    def todays_bookings(self, user: User) -> list[Booking]:
        guide_id = self._guide_profile_id(user) if user.role == "guide" else None
        if user.role == "guide" and guide_id is None:
            return []
        return self.repo.list_bookings_on(self.db, date.today(), guide_id)

    def verify_booking(self, reference: str) -> Booking:
        booking = self.repo.get_booking_by_reference(self.db, reference)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    def get_activity(self, booking_id: int, user: User) -> list[BookingActivityLog]:
        self.get_booking_for_user(booking_id, user)
        return self.repo.get_activity(self.db, booking_id)

    # ------------------------------------------------------------------
    # Mutation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def check_version(booking: Booking, version: Optional[int]) -> None:
        """Optimistic concurrency: reject writes based on a stale read"""
        if version is not None and version != booking.version:
            logger.warning(
                f"⚠️ Version conflict on booking {booking.id}: sent {version}, current {booking.version}"
            )
            raise HTTPException(
                status_code=409,
                detail={
                    "message": "This booking was changed by someone else. Reload and try again.",
                    "code": "VERSION_CONFLICT",
                    "currentVersion": booking.version,
                },
            )

    @staticmethod
    def _bump(booking: Booking) -> None:
        booking.version = (booking.version or 0) + 1
        booking.updated_at = datetime.utcnow()

    def _log(
        self,
        booking: Booking,
        user: Optional[User],
        action: str,
        description: Optional[str] = None,
        old_status: Optional[str] = None,
        new_status: Optional[str] = None,
    ) -> None:
        """Activity row for a non-status action; old and new status are both the current one"""
        self.repo.add_activity(
            self.db,
            booking,
            user.id if user else None,
            action,
            old_status or booking.status,
            new_status or booking.status,
            description,
        )

    def _transition(
        self,
        booking: Booking,
        new_status: str,
        user: Optional[User],
        action: str,
        description: Optional[str] = None,
    ) -> bool:
        """
        Move a booking to a new status. The single place status changes happen.

        Validates the edge, applies guide counter side effects, appends exactly one
        activity row and bumps the version. Returns False for a same-status no-op.
        Does not commit.
        """
        old_status = booking.status
        try:
            ensure_transition(old_status, new_status)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        if old_status == new_status:
            return False

        booking.status = new_status
        if new_status == "cancelled":
            guide_stats.record_cancellation(booking.guide)
        elif new_status == "completed":
            guide_stats.record_completion(booking.guide, booking.total_amount)

        self.repo.add_activity(
            self.db,
            booking,
            user.id if user else None,
            action,
            old_status,
            new_status,
            description or f"Status changed from {old_status} to {new_status}",
        )
        self._bump(booking)
        logger.info(f"✅ Booking {booking.booking_reference}: {old_status} -> {new_status} ({action})")
        return True

    def _notify_visitor(self, booking: Booking, title: str, message: str) -> None:
        if booking.visitor_user_id:
            create_notification(
                self.db,
                booking.visitor_user_id,
                "booking_update",
                title,
                message,
                link="/my-bookings",
                related_id=str(booking.id),
            )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_booking(self, data: BookingCreate, user: Optional[User] = None) -> Booking:
        logger.info(f"📥 New booking request from {data.visitorEmail} for {data.visitDate}")

        if data.meetingPointId is not None:
            meeting_point = self.repo.get_meeting_point(self.db, data.meetingPointId)
            if not meeting_point or not meeting_point.is_active:
                raise HTTPException(status_code=400, detail="Invalid meeting point")

        try:
            total_amount = price_for_booking(
                self.db, data.groupSize, data.tourType, data.customDuration
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        booking = self.repo.create_booking(
            self.db,
            booking_reference=generate_unique_reference(self.db),
            source=data.source,
            visitor_name=data.visitorName.strip(),
            visitor_email=data.visitorEmail,
            visitor_phone=data.visitorPhone,
            visitor_user_id=user.id if user else None,
            visitor_organization=data.visitorOrganization,
            visit_date=data.visitDate,
            visit_time=data.visitTime,
            group_size=data.groupSize,
            number_of_people=data.numberOfPeople,
            tour_type=data.tourType,
            custom_duration=data.customDuration,
            meeting_point_id=data.meetingPointId,
            selected_zones=data.selectedZones,
            selected_interests=data.selectedInterests,
            special_requests=data.specialRequests,
            accessibility_needs=data.accessibilityNeeds,
            referral_source=data.referralSource,
            payment_method=data.paymentMethod,
            payment_status="pending",
            total_amount=total_amount,
            status="pending",
            version=1,
        )
        self.repo.add_activity(
            self.db,
            booking,
            user.id if user else None,
            "created",
            None,
            "pending",
            f"Booking created via {data.source}",
        )
        notify_staff(
            self.db,
            "new_booking",
            "New booking request",
            f"{booking.visitor_name} requested a tour on {booking.visit_date.isoformat()}",
            link=f"/admin/bookings/{booking.id}",
            related_id=str(booking.id),
        )
        self.repo.save(self.db, booking)
        logger.info(f"✅ Booking {booking.booking_reference} created (MWK {total_amount:,.0f})")
        return booking

    # ------------------------------------------------------------------
    # Staff operations
    # ------------------------------------------------------------------

    def update_status(
        self,
        booking_id: int,
        new_status: str,
        user: User,
        admin_notes: Optional[str] = None,
        version: Optional[int] = None,
    ) -> tuple[Booking, bool]:
        """Returns (booking, changed); changed is False for a same-status request"""
        booking = self.get_booking(booking_id)
        self.check_version(booking, version)

        action = {
            "confirmed": "confirmed",
            "in_progress": "started",
            "completed": "completed",
            "cancelled": "cancelled",
        }.get(new_status, "status_changed")
        changed = self._transition(booking, new_status, user, action)

        if admin_notes is not None and admin_notes != booking.admin_notes:
            booking.admin_notes = admin_notes
            if not changed:
                self._bump(booking)

        if changed:
            self._notify_visitor(
                booking,
                "Booking updated",
                f"Your booking {booking.booking_reference} is now {new_status.replace('_', ' ')}",
            )
        self.repo.save(self.db, booking)
        return booking, changed

    def reschedule(
        self,
        booking_id: int,
        visit_date: date,
        visit_time: Optional[str],
        user: User,
        version: Optional[int] = None,
    ) -> Booking:
        booking = self.get_booking(booking_id)
        self.check_version(booking, version)

        if booking.status not in SCHEDULABLE_STATUSES:
            raise HTTPException(
                status_code=400,
                detail=f"Cannot reschedule a booking that is {booking.status}",
            )
        if visit_date < date.today():
            raise HTTPException(status_code=400, detail="Cannot reschedule to a past date")

        new_time = visit_time or booking.visit_time
        old_label = f"{booking.visit_date.isoformat()} {booking.visit_time}"
        new_label = f"{visit_date.isoformat()} {new_time}"

        guide = booking.guide
        if guide:
            day = weekday_name(visit_date)
            if day not in (guide.available_days or []):
                logger.warning(
                    f"⚠️ Booking {booking.booking_reference} cannot move to {day}: guide {guide.id} is off"
                )
                raise HTTPException(
                    status_code=400,
                    detail=f"{guide.full_name} is not available on {day.capitalize()}s. Reassign the guide first.",
                )

        booking.visit_date = visit_date
        booking.visit_time = new_time
        # A moved visit needs a fresh reminder
        booking.reminder_sent_at = None
        self._log(booking, user, "rescheduled", f"Rescheduled from {old_label} to {new_label}")
        self._bump(booking)
        self._notify_visitor(
            booking,
            "Booking rescheduled",
            f"Your booking {booking.booking_reference} is now on {new_label}",
        )
        self.repo.save(self.db, booking)
        logger.info(f"✅ Booking {booking.booking_reference} rescheduled to {new_label}")
        return booking

    def validate_guide_for_booking(self, guide: Optional[Guide], booking: Booking) -> Guide:
        if not guide or guide.deleted_at is not None:
            raise HTTPException(status_code=404, detail="Guide not found")
        if not guide.is_active:
            raise HTTPException(status_code=400, detail="Guide is not active")
        day = weekday_name(booking.visit_date)
        if day not in (guide.available_days or []):
            raise HTTPException(
                status_code=400,
                detail=f"{guide.full_name} is not available on {day.capitalize()}s",
            )
        return guide

    def assign_guide(
        self,
        booking_id: int,
        guide_id: Optional[int],
        user: User,
        version: Optional[int] = None,
    ) -> tuple[Booking, bool]:
        """Returns (booking, assigned); assigned is True when a guide should be emailed"""
        booking = self.get_booking(booking_id)
        self.check_version(booking, version)

        if booking.status not in SCHEDULABLE_STATUSES:
            raise HTTPException(
                status_code=400,
                detail=f"Cannot change the guide of a booking that is {booking.status}",
            )

        old_guide_id = booking.assigned_guide_id
        if guide_id is None:
            if old_guide_id is None:
                return booking, False
            guide_stats.record_assignment(self.db, old_guide_id, None)
            booking.assigned_guide_id = None
            booking.guide = None
            self._log(booking, user, "guide_unassigned", "Guide removed from booking")
            self._bump(booking)
            self.repo.save(self.db, booking)
            return booking, False

        guide = self.validate_guide_for_booking(self.repo.get_guide(self.db, guide_id), booking)
        if old_guide_id == guide.id:
            return booking, False

        guide_stats.record_assignment(self.db, old_guide_id, guide.id)
        booking.assigned_guide_id = guide.id
        booking.guide = guide
        self._log(booking, user, "guide_assigned", f"Assigned to {guide.full_name}")
        self._bump(booking)

        if guide.user_id:
            create_notification(
                self.db,
                guide.user_id,
                "tour_assigned",
                "New tour assigned",
                f"You have been assigned {booking.booking_reference} on {booking.visit_date.isoformat()}",
                link=f"/admin/bookings/{booking.id}",
                related_id=str(booking.id),
            )
        self.repo.save(self.db, booking)
        logger.info(f"✅ Booking {booking.booking_reference} assigned to guide {guide.id}")
        return booking, True

    def update_payment(self, booking_id: int, data: BookingPaymentUpdate, user: User) -> Booking:
        booking = self.get_booking(booking_id)
        self.check_version(booking, data.version)

        booking.payment_status = data.paymentStatus
        if data.paymentReference is not None:
            booking.payment_reference = data.paymentReference
        if data.paymentFees is not None:
            booking.payment_fees = data.paymentFees

        if data.netAmount is not None:
            booking.net_amount = data.netAmount
        elif data.paymentFees is not None and data.paymentStatus == "paid":
            booking.net_amount = (booking.total_amount or 0) - data.paymentFees

        if data.paymentStatus == "paid":
            booking.payment_verified_by = user.id
            booking.payment_verified_at = datetime.utcnow()

        self._log(booking, user, "payment_updated", f"Payment marked {data.paymentStatus}")
        self._bump(booking)
        self.repo.save(self.db, booking)
        logger.info(f"💰 Booking {booking.booking_reference} payment set to {data.paymentStatus}")
        return booking

    def mark_paid(self, booking_id: int, reference: str, details: Optional[dict] = None) -> Optional[Booking]:
        """Gateway confirmation of a payment; idempotent"""
        booking = self.repo.get_booking_by_id(self.db, booking_id)
        if not booking:
            logger.warning(f"⚠️ Payment confirmation for unknown booking {booking_id}")
            return None
        if booking.payment_status == "paid" and booking.payment_reference == reference:
            return booking

        booking.payment_status = "paid"
        booking.payment_method = "card"
        booking.payment_reference = reference
        booking.payment_details = details
        booking.payment_verified_at = datetime.utcnow()
        self._log(booking, None, "payment_received", f"Card payment confirmed ({reference})")
        self._bump(booking)
        self.repo.save(self.db, booking)
        logger.info(f"💰 Booking {booking.booking_reference} paid via gateway")
        return booking

    def update_notes(
        self, booking_id: int, admin_notes: Optional[str], user: User, version: Optional[int] = None
    ) -> Booking:
        booking = self.get_booking(booking_id)
        self.check_version(booking, version)
        booking.admin_notes = admin_notes
        self._log(booking, user, "notes_updated", "Admin notes updated")
        self._bump(booking)
        self.repo.save(self.db, booking)
        return booking

    # ------------------------------------------------------------------
    # Day-of-visit operations
    # ------------------------------------------------------------------

    def check_in(self, booking_id: int, user: User, version: Optional[int] = None) -> Booking:
        booking = self.get_booking(booking_id)
        self.check_version(booking, version)

        if booking.status == "pending":
            self._transition(booking, "confirmed", user, "check_in", "Visitor checked in")
        elif booking.status == "confirmed":
            self._log(booking, user, "check_in", "Visitor checked in")
            self._bump(booking)
        else:
            raise HTTPException(
                status_code=400, detail=f"Cannot check in a booking that is {booking.status}"
            )

        booking.check_in_time = datetime.utcnow()
        booking.check_in_by = user.id
        self.repo.save(self.db, booking)
        return booking

    def start_tour(self, booking_id: int, user: User, version: Optional[int] = None) -> Booking:
        booking = self.get_booking(booking_id)
        self.check_version(booking, version)
        if booking.status != "confirmed":
            raise HTTPException(
                status_code=400, detail=f"Cannot start a tour that is {booking.status}"
            )
        self._transition(booking, "in_progress", user, "start", "Tour started")
        self.repo.save(self.db, booking)
        return booking

    def check_out(self, booking_id: int, user: User, version: Optional[int] = None) -> Booking:
        booking = self.get_booking(booking_id)
        self.check_version(booking, version)
        if booking.status != "in_progress":
            raise HTTPException(
                status_code=400, detail=f"Cannot check out a booking that is {booking.status}"
            )
        self._transition(booking, "completed", user, "check_out", "Visitor checked out")
        booking.check_out_time = datetime.utcnow()
        booking.check_out_by = user.id
        self.repo.save(self.db, booking)
        return booking

    def complete(
        self,
        booking_id: int,
        user: User,
        rating: Optional[int] = None,
        version: Optional[int] = None,
    ) -> Booking:
        booking = self.get_booking(booking_id)
        self.check_version(booking, version)
        if booking.status != "in_progress":
            raise HTTPException(
                status_code=400, detail=f"Cannot complete a booking that is {booking.status}"
            )
        self._transition(booking, "completed", user, "complete", "Tour completed")
        if rating is not None:
            booking.visitor_rating = rating
            guide_stats.record_rating(booking.guide, rating)
        self.repo.save(self.db, booking)
        return booking

    def no_show(self, booking_id: int, user: User, version: Optional[int] = None) -> Booking:
        booking = self.get_booking(booking_id)
        self.check_version(booking, version)
        if booking.status != "confirmed":
            raise HTTPException(
                status_code=400, detail="Only confirmed bookings can be marked as no-show"
            )
        self._transition(booking, "cancelled", user, "no_show", "Visitor did not arrive")
        self.repo.save(self.db, booking)
        return booking

    # ------------------------------------------------------------------
    # Visitor operations
    # ------------------------------------------------------------------

    def visitor_cancel(self, booking_id: int, user: User) -> Booking:
        booking = self.get_booking(booking_id)
        if not self.is_owner(booking, user):
            raise HTTPException(status_code=403, detail="You can only cancel your own bookings")
        if booking.status not in SCHEDULABLE_STATUSES:
            raise HTTPException(
                status_code=400, detail=f"Cannot cancel a booking that is {booking.status}"
            )

        self._transition(booking, "cancelled", user, "visitor_cancel", "Cancelled by visitor")
        notify_staff(
            self.db,
            "booking_cancelled",
            "Booking cancelled by visitor",
            f"{booking.visitor_name} cancelled {booking.booking_reference}",
            link=f"/admin/bookings/{booking.id}",
            related_id=str(booking.id),
        )
        self.repo.save(self.db, booking)
        return booking

    def rate_guide(
        self, booking_id: int, rating: int, user: User, comment: Optional[str] = None
    ) -> Booking:
        booking = self.get_booking(booking_id)
        if not self.is_owner(booking, user):
            raise HTTPException(status_code=403, detail="You can only rate your own tours")
        if booking.status != "completed":
            raise HTTPException(status_code=400, detail="Only completed tours can be rated")
        if not booking.assigned_guide_id:
            raise HTTPException(status_code=400, detail="This tour had no guide assigned")
        if booking.visitor_rating is not None:
            raise HTTPException(status_code=400, detail="This tour has already been rated")

        booking.visitor_rating = rating
        guide_stats.record_rating(booking.guide, rating)
        description = f"Visitor rated guide {rating}/5"
        if comment:
            description = f"{description}: {comment}"
        self._log(booking, user, "rated", description)
        self._bump(booking)

        if rating <= LOW_RATING_THRESHOLD:
            notify_staff(
                self.db,
                "low_rating",
                "Low tour rating",
                f"{booking.booking_reference} was rated {rating}/5 by {booking.visitor_name}",
                link=f"/admin/bookings/{booking.id}",
                related_id=str(booking.id),
                roles=("admin",),
            )

        self.repo.save(self.db, booking)
        logger.info(f"⭐ Booking {booking.booking_reference} rated {rating}/5")
        return booking
