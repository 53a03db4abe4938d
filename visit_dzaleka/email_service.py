"""
Email service using Resend with MJML templates
Booking emails are best-effort: deliver_email records every attempt in email_logs and never raises
"""

import logging
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import ADMIN_NOTIFICATION_EMAIL, EMAIL_FROM_ADDRESS, FRONTEND_URL, RESEND_API_KEY
from .database import SessionLocal
from .email_templates import (
    booking_confirmation_template,
    booking_status_update_template,
    guide_assignment_template,
    new_booking_admin_template,
    password_reset_template,
    visit_reminder_template,
)
from .models import Booking, EmailLog

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns an object/dict with 'html' and 'errors'
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        html = getattr(result, "html", None)
        if html is not None:
            if getattr(result, "errors", None):
                logger.warning(f"MJML compilation warnings: {result.errors}")
            return html
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Resend response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    try:
        logger.info(f"📧 Sending email via Resend to: {to}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


def _record_email(
    recipient: str,
    subject: str,
    template: str,
    status: str,
    booking_id: Optional[int],
    provider_id: Optional[str] = None,
    error_message: Optional[str] = None,
) -> None:
    db = SessionLocal()
    try:
        db.add(
            EmailLog(
                recipient=recipient,
                subject=subject,
                template=template,
                status=status,
                booking_id=booking_id,
                provider_id=provider_id,
                error_message=error_message,
            )
        )
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to write email log for {recipient}: {e}")
    finally:
        db.close()


async def deliver_email(
    to: str,
    subject: str,
    mjml_content: str,
    template: str,
    booking_id: Optional[int] = None,
) -> bool:
    """
    Send an email and record the attempt. Returns True when sent.
    Failures are logged and stored, never raised, so callers can fire and forget.
    """
    try:
        response = await send_email(to=to, subject=subject, mjml_content=mjml_content)
    except Exception as e:
        logger.warning(f"⚠️ Email '{template}' to {to} failed: {e}")
        _record_email(to, subject, template, "failed", booking_id, error_message=str(e))
        return False

    provider_id = response.get("id") if isinstance(response, dict) else None
    _record_email(to, subject, template, "sent", booking_id, provider_id=provider_id)
    return True


# ============================================
# Booking emails
# Called from BackgroundTasks after the request session has closed,
# so each one loads what it needs by id
# ============================================


def _booking_context(booking_id: int) -> Optional[dict]:
    db = SessionLocal()
    try:
        booking = db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            logger.warning(f"⚠️ Booking {booking_id} vanished before its email was sent")
            return None
        return {
            "id": booking.id,
            "reference": booking.booking_reference,
            "visitor_name": booking.visitor_name,
            "visitor_email": booking.visitor_email,
            "visit_date": booking.visit_date.isoformat(),
            "visit_time": booking.visit_time,
            "number_of_people": booking.number_of_people,
            "total_amount": booking.total_amount or 0,
            "status": booking.status,
            "admin_notes": booking.admin_notes,
            "meeting_point": booking.meeting_point.name if booking.meeting_point else None,
            "guide_name": booking.guide.full_name if booking.guide else None,
            "guide_first_name": booking.guide.first_name if booking.guide else None,
            "guide_email": booking.guide.email if booking.guide else None,
        }
    finally:
        db.close()


async def send_booking_confirmation(booking_id: int) -> bool:
    ctx = _booking_context(booking_id)
    if not ctx:
        return False
    mjml_content = booking_confirmation_template(
        visitor_name=ctx["visitor_name"],
        booking_reference=ctx["reference"],
        visit_date=ctx["visit_date"],
        visit_time=ctx["visit_time"],
        number_of_people=ctx["number_of_people"],
        total_amount=ctx["total_amount"],
    )
    return await deliver_email(
        to=ctx["visitor_email"],
        subject=f"Booking received - {ctx['reference']}",
        mjml_content=mjml_content,
        template="booking_confirmation",
        booking_id=booking_id,
    )


async def send_admin_new_booking_notice(booking_id: int) -> bool:
    if not ADMIN_NOTIFICATION_EMAIL:
        logger.debug("ADMIN_NOTIFICATION_EMAIL not set, skipping admin booking notice")
        return False
    ctx = _booking_context(booking_id)
    if not ctx:
        return False
    mjml_content = new_booking_admin_template(
        booking_reference=ctx["reference"],
        visitor_name=ctx["visitor_name"],
        visitor_email=ctx["visitor_email"],
        visit_date=ctx["visit_date"],
        visit_time=ctx["visit_time"],
        number_of_people=ctx["number_of_people"],
        total_amount=ctx["total_amount"],
    )
    return await deliver_email(
        to=ADMIN_NOTIFICATION_EMAIL,
        subject=f"New booking request - {ctx['reference']}",
        mjml_content=mjml_content,
        template="admin_new_booking",
        booking_id=booking_id,
    )


async def send_booking_status_update(booking_id: int) -> bool:
    ctx = _booking_context(booking_id)
    if not ctx:
        return False
    mjml_content = booking_status_update_template(
        visitor_name=ctx["visitor_name"],
        booking_reference=ctx["reference"],
        new_status=ctx["status"],
        visit_date=ctx["visit_date"],
        visit_time=ctx["visit_time"],
        admin_notes=ctx["admin_notes"],
    )
    return await deliver_email(
        to=ctx["visitor_email"],
        subject=f"Booking {ctx['reference']} update",
        mjml_content=mjml_content,
        template="booking_status_update",
        booking_id=booking_id,
    )


async def send_guide_assignment(booking_id: int) -> bool:
    ctx = _booking_context(booking_id)
    if not ctx:
        return False
    if not ctx["guide_email"]:
        logger.info(f"Booking {booking_id} guide has no email, skipping assignment email")
        return False
    mjml_content = guide_assignment_template(
        guide_name=ctx["guide_first_name"],
        booking_reference=ctx["reference"],
        visitor_name=ctx["visitor_name"],
        visit_date=ctx["visit_date"],
        visit_time=ctx["visit_time"],
        number_of_people=ctx["number_of_people"],
        meeting_point=ctx["meeting_point"],
    )
    return await deliver_email(
        to=ctx["guide_email"],
        subject=f"New tour assignment - {ctx['reference']}",
        mjml_content=mjml_content,
        template="guide_assignment",
        booking_id=booking_id,
    )


async def send_visit_reminder(booking_id: int) -> bool:
    ctx = _booking_context(booking_id)
    if not ctx:
        return False
    mjml_content = visit_reminder_template(
        visitor_name=ctx["visitor_name"],
        booking_reference=ctx["reference"],
        visit_date=ctx["visit_date"],
        visit_time=ctx["visit_time"],
        meeting_point=ctx["meeting_point"],
        guide_name=ctx["guide_name"],
    )
    return await deliver_email(
        to=ctx["visitor_email"],
        subject=f"Reminder: your Dzaleka visit on {ctx['visit_date']}",
        mjml_content=mjml_content,
        template="visit_reminder",
        booking_id=booking_id,
    )


async def send_password_reset_email(to: str, token: str) -> bool:
    reset_link = f"{FRONTEND_URL}/reset-password?token={token}"
    return await deliver_email(
        to=to,
        subject="Reset Your Password - Visit Dzaleka",
        mjml_content=password_reset_template(reset_link),
        template="password_reset",
    )
