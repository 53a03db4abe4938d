"""
MJML Email Templates
All booking emails share one responsive base layout
"""

from html import escape
from typing import Optional

from .config import FRONTEND_URL

# Dzaleka brand colours - earth orange on warm neutrals
THEME = {
    "primary": "#c2410c",
    "primary_dark": "#9a3412",
    "primary_light": "#ffedd5",
    "background": "#fafaf9",
    "card_bg": "#ffffff",
    "text_primary": "#1c1917",
    "text_secondary": "#44403c",
    "text_muted": "#78716c",
    "border": "#e7e5e4",
    "success": "#15803d",
    "warning": "#f59e0b",
    "danger": "#dc2626",
}

LOGO_URL = "https://visit.dzaleka.com/images/visit-dzaleka-logo.png"

STATUS_LABELS = {
    "pending": "Pending",
    "confirmed": "Confirmed",
    "in_progress": "In Progress",
    "completed": "Completed",
    "cancelled": "Cancelled",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 20px">
          <mj-column>
            <mj-image
              src="{LOGO_URL}"
              alt="Visit Dzaleka"
              width="140px"
              href="https://visit.dzaleka.com"
              padding="0" />
          </mj-column>
        </mj-section>

        <mj-section background-color="#ffffff" padding="0 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#a8a29e" padding="0">
              Visit Dzaleka · Dzaleka Refugee Camp, Dowa, Malawi
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _details_table(rows: list[tuple[str, str]]) -> str:
    cells = "".join(
        f'<tr><td style="padding:4px 12px 4px 0;color:{THEME["text_muted"]}">{label}</td>'
        f'<td style="padding:4px 0;font-weight:600">{escape(str(value))}</td></tr>'
        for label, value in rows
    )
    return f"""
    <mj-table font-size="15px" padding="8px 0 16px 0">
      {cells}
    </mj-table>
    """


def booking_confirmation_template(
    visitor_name: str,
    booking_reference: str,
    visit_date: str,
    visit_time: str,
    number_of_people: int,
    total_amount: float,
    currency: str = "MWK",
) -> str:
    """Sent to the visitor right after a booking request is received"""
    details = _details_table(
        [
            ("Reference", booking_reference),
            ("Date", visit_date),
            ("Time", visit_time),
            ("Visitors", str(number_of_people)),
            ("Total", f"{currency} {total_amount:,.0f}"),
        ]
    )
    content = f"""
    <mj-text>
      Hi {escape(visitor_name)},
    </mj-text>
    <mj-text>
      Thank you for booking a guided tour of Dzaleka. Your request has been received and
      our team will confirm it shortly.
    </mj-text>
    {details}
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      Keep your reference handy. You can use it to check your booking at any time.
    </mj-text>
    """
    return get_base_template(
        title="Booking Received",
        preview_text=f"Your booking {booking_reference} has been received",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/verify/{booking_reference}",
        cta_label="View Booking",
    )


def booking_status_update_template(
    visitor_name: str,
    booking_reference: str,
    new_status: str,
    visit_date: str,
    visit_time: str,
    admin_notes: Optional[str] = None,
) -> str:
    """Sent to the visitor when staff move the booking to a new status"""
    label = STATUS_LABELS.get(new_status, new_status)
    colour = THEME["danger"] if new_status == "cancelled" else THEME["success"]
    details = _details_table([("Date", visit_date), ("Time", visit_time)])
    notes_section = ""
    if admin_notes:
        notes_section = f"""
        <mj-text color="{THEME['text_muted']}" font-size="14px">
          Note from our team: {admin_notes}
        </mj-text>
        """

    content = f"""
    <mj-text>
      Hi {escape(visitor_name)},
    </mj-text>
    <mj-text>
      The status of your booking <strong>{booking_reference}</strong> is now
      <strong style="color:{colour}">{label}</strong>.
    </mj-text>
    {details}
    {notes_section}
    """
    return get_base_template(
        title=f"Booking {label}",
        preview_text=f"Booking {booking_reference} is now {label}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/verify/{booking_reference}",
        cta_label="View Booking",
    )


def guide_assignment_template(
    guide_name: str,
    booking_reference: str,
    visitor_name: str,
    visit_date: str,
    visit_time: str,
    number_of_people: int,
    meeting_point: Optional[str] = None,
) -> str:
    """Sent to a guide when a tour is assigned to them"""
    details = _details_table(
        [
            ("Reference", booking_reference),
            ("Visitor", visitor_name),
            ("Date", visit_date),
            ("Time", visit_time),
            ("Group", f"{number_of_people} people"),
            ("Meeting point", meeting_point or "Not provided"),
        ]
    )
    content = f"""
    <mj-text>
      Hi {escape(guide_name)},
    </mj-text>
    <mj-text>
      You have been assigned a new tour.
    </mj-text>
    {details}
    """
    return get_base_template(
        title="New Tour Assignment",
        preview_text=f"You have been assigned tour {booking_reference}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/admin/bookings",
        cta_label="Open Dashboard",
    )


def visit_reminder_template(
    visitor_name: str,
    booking_reference: str,
    visit_date: str,
    visit_time: str,
    meeting_point: Optional[str] = None,
    guide_name: Optional[str] = None,
) -> str:
    """Sent roughly a day before the visit"""
    details = _details_table(
        [
            ("Reference", booking_reference),
            ("Date", visit_date),
            ("Time", visit_time),
            ("Meeting point", meeting_point or "Not provided"),
            ("Guide", guide_name or "To be confirmed"),
        ]
    )
    content = f"""
    <mj-text>
      Hi {escape(visitor_name)},
    </mj-text>
    <mj-text>
      This is a friendly reminder that your tour of Dzaleka is tomorrow.
    </mj-text>
    {details}
    <mj-text color="{THEME['text_muted']}" font-size="14px">
      Please bring a valid ID and arrive ten minutes early.
    </mj-text>
    """
    return get_base_template(
        title="Your Visit Is Tomorrow",
        preview_text=f"Reminder for booking {booking_reference}",
        content_sections=content,
    )


def new_booking_admin_template(
    booking_reference: str,
    visitor_name: str,
    visitor_email: str,
    visit_date: str,
    visit_time: str,
    number_of_people: int,
    total_amount: float,
) -> str:
    """Sent to the admin inbox for every new booking request"""
    details = _details_table(
        [
            ("Reference", booking_reference),
            ("Visitor", visitor_name),
            ("Email", visitor_email),
            ("Date", visit_date),
            ("Time", visit_time),
            ("Visitors", str(number_of_people)),
            ("Total", f"MWK {total_amount:,.0f}"),
        ]
    )
    content = f"""
    <mj-text color="{THEME['text_muted']}" padding="0 0 24px 0">
      A new booking request needs review.
    </mj-text>
    {details}
    """
    return get_base_template(
        title="New Booking Request",
        preview_text=f"New booking {booking_reference} from {escape(visitor_name)}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/admin/bookings",
        cta_label="Review Booking",
    )


def password_reset_template(reset_link: str) -> str:
    """Password reset MJML template"""
    content = f"""
    <mj-text>
      We received a request to reset your password.
    </mj-text>
    <mj-text>
      Click the button below to create a new password. This link will expire in 1 hour.
    </mj-text>
    <mj-text font-size="13px" color="{THEME['text_muted']}">
      If you didn't request this, you can safely ignore this email. Your password won't be changed.
    </mj-text>
    """
    return get_base_template(
        title="Reset Your Password",
        preview_text="Reset your Visit Dzaleka password",
        content_sections=content,
        cta_url=reset_link,
        cta_label="Reset Password",
    )
