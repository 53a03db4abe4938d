"""
Booking Confirmation PDF Generator
Renders a one-page confirmation from the booking's current fields
"""

import io
import logging
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..models import Booking

logger = logging.getLogger(__name__)

NOT_PROVIDED = "Not provided"

TOUR_TYPE_NAMES = {
    "standard": "Standard Tour (2 hours)",
    "extended": "Extended Tour (4 hours)",
    "custom": "Custom Tour",
}

STATUS_COLOURS = {
    "confirmed": "#22c55e",
    "pending": "#eab308",
    "cancelled": "#ef4444",
    "completed": "#3b82f6",
    "in_progress": "#0ea5e9",
}


def format_amount(amount) -> str:
    """MWK amount with thousands separators; missing or zero amounts print as MWK 0"""
    if not amount:
        return "MWK 0"
    return f"MWK {amount:,.0f}"


def format_payment_method(method) -> str:
    if not method:
        return "Cash"
    return method.replace("_", " ").title()


def booking_pdf_fields(booking: Booking) -> dict[str, str]:
    """Display values for every field printed on the confirmation"""
    people = booking.number_of_people or 1
    if booking.tour_type == "custom" and booking.custom_duration:
        tour_type = f"Custom Tour ({booking.custom_duration} hours)"
    else:
        tour_type = TOUR_TYPE_NAMES.get(booking.tour_type, booking.tour_type or "Standard Tour")

    return {
        "reference": booking.booking_reference or "Pending Confirmation",
        "status": (booking.status or "pending").replace("_", " ").upper(),
        "visitor_name": booking.visitor_name or NOT_PROVIDED,
        "visitor_email": booking.visitor_email or NOT_PROVIDED,
        "visitor_phone": booking.visitor_phone or NOT_PROVIDED,
        "visit_date": booking.visit_date.strftime("%A, %B %d, %Y") if booking.visit_date else NOT_PROVIDED,
        "visit_time": booking.visit_time or NOT_PROVIDED,
        "tour_type": tour_type,
        "group_size": f"{people} {'person' if people == 1 else 'people'}",
        "meeting_point": booking.meeting_point.name if booking.meeting_point else NOT_PROVIDED,
        "guide": booking.guide.full_name if booking.guide else NOT_PROVIDED,
        "total_amount": format_amount(booking.total_amount),
        "payment_status": (booking.payment_status or "pending").capitalize(),
        "payment_method": format_payment_method(booking.payment_method),
    }


class BookingPDFGenerator:
    """Generate the booking confirmation PDF"""

    def __init__(self, booking: Booking):
        self.booking = booking
        self.fields = booking_pdf_fields(booking)

        self.page_width, self.page_height = A4
        self.margin = 0.75 * inch
        self.content_width = self.page_width - (2 * self.margin)

        self.brand_color = colors.HexColor("#0284c7")
        self.dark_gray = colors.HexColor("#1f2937")
        self.light_gray = colors.HexColor("#f8fafc")

    def generate(self) -> bytes:
        """Generate PDF and return bytes"""
        logger.info(f"📄 Generating confirmation PDF for booking {self.booking.id}")

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=self.margin,
            leftMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=f"Booking Confirmation - {self.fields['reference']}",
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "BookingTitle",
            parent=styles["Heading1"],
            fontSize=24,
            textColor=self.brand_color,
            spaceAfter=4,
            alignment=1,
        )
        subtitle_style = ParagraphStyle(
            "BookingSubtitle",
            parent=styles["Normal"],
            fontSize=12,
            textColor=self.dark_gray,
            alignment=1,
            spaceAfter=18,
        )
        heading_style = ParagraphStyle(
            "BookingHeading",
            parent=styles["Heading2"],
            fontSize=12,
            textColor=self.dark_gray,
            spaceBefore=14,
            spaceAfter=6,
        )
        body_style = ParagraphStyle(
            "BookingBody",
            parent=styles["Normal"],
            fontSize=10,
            textColor=self.dark_gray,
        )

        story = [
            Paragraph("DZALEKA VISIT", title_style),
            Paragraph("Tour Booking Confirmation", subtitle_style),
        ]

        status_colour = colors.HexColor(STATUS_COLOURS.get(self.booking.status, "#6b7280"))
        ref_table = Table(
            [["BOOKING REFERENCE", "STATUS"], [self.fields["reference"], self.fields["status"]]],
            colWidths=[self.content_width * 0.65, self.content_width * 0.35],
        )
        ref_table.setStyle(
            TableStyle(
                [
                    ("FONT", (0, 0), (-1, 0), "Helvetica", 9),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.grey),
                    ("FONT", (0, 1), (0, 1), "Helvetica-Bold", 18),
                    ("FONT", (1, 1), (1, 1), "Helvetica-Bold", 11),
                    ("TEXTCOLOR", (1, 1), (1, 1), status_colour),
                    ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
                ]
            )
        )
        story.append(ref_table)
        story.append(Spacer(1, 0.2 * inch))

        sections = [
            (
                "Visitor Details",
                [
                    ("Full Name", self.fields["visitor_name"]),
                    ("Email Address", self.fields["visitor_email"]),
                    ("Phone Number", self.fields["visitor_phone"]),
                ],
            ),
            (
                "Tour Details",
                [
                    ("Visit Date", self.fields["visit_date"]),
                    ("Start Time", self.fields["visit_time"]),
                    ("Tour Type", self.fields["tour_type"]),
                    ("Group Size", self.fields["group_size"]),
                    ("Meeting Point", self.fields["meeting_point"]),
                    ("Guide", self.fields["guide"]),
                ],
            ),
            (
                "Payment Details",
                [
                    ("Total Amount", self.fields["total_amount"]),
                    ("Payment Status", self.fields["payment_status"]),
                    ("Payment Method", self.fields["payment_method"]),
                ],
            ),
        ]

        for heading, rows in sections:
            story.append(Paragraph(heading.upper(), heading_style))
            table = Table(rows, colWidths=[1.8 * inch, self.content_width - 1.8 * inch])
            table.setStyle(
                TableStyle(
                    [
                        ("FONT", (0, 0), (0, -1), "Helvetica", 9),
                        ("TEXTCOLOR", (0, 0), (0, -1), colors.grey),
                        ("FONT", (1, 0), (1, -1), "Helvetica", 10),
                        ("TEXTCOLOR", (1, 0), (1, -1), self.dark_gray),
                        ("ROWBACKGROUNDS", (0, 0), (-1, -1), [colors.white, self.light_gray]),
                        ("VALIGN", (0, 0), (-1, -1), "TOP"),
                        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
                        ("TOPPADDING", (0, 0), (-1, -1), 6),
                    ]
                )
            )
            story.append(table)

        if self.booking.special_requests:
            story.append(Paragraph("SPECIAL REQUESTS", heading_style))
            story.append(Paragraph(escape(self.booking.special_requests), body_style))

        story.append(Spacer(1, 0.4 * inch))
        story.append(
            Paragraph(
                "<b>Thank you for choosing Dzaleka Visit!</b><br/>"
                "Questions? Contact us at info@mail.dzaleka.com · visit.dzaleka.com",
                ParagraphStyle("Footer", parent=body_style, alignment=1, fontSize=9),
            )
        )

        doc.build(story, onFirstPage=self._add_page_number, onLaterPages=self._add_page_number)

        pdf_bytes = buffer.getvalue()
        buffer.close()
        logger.info(f"✅ Confirmation PDF generated ({len(pdf_bytes)} bytes)")
        return pdf_bytes

    def _add_page_number(self, canvas_obj, doc):
        """Add page numbers to PDF"""
        page_num = canvas_obj.getPageNumber()
        canvas_obj.setFont("Helvetica", 9)
        canvas_obj.setFillColor(colors.grey)
        canvas_obj.drawRightString(self.page_width - self.margin, self.margin / 2, f"Page {page_num}")


def generate_booking_pdf(booking: Booking) -> bytes:
    return BookingPDFGenerator(booking).generate()
