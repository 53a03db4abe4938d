from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    # admin, coordinator, guide, security, visitor
    role = Column(String(20), default="visitor", nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)

    # Customer profile (admin-editable through the CRM)
    preferences = Column(JSON, nullable=True)
    admin_notes = Column(Text, nullable=True)
    tags = Column(JSON, default=list, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    address = Column(Text, nullable=True)
    country = Column(String(100), nullable=True)
    preferred_language = Column(String(50), nullable=True)
    preferred_contact_method = Column(String(50), nullable=True)  # email, phone, whatsapp
    marketing_consent = Column(Boolean, default=False, nullable=False)

    # Password reset
    password_reset_token = Column(String(255), nullable=True, index=True)
    password_reset_expires = Column(DateTime, nullable=True)

    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    guide_profile = relationship("Guide", back_populates="user", uselist=False)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class Guide(Base):
    __tablename__ = "guides"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=False)
    bio = Column(Text, nullable=True)
    profile_image_url = Column(String(500), nullable=True)

    languages = Column(JSON, default=list, nullable=True)
    specialties = Column(JSON, default=list, nullable=True)
    assigned_zones = Column(JSON, default=list, nullable=True)  # Zone ids
    available_days = Column(JSON, default=list, nullable=True)  # ["monday", "tuesday", ...]
    preferred_times = Column(JSON, default=list, nullable=True)  # ["morning", "afternoon"]

    emergency_contact_name = Column(String(255), nullable=True)
    emergency_contact_phone = Column(String(50), nullable=True)
    preferred_payment_method = Column(String(50), nullable=True)
    additional_notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Running stats, kept in step with booking writes (see domain/guides/stats.py)
    total_tours = Column(Integer, default=0, nullable=False)
    completed_tours = Column(Integer, default=0, nullable=False)
    total_earnings = Column(Float, default=0, nullable=False)
    rating = Column(Float, default=0, nullable=False)
    total_ratings = Column(Integer, default=0, nullable=False)

    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="guide_profile")
    availability = relationship(
        "GuideAvailability", back_populates="guide", cascade="all, delete-orphan"
    )
    bookings = relationship("Booking", back_populates="guide")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class GuideAvailability(Base):
    __tablename__ = "guide_availability"

    id = Column(Integer, primary_key=True, index=True)
    guide_id = Column(Integer, ForeignKey("guides.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=True)  # 0 = Sunday ... 6 = Saturday
    date = Column(Date, nullable=True)  # Specific date override
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    is_available = Column(Boolean, default=True, nullable=False)
    is_recurring = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    guide = relationship("Guide", back_populates="availability")


class Zone(Base):
    __tablename__ = "zones"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(100), nullable=True)
    color = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    points_of_interest = relationship("PointOfInterest", back_populates="zone")


class PointOfInterest(Base):
    __tablename__ = "points_of_interest"

    id = Column(Integer, primary_key=True, index=True)
    zone_id = Column(Integer, ForeignKey("zones.id"), nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    zone = relationship("Zone", back_populates="points_of_interest")


class MeetingPoint(Base):
    __tablename__ = "meeting_points"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class PricingConfig(Base):
    __tablename__ = "pricing_configs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    group_size = Column(String(20), unique=True, nullable=False)
    min_people = Column(Integer, nullable=False, default=1)
    max_people = Column(Integer, nullable=True)
    base_price = Column(Float, nullable=False)
    additional_hour_price = Column(Float, nullable=False, default=10000)
    currency = Column(String(10), nullable=False, default="MWK")
    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Booking(Base):
    """A visitor's reserved tour slot. Never hard-deleted; cancellation is a status."""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_reference = Column(String(20), unique=True, nullable=False, index=True)
    source = Column(String(50), default="website", nullable=False)

    # Visitor identity
    visitor_name = Column(String(255), nullable=False)
    visitor_email = Column(String(255), nullable=False, index=True)
    visitor_phone = Column(String(50), nullable=False)
    visitor_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    visitor_organization = Column(String(255), nullable=True)

    # Visit details
    visit_date = Column(Date, nullable=False, index=True)
    visit_time = Column(String(5), nullable=False)  # HH:MM
    group_size = Column(String(20), nullable=False)
    number_of_people = Column(Integer, default=1, nullable=False)
    tour_type = Column(String(20), default="standard", nullable=False)
    custom_duration = Column(Integer, nullable=True)  # Hours, custom tours only
    meeting_point_id = Column(Integer, ForeignKey("meeting_points.id"), nullable=True)
    selected_zones = Column(JSON, default=list, nullable=True)
    selected_interests = Column(JSON, default=list, nullable=True)
    special_requests = Column(Text, nullable=True)
    accessibility_needs = Column(Text, nullable=True)
    referral_source = Column(String(100), nullable=True)

    # Payment
    payment_method = Column(String(20), default="cash", nullable=False)
    payment_status = Column(String(20), default="pending", nullable=False, index=True)
    payment_reference = Column(String(255), nullable=True, index=True)
    payment_details = Column(JSON, nullable=True)
    payment_verified_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    payment_verified_at = Column(DateTime, nullable=True)
    payment_fees = Column(Float, nullable=True)
    net_amount = Column(Float, nullable=True)
    total_amount = Column(Float, default=0, nullable=False)

    # Lifecycle: pending -> confirmed -> in_progress -> completed, or cancelled
    status = Column(String(20), default="pending", nullable=False, index=True)
    assigned_guide_id = Column(Integer, ForeignKey("guides.id"), nullable=True, index=True)
    admin_notes = Column(Text, nullable=True)
    check_in_time = Column(DateTime, nullable=True)
    check_in_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    check_out_time = Column(DateTime, nullable=True)
    check_out_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    visitor_rating = Column(Integer, nullable=True)
    reminder_sent_at = Column(DateTime, nullable=True)

    # Optimistic concurrency counter, bumped on every write
    version = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    guide = relationship("Guide", back_populates="bookings")
    meeting_point = relationship("MeetingPoint")
    activity_logs = relationship(
        "BookingActivityLog",
        back_populates="booking",
        order_by="BookingActivityLog.id",
    )


class BookingActivityLog(Base):
    """Append-only trail of actions taken on a booking"""

    __tablename__ = "booking_activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    action = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)
    old_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    booking = relationship("Booking", back_populates="activity_logs")
    user = relationship("User")


class Incident(Base):
    __tablename__ = "incidents"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    severity = Column(String(20), default="low", nullable=False)  # low, medium, high, critical
    status = Column(String(20), default="reported", nullable=False)
    location = Column(String(255), nullable=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    reported_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    resolved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    resolution_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    action = Column(String(50), nullable=False)  # create, update, delete, login, verify, ...
    entity_type = Column(String(50), nullable=False, index=True)
    entity_id = Column(String(50), nullable=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String(500), nullable=True)
    related_id = Column(String(50), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class EmailLog(Base):
    __tablename__ = "email_logs"

    id = Column(Integer, primary_key=True, index=True)
    recipient = Column(String(255), nullable=False)
    subject = Column(String(500), nullable=False)
    template = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False)  # sent, failed
    error_message = Column(Text, nullable=True)
    provider_id = Column(String(255), nullable=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(30), default="other", nullable=False)
    priority = Column(String(20), default="medium", nullable=False)
    status = Column(String(20), default="pending", nullable=False, index=True)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    assigned_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    due_date = Column(Date, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    estimated_hours = Column(Float, nullable=True)
    actual_hours = Column(Float, nullable=True)
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class TrainingModule(Base):
    __tablename__ = "training_modules"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    content = Column(Text, nullable=True)
    external_url = Column(String(500), nullable=True)
    estimated_minutes = Column(Integer, default=15, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    is_required = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    target_audience = Column(String(20), default="guide", nullable=False)  # guide, visitor, both
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class GuideTrainingProgress(Base):
    __tablename__ = "guide_training_progress"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    module_id = Column(Integer, ForeignKey("training_modules.id"), nullable=False, index=True)
    status = Column(String(20), default="not_started", nullable=False)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    score = Column(Integer, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    module = relationship("TrainingModule")


class BlogPost(Base):
    __tablename__ = "blog_posts"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    content = Column(Text, nullable=False)
    excerpt = Column(Text, nullable=True)
    cover_image = Column(String(500), nullable=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    published = Column(Boolean, default=False, nullable=False)
    published_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = relationship("User")


class PageView(Base):
    __tablename__ = "page_views"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(100), nullable=False, index=True)
    page = Column(String(500), nullable=False)
    referrer = Column(String(500), nullable=True)
    user_agent = Column(Text, nullable=True)
    device_type = Column(String(20), nullable=True)  # desktop, mobile, tablet
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
