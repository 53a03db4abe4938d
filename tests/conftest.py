import os
import tempfile
from datetime import date, timedelta

TEST_DB_PATH = os.path.join(tempfile.gettempdir(), "visit_dzaleka_test.db")

os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret-key-for-visit-dzaleka"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["STRIPE_SECRET_KEY"] = ""
for name in ("REDIS_URL", "RESEND_API_KEY", "STRIPE_WEBHOOK_SECRET", "ADMIN_NOTIFICATION_EMAIL"):
    os.environ.pop(name, None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from visit_dzaleka.database import Base, SessionLocal, engine  # noqa: E402
from visit_dzaleka.main import app  # noqa: E402
from visit_dzaleka.models import Booking, Guide, User  # noqa: E402
from visit_dzaleka.security_utils import create_access_token, hash_password  # noqa: E402

ALL_DAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
TEST_PASSWORD = "Sup3rSecret!"


@pytest.fixture(autouse=True)
def _tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(role: str = "visitor", email: str = None, **fields) -> tuple[User, dict]:
        counter["n"] += 1
        user = User(
            email=email or f"{role}{counter['n']}@example.com",
            password_hash=hash_password(TEST_PASSWORD),
            first_name=fields.pop("first_name", role.capitalize()),
            last_name=fields.pop("last_name", f"User{counter['n']}"),
            role=role,
            is_active=fields.pop("is_active", True),
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user, auth_headers(user)

    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user("admin")


@pytest.fixture
def coordinator(make_user):
    return make_user("coordinator")


@pytest.fixture
def visitor(make_user):
    return make_user("visitor")


@pytest.fixture
def make_guide(db):
    def _make_guide(**fields) -> Guide:
        guide = Guide(
            first_name=fields.pop("first_name", "Amani"),
            last_name=fields.pop("last_name", "Bahati"),
            phone=fields.pop("phone", "+265991234567"),
            available_days=fields.pop("available_days", list(ALL_DAYS)),
            assigned_zones=fields.pop("assigned_zones", []),
            is_active=fields.pop("is_active", True),
            **fields,
        )
        db.add(guide)
        db.commit()
        db.refresh(guide)
        return guide

    return _make_guide


@pytest.fixture
def make_booking(db):
    counter = {"n": 0}

    def _make_booking(**fields) -> Booking:
        counter["n"] += 1
        booking = Booking(
            booking_reference=fields.pop("booking_reference", f"DVS-2026-{counter['n']:06X}"),
            visitor_name=fields.pop("visitor_name", "Grace Visitor"),
            visitor_email=fields.pop("visitor_email", "grace@example.com"),
            visitor_phone=fields.pop("visitor_phone", "+265881112233"),
            visit_date=fields.pop("visit_date", date.today() + timedelta(days=7)),
            visit_time=fields.pop("visit_time", "10:00"),
            group_size=fields.pop("group_size", "individual"),
            number_of_people=fields.pop("number_of_people", 1),
            tour_type=fields.pop("tour_type", "standard"),
            total_amount=fields.pop("total_amount", 15000),
            status=fields.pop("status", "pending"),
            payment_method=fields.pop("payment_method", "cash"),
            payment_status=fields.pop("payment_status", "pending"),
            version=fields.pop("version", 1),
            **fields,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make_booking


@pytest.fixture
def booking_payload():
    def _booking_payload(**overrides) -> dict:
        payload = {
            "visitorName": "Grace Visitor",
            "visitorEmail": "grace@example.com",
            "visitorPhone": "+265 881 112 233",
            "visitDate": (date.today() + timedelta(days=10)).isoformat(),
            "visitTime": "10:00",
            "groupSize": "small_group",
            "numberOfPeople": 3,
            "tourType": "standard",
            "paymentMethod": "cash",
        }
        payload.update(overrides)
        return payload

    return _booking_payload
