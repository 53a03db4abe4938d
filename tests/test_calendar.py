from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from visit_dzaleka.domain.scheduling.grid import (
    available_guides_for_day,
    build_month_grid,
    build_week_grid,
    drop_target,
    month_bounds,
    parse_guide_filter,
)
from visit_dzaleka.models import Booking

MARCH_2 = date(2026, 3, 2)  # a Monday


def _booking(booking_id, visit_date, visit_time="10:00", guide_id=None):
    return SimpleNamespace(
        id=booking_id, visit_date=visit_date, visit_time=visit_time, assigned_guide_id=guide_id
    )


def _guide(guide_id, days, is_active=True, deleted_at=None):
    return SimpleNamespace(id=guide_id, available_days=days, is_active=is_active, deleted_at=deleted_at)


class TestGrid:
    def test_guide_filter_parsing(self):
        assert parse_guide_filter(None) is None
        assert parse_guide_filter("all") is None
        assert parse_guide_filter("unassigned") == "unassigned"
        assert parse_guide_filter("12") == 12
        with pytest.raises(ValueError):
            parse_guide_filter("bob")

    def test_month_covers_whole_weeks(self):
        assert month_bounds(2026, 3) == (date(2026, 3, 1), date(2026, 4, 4))
        weeks = build_month_grid(2026, 3, [], [], MARCH_2)
        assert len(weeks) == 5
        assert all(len(week) == 7 for week in weeks)
        assert weeks[0][0]["date"] == date(2026, 3, 1)
        assert weeks[-1][-1]["inCurrentMonth"] is False
        assert weeks[0][1]["isToday"] is True

    def test_month_cells_group_bookings_by_day(self):
        bookings = [
            _booking(1, MARCH_2, "14:00", guide_id=5),
            _booking(2, MARCH_2, "09:00"),
            _booking(3, date(2026, 3, 3), "09:00", guide_id=6),
        ]
        weeks = build_month_grid(2026, 3, bookings, [], MARCH_2)
        cell = weeks[0][1]
        assert [b.id for b in cell["bookings"]] == [2, 1]

        unassigned = build_month_grid(2026, 3, bookings, [], MARCH_2, "unassigned")
        assert [b.id for b in unassigned[0][1]["bookings"]] == [2]

        by_guide = build_month_grid(2026, 3, bookings, [], MARCH_2, 6)
        assert [b.id for b in by_guide[0][2]["bookings"]] == [3]
        assert by_guide[0][1]["bookings"] == []

    def test_available_guides_work_that_weekday(self):
        guides = [
            _guide(1, ["monday", "tuesday"]),
            _guide(2, ["tuesday"]),
            _guide(3, ["monday"], is_active=False),
            _guide(4, ["monday"], deleted_at=date(2026, 1, 1)),
            _guide(5, None),
        ]
        assert [g.id for g in available_guides_for_day(guides, MARCH_2)] == [1]
        assert [g.id for g in available_guides_for_day(guides, MARCH_2 + timedelta(days=1))] == [1, 2]

    def test_week_slots_and_outside_hours(self):
        bookings = [
            _booking(1, MARCH_2, "07:30"),
            _booking(2, MARCH_2, "18:00"),
            _booking(3, MARCH_2, "19:15"),
            _booking(4, MARCH_2, "06:00"),
        ]
        days = build_week_grid(MARCH_2, bookings, [], MARCH_2)

        assert len(days) == 7
        assert days[0]["date"] == date(2026, 3, 1)
        monday = days[1]
        assert [slot["hour"] for slot in monday["slots"]] == list(range(7, 19))
        assert monday["slots"][0]["label"] == "07:00"
        assert [b.id for b in monday["slots"][0]["bookings"]] == [1]
        assert [b.id for b in monday["slots"][-1]["bookings"]] == [2]
        assert sorted(b.id for b in monday["outsideHours"]) == [3, 4]

    def test_month_drop_keeps_time(self):
        assert drop_target("month", MARCH_2, None, "14:30") == (MARCH_2, "14:30")

    def test_week_drop_moves_to_slot_hour(self):
        assert drop_target("week", MARCH_2, 9, "14:30") == (MARCH_2, "09:00")

    def test_week_drop_needs_valid_hour(self):
        with pytest.raises(ValueError):
            drop_target("week", MARCH_2, None, "10:00")
        with pytest.raises(ValueError):
            drop_target("week", MARCH_2, 21, "10:00")
        with pytest.raises(ValueError):
            drop_target("day", MARCH_2, 9, "10:00")


class TestCalendarApi:
    def test_month_view_hides_cancelled_by_default(self, client, coordinator, make_booking):
        _, headers = coordinator
        visit = date.today() + timedelta(days=3)
        kept = make_booking(visit_date=visit)
        make_booking(visit_date=visit, status="cancelled")

        params = {"year": visit.year, "month": visit.month}
        body = client.get("/api/calendar/month", params=params, headers=headers).json()
        cells = [cell for week in body["weeks"] for cell in week if cell["date"] == visit.isoformat()]
        assert [b["id"] for b in cells[0]["bookings"]] == [kept.id]

        params["includeCancelled"] = "true"
        body = client.get("/api/calendar/month", params=params, headers=headers).json()
        cells = [cell for week in body["weeks"] for cell in week if cell["date"] == visit.isoformat()]
        assert len(cells[0]["bookings"]) == 2

    def test_guide_sees_only_own_tours(self, client, make_user, make_guide, make_booking):
        user, headers = make_user("guide")
        own = make_guide(user_id=user.id)
        other = make_guide()
        visit = date.today() + timedelta(days=2)
        mine = make_booking(visit_date=visit, visit_time="09:00", assigned_guide_id=own.id)
        make_booking(visit_date=visit, visit_time="09:00", assigned_guide_id=other.id)

        body = client.get(
            "/api/calendar/week", params={"date": visit.isoformat(), "guide": "all"}, headers=headers
        ).json()

        day = next(d for d in body["days"] if d["date"] == visit.isoformat())
        nine = next(s for s in day["slots"] if s["hour"] == 9)
        assert [b["id"] for b in nine["bookings"]] == [mine.id]

    def test_visitors_have_no_calendar(self, client, visitor):
        _, headers = visitor
        today = date.today()
        response = client.get(
            "/api/calendar/month", params={"year": today.year, "month": today.month}, headers=headers
        )
        assert response.status_code == 403

    def test_available_guides_endpoint(self, client, coordinator, make_guide):
        _, headers = coordinator
        day = date.today() + timedelta(days=1)
        working = make_guide(first_name="Working")
        make_guide(first_name="Resting", available_days=[])
        response = client.get("/api/calendar/available-guides", params={"date": day.isoformat()}, headers=headers)
        assert response.json() == [{"id": working.id, "name": "Working Bahati"}]

    def test_week_drop_reschedules_through_booking_rules(self, client, db, coordinator, make_booking):
        _, headers = coordinator
        booking = make_booking(visit_time="10:00")
        target = date.today() + timedelta(days=12)

        response = client.post(
            "/api/calendar/reschedule",
            json={"bookingId": booking.id, "targetDate": target.isoformat(), "targetHour": 15, "view": "week", "version": 1},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["visitDate"] == target.isoformat()
        assert response.json()["visitTime"] == "15:00"
        assert response.json()["version"] == 2

    def test_drop_onto_guide_day_off_is_rejected(self, client, db, coordinator, make_booking, make_guide):
        _, headers = coordinator
        monday = date.today() + timedelta(days=2)
        while monday.weekday() != 0:
            monday += timedelta(days=1)
        guide = make_guide(available_days=["monday"])
        booking = make_booking(visit_date=monday, assigned_guide_id=guide.id)

        response = client.post(
            "/api/calendar/reschedule",
            json={"bookingId": booking.id, "targetDate": (monday + timedelta(days=2)).isoformat(), "view": "month"},
            headers=headers,
        )

        assert response.status_code == 400
        assert "Wednesdays" in response.json()["detail"]
        db.expire_all()
        assert db.get(Booking, booking.id).visit_date == monday

    def test_failed_drop_changes_nothing(self, client, db, coordinator, make_booking):
        _, headers = coordinator
        booking = make_booking(visit_time="10:00")
        original_date = booking.visit_date
        past = date.today() - timedelta(days=2)

        response = client.post(
            "/api/calendar/reschedule",
            json={"bookingId": booking.id, "targetDate": past.isoformat(), "view": "month"},
            headers=headers,
        )
        assert response.status_code == 400

        stale = client.post(
            "/api/calendar/reschedule",
            json={
                "bookingId": booking.id,
                "targetDate": (date.today() + timedelta(days=4)).isoformat(),
                "view": "month",
                "version": 9,
            },
            headers=headers,
        )
        assert stale.status_code == 409

        db.expire_all()
        unchanged = db.get(Booking, booking.id)
        assert unchanged.visit_date == original_date
        assert unchanged.version == 1
