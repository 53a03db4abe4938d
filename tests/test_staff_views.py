import asyncio
from datetime import date, timedelta

from visit_dzaleka import email_service
from visit_dzaleka.models import EmailLog


class TestGuideViews:
    def test_leaderboard_order(self, client, visitor, make_guide):
        _, headers = visitor
        steady = make_guide(first_name="Steady", completed_tours=12, rating=4.2)
        star = make_guide(first_name="Star", completed_tours=12, rating=4.9)
        make_guide(first_name="Newcomer", completed_tours=2, rating=5.0)
        make_guide(first_name="Retired", completed_tours=40, is_active=False)

        board = client.get("/api/guides/leaderboard", params={"limit": 2}, headers=headers).json()

        assert [g["id"] for g in board] == [star.id, steady.id]

    def test_own_profile(self, client, make_user, make_guide):
        user, headers = make_user("guide")
        guide = make_guide(user_id=user.id)
        _, lonely_headers = make_user("guide")

        assert client.get("/api/guides/me", headers=headers).json()["id"] == guide.id
        missing = client.get("/api/guides/me", headers=lonely_headers)
        assert missing.status_code == 404
        assert missing.json()["detail"] == "No guide profile linked to this account"

    def test_guide_bookings(self, client, coordinator, make_user, make_guide, make_booking):
        _, staff_headers = coordinator
        user, headers = make_user("guide")
        guide = make_guide(user_id=user.id)
        other = make_guide()
        done = make_booking(assigned_guide_id=guide.id, status="completed")
        upcoming = make_booking(assigned_guide_id=guide.id, status="confirmed")
        make_booking(assigned_guide_id=other.id)

        mine = client.get(f"/api/guides/{guide.id}/bookings", headers=headers).json()
        assert {b["id"] for b in mine} == {done.id, upcoming.id}
        completed = client.get(
            f"/api/guides/{guide.id}/bookings", params={"status": "completed"}, headers=staff_headers
        ).json()
        assert [b["id"] for b in completed] == [done.id]
        assert client.get(f"/api/guides/{other.id}/bookings", headers=headers).status_code == 403


class TestBookingStaffViews:
    def test_today_for_staff_and_guides(self, client, coordinator, visitor, make_user, make_guide, make_booking):
        _, staff_headers = coordinator
        _, visitor_headers = visitor
        user, guide_headers = make_user("guide")
        _, unlinked_headers = make_user("guide")
        guide = make_guide(user_id=user.id)
        mine = make_booking(visit_date=date.today(), visit_time="09:00", assigned_guide_id=guide.id)
        unassigned = make_booking(visit_date=date.today(), visit_time="11:00")
        make_booking(visit_date=date.today(), status="cancelled")
        make_booking(visit_date=date.today() + timedelta(days=1))

        staff_view = client.get("/api/bookings/today", headers=staff_headers).json()
        assert [b["id"] for b in staff_view] == [mine.id, unassigned.id]
        assert [b["id"] for b in client.get("/api/bookings/today", headers=guide_headers).json()] == [mine.id]
        assert client.get("/api/bookings/today", headers=unlinked_headers).json() == []
        assert client.get("/api/bookings/today", headers=visitor_headers).status_code == 403

    def test_notes_are_versioned_and_logged(self, client, coordinator, make_booking):
        _, headers = coordinator
        booking = make_booking()
        url = f"/api/bookings/{booking.id}/notes"

        updated = client.patch(url, json={"adminNotes": "Wheelchair access", "version": 1}, headers=headers)
        assert updated.status_code == 200
        assert updated.json()["adminNotes"] == "Wheelchair access"
        assert updated.json()["version"] == 2

        stale = client.patch(url, json={"adminNotes": "Overwrite", "version": 1}, headers=headers)
        assert stale.status_code == 409

        activity = client.get(f"/api/bookings/{booking.id}/activity", headers=headers).json()
        assert [a["action"] for a in activity] == ["notes_updated"]
        assert activity[0]["userName"]

    def test_activity_visible_to_owner_only(self, client, coordinator, visitor, make_user, make_booking):
        _, staff_headers = coordinator
        owner, owner_headers = visitor
        _, stranger_headers = make_user("visitor")
        booking = make_booking(visitor_email=owner.email)
        client.patch(f"/api/bookings/{booking.id}/notes", json={"adminNotes": "Call ahead"}, headers=staff_headers)

        assert len(client.get(f"/api/bookings/{booking.id}/activity", headers=owner_headers).json()) == 1
        assert client.get(f"/api/bookings/{booking.id}/activity", headers=stranger_headers).status_code == 403

    def test_visitors_cannot_edit_notes(self, client, visitor, make_booking):
        user, headers = visitor
        booking = make_booking(visitor_email=user.email)
        response = client.patch(f"/api/bookings/{booking.id}/notes", json={"adminNotes": "x"}, headers=headers)
        assert response.status_code == 403


class TestEmailLog:
    def test_unconfigured_provider_records_failure(self, client, db, booking_payload):
        response = client.post("/api/bookings", json=booking_payload())
        assert response.status_code == 201

        db.expire_all()
        log = db.query(EmailLog).filter(EmailLog.template == "booking_confirmation").one()
        assert log.status == "failed"
        assert log.booking_id == response.json()["id"]
        assert log.recipient == "grace@example.com"
        assert log.error_message

    def test_successful_send_keeps_provider_id(self, db, monkeypatch):
        async def fake_send(to, subject, mjml_content):
            return {"id": "re_123"}

        monkeypatch.setattr(email_service, "send_email", fake_send)

        sent = asyncio.run(
            email_service.deliver_email("amina@example.com", "Hello", "<mjml></mjml>", template="welcome")
        )

        assert sent is True
        db.expire_all()
        log = db.query(EmailLog).one()
        assert (log.status, log.provider_id, log.template) == ("sent", "re_123", "welcome")
