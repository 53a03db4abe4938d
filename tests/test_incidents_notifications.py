from visit_dzaleka.models import Notification
from visit_dzaleka.services.notification_service import create_notification, notify_staff


class TestIncidents:
    def test_report_alerts_admins_and_security(self, client, db, admin, coordinator, make_user):
        admin_user, _ = admin
        coordinator_user, _ = coordinator
        guard, _ = make_user("security")
        reporter, headers = make_user("guide")

        response = client.post(
            "/api/incidents",
            json={"title": "Lost visitor", "description": "Separated near the market", "severity": "high"},
            headers=headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "reported"
        assert body["reportedBy"] == reporter.id
        alerted = {n.user_id for n in db.query(Notification).filter(Notification.type == "incident_reported")}
        assert alerted == {admin_user.id, guard.id}
        assert coordinator_user.id not in alerted

    def test_report_validation(self, client, make_booking, visitor):
        _, headers = visitor
        bad_severity = {"title": "X", "description": "Y", "severity": "apocalyptic"}
        assert client.post("/api/incidents", json=bad_severity, headers=headers).status_code == 422
        missing_booking = {"title": "X", "description": "Y", "bookingId": 999}
        assert client.post("/api/incidents", json=missing_booking, headers=headers).status_code == 400

        booking = make_booking()
        linked = client.post(
            "/api/incidents", json={"title": "X", "description": "Y", "bookingId": booking.id}, headers=headers
        )
        assert linked.json()["bookingId"] == booking.id

    def test_reporters_see_only_their_own(self, client, make_user):
        _, guard_headers = make_user("security")
        _, first = make_user("guide")
        _, second = make_user("guide")
        mine = client.post("/api/incidents", json={"title": "Mine", "description": "A"}, headers=first).json()
        client.post("/api/incidents", json={"title": "Theirs", "description": "B"}, headers=second)

        assert [i["id"] for i in client.get("/api/incidents", headers=first).json()] == [mine["id"]]
        assert len(client.get("/api/incidents", headers=guard_headers).json()) == 2
        assert client.get(f"/api/incidents/{mine['id']}", headers=first).status_code == 403

    def test_status_changes_track_resolution(self, client, make_user):
        guard, headers = make_user("security")
        incident = client.post("/api/incidents", json={"title": "Fence", "description": "Broken"}, headers=headers).json()
        url = f"/api/incidents/{incident['id']}"

        investigating = client.patch(url, json={"status": "investigating"}, headers=headers).json()
        assert investigating["resolvedAt"] is None

        closed = client.patch(url, json={"status": "closed"}, headers=headers).json()
        assert closed["resolvedBy"] == guard.id
        assert closed["resolvedAt"] is not None

        reopened = client.patch(url, json={"status": "reported"}, headers=headers).json()
        assert reopened["resolvedAt"] is None
        assert reopened["resolvedBy"] is None

        assert client.patch(url, json={"status": "lost"}, headers=headers).status_code == 422

    def test_resolve_once(self, client, coordinator):
        user, headers = coordinator
        incident = client.post("/api/incidents", json={"title": "Spill", "description": "Water"}, headers=headers).json()
        url = f"/api/incidents/{incident['id']}/resolve"

        resolved = client.post(url, json={"resolutionNotes": "Cleaned <up>"}, headers=headers)
        assert resolved.status_code == 200
        assert resolved.json()["status"] == "resolved"
        assert resolved.json()["resolutionNotes"] == "Cleaned &lt;up&gt;"
        assert resolved.json()["resolvedBy"] == user.id

        assert client.post(url, headers=headers).status_code == 400

    def test_guides_cannot_manage(self, client, make_user):
        _, headers = make_user("guide")
        incident = client.post("/api/incidents", json={"title": "X", "description": "Y"}, headers=headers).json()
        assert client.post(f"/api/incidents/{incident['id']}/resolve", headers=headers).status_code == 403


class TestNotifications:
    def test_notify_staff_targets_active_staff(self, db, admin, coordinator, make_user):
        make_user("admin", is_active=False)
        make_user("guide")

        created = notify_staff(db, "new_booking", "New booking", "A booking arrived")
        db.commit()

        assert created == 2
        recipients = {n.user_id for n in db.query(Notification)}
        assert recipients == {admin[0].id, coordinator[0].id}

    def test_inbox_flow(self, client, db, visitor, make_user):
        user, headers = visitor
        other, other_headers = make_user("visitor")
        for i in range(3):
            create_notification(db, user.id, "booking_update", f"Update {i}", "Your booking changed")
        create_notification(db, other.id, "booking_update", "Not yours", "Hidden")
        db.commit()

        inbox = client.get("/api/notifications", headers=headers).json()
        assert [n["title"] for n in inbox] == ["Update 2", "Update 1", "Update 0"]
        assert client.get("/api/notifications/unread-count", headers=headers).json() == {"count": 3}

        first = inbox[0]["id"]
        assert client.patch(f"/api/notifications/{first}/read", headers=headers).json()["isRead"] is True
        unread = client.get("/api/notifications", params={"unreadOnly": "true"}, headers=headers).json()
        assert len(unread) == 2

        assert client.patch(f"/api/notifications/{first}/read", headers=other_headers).status_code == 404

        marked = client.post("/api/notifications/read-all", headers=headers).json()
        assert marked["updated"] == 2
        assert client.get("/api/notifications/unread-count", headers=headers).json() == {"count": 0}

        assert client.delete(f"/api/notifications/{first}", headers=headers).status_code == 204
        assert len(client.get("/api/notifications", headers=headers).json()) == 2

    def test_requires_login(self, client):
        assert client.get("/api/notifications").status_code == 401


class TestAuditLogs:
    def test_admin_reads_filtered_trail(self, client, admin, coordinator):
        admin_user, headers = admin
        _, coordinator_headers = coordinator
        client.post("/api/zones", json={"name": "Market"}, headers=headers)
        client.post("/api/zones", json={"name": "Arts"}, headers=coordinator_headers)
        client.post("/api/meeting-points", json={"name": "Gate"}, headers=headers)

        zones = client.get("/api/audit-logs", params={"entityType": "zone"}, headers=headers).json()
        assert len(zones) == 2
        assert zones[0]["newValues"]["name"] == "Arts"

        mine = client.get("/api/audit-logs", params={"userId": admin_user.id}, headers=headers).json()
        assert {log["entityType"] for log in mine} == {"zone", "meeting_point"}
        assert all(log["userEmail"] == admin_user.email for log in mine)

    def test_admin_only(self, client, coordinator):
        _, headers = coordinator
        assert client.get("/api/audit-logs", headers=headers).status_code == 403
