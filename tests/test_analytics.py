from datetime import datetime, timedelta
from types import SimpleNamespace

from visit_dzaleka.domain.analytics.service import detect_device_type, summarize_page_views
from visit_dzaleka.models import PageView


def test_device_detection():
    assert detect_device_type(None) == "desktop"
    assert detect_device_type("Mozilla/5.0 (Windows NT 10.0; Win64; x64)") == "desktop"
    assert detect_device_type("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) Mobile/15E148") == "mobile"
    assert detect_device_type("Mozilla/5.0 (Linux; Android 14; Pixel 8) Mobile Safari/537.36") == "mobile"
    assert detect_device_type("Mozilla/5.0 (Linux; Android 13; SM-X700) Safari/537.36") == "tablet"
    assert detect_device_type("Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X)") == "tablet"


def test_summary_counts_pages_devices_and_days():
    day_one = datetime(2026, 3, 1, 9)
    day_two = datetime(2026, 3, 2, 9)
    views = [
        SimpleNamespace(page="/", session_id="a", device_type="desktop", created_at=day_one),
        SimpleNamespace(page="/book", session_id="a", device_type="desktop", created_at=day_one),
        SimpleNamespace(page="/", session_id="b", device_type="mobile", created_at=day_two),
        SimpleNamespace(page="/", session_id="c", device_type=None, created_at=day_two),
    ]

    summary = summarize_page_views(views)

    assert summary["totalViews"] == 4
    assert summary["uniqueSessions"] == 3
    assert summary["topPages"][0] == {"page": "/", "views": 3}
    assert summary["deviceBreakdown"] == {"desktop": 3, "mobile": 1, "tablet": 0}
    assert summary["dailyViews"] == [
        {"date": "2026-03-01", "views": 2},
        {"date": "2026-03-02", "views": 2},
    ]


def test_page_view_beacon_is_public(client, db):
    response = client.post(
        "/api/analytics/pageview",
        json={"page": "/tours", "sessionId": "s-1", "userAgent": "Mozilla/5.0 (iPad; CPU OS 17_0)"},
    )
    assert response.status_code == 201
    assert response.json() == {"success": True}
    view = db.query(PageView).one()
    assert view.device_type == "tablet"
    assert view.user_id is None


def test_page_view_requires_session(client):
    assert client.post("/api/analytics/pageview", json={"page": "/"}).status_code == 422


def test_live_counts_recent_distinct_sessions(client, db):
    now = datetime.utcnow()
    db.add_all(
        [
            PageView(session_id="a", page="/", created_at=now - timedelta(minutes=1)),
            PageView(session_id="a", page="/book", created_at=now - timedelta(minutes=2)),
            PageView(session_id="b", page="/", created_at=now - timedelta(minutes=3)),
            PageView(session_id="c", page="/", created_at=now - timedelta(minutes=30)),
        ]
    )
    db.commit()
    assert client.get("/api/analytics/live").json() == {"count": 2}


class TestReports:
    def test_admin_only(self, client, coordinator):
        _, headers = coordinator
        assert client.get("/api/analytics/pageviews", headers=headers).status_code == 403
        assert client.get("/api/analytics/conversion", headers=headers).status_code == 403

    def test_page_views_in_range(self, client, db, admin):
        _, headers = admin
        db.add_all(
            [
                PageView(session_id="a", page="/", created_at=datetime(2026, 3, 1, 10)),
                PageView(session_id="b", page="/", created_at=datetime(2026, 3, 2, 23, 59)),
                PageView(session_id="c", page="/", created_at=datetime(2026, 3, 3, 0, 1)),
            ]
        )
        db.commit()

        body = client.get(
            "/api/analytics/pageviews",
            params={"startDate": "2026-03-01", "endDate": "2026-03-02"},
            headers=headers,
        ).json()

        assert body["totalViews"] == 2
        assert [d["date"] for d in body["dailyViews"]] == ["2026-03-01", "2026-03-02"]

    def test_reversed_range_rejected(self, client, admin):
        _, headers = admin
        response = client.get(
            "/api/analytics/pageviews",
            params={"startDate": "2026-03-05", "endDate": "2026-03-01"},
            headers=headers,
        )
        assert response.status_code == 400

    def test_conversion_rate(self, client, db, admin, make_booking):
        _, headers = admin
        today = datetime.utcnow().date().isoformat()
        for session in ("a", "b", "c", "d"):
            db.add(PageView(session_id=session, page="/"))
        db.commit()
        make_booking()

        body = client.get(
            "/api/analytics/conversion", params={"startDate": today, "endDate": today}, headers=headers
        ).json()

        assert body == {"uniqueSessions": 4, "bookings": 1, "conversionRate": 25.0}
