from datetime import date, timedelta
from types import SimpleNamespace

from visit_dzaleka.domain.guides.stats import completion_rate, reconcile_guide_stats
from visit_dzaleka.domain.guides.suggestion import (
    availability_score,
    rank_guides,
    rating_score,
    sunday_index,
    top_reason,
    week_bounds,
    workload_score,
    zone_expertise_score,
)
from visit_dzaleka.models import Guide

MONDAY = date(2026, 3, 2)


def _guide(guide_id, **fields):
    defaults = {
        "id": guide_id,
        "assigned_zones": [],
        "available_days": [],
        "rating": 0,
        "total_ratings": 0,
        "is_active": True,
        "deleted_at": None,
    }
    defaults.update(fields)
    return SimpleNamespace(**defaults)


def _slot(**fields):
    defaults = {
        "date": None,
        "day_of_week": None,
        "start_time": "08:00",
        "end_time": "12:00",
        "is_available": True,
        "is_recurring": True,
    }
    defaults.update(fields)
    return SimpleNamespace(**defaults)


class TestScoring:
    def test_zone_expertise(self):
        assert zone_expertise_score([1, 2], []) == 15
        assert zone_expertise_score([], ["1"]) == 5
        assert zone_expertise_score([1, 2], ["1", "2"]) == 30
        assert zone_expertise_score([1, 2], ["1", "3"]) == 15
        assert zone_expertise_score(["1"], ["1", "2", "3"]) == 10

    def test_workload_bands(self):
        assert [workload_score(n) for n in (0, 1, 2, 3, 4, 5, 6, 7, 12)] == [
            25, 20, 20, 15, 15, 10, 10, 5, 5
        ]

    def test_rating(self):
        assert rating_score(None, 0) == 10
        assert rating_score(4.5, 10) == 18
        assert rating_score(4.2, 3) == 17
        assert rating_score(5, 1) == 20

    def test_availability_without_entries(self):
        assert availability_score([], [], MONDAY, "10:00") == 20
        assert availability_score(["monday"], [], MONDAY, "10:00") == 20

    def test_day_off_scores_zero(self):
        assert availability_score(["tuesday"], [_slot(day_of_week=1)], MONDAY, "10:00") == 0

    def test_dated_entry_beats_recurring(self):
        recurring = _slot(day_of_week=1)
        blocked = _slot(date=MONDAY, is_available=False, is_recurring=False)
        assert availability_score([], [recurring, blocked], MONDAY, "10:00") == 0

        dated = _slot(date=MONDAY, start_time="13:00", end_time="17:00", is_recurring=False)
        assert availability_score([], [dated, recurring], MONDAY, "14:00") == 25
        assert availability_score([], [dated, recurring], MONDAY, "10:00") == 10

    def test_recurring_entries(self):
        recurring = [_slot(day_of_week=1)]
        assert availability_score([], recurring, MONDAY, "09:30") == 25
        assert availability_score([], recurring, MONDAY, "15:00") == 15
        # Entries for other weekdays do not count
        assert availability_score([], [_slot(day_of_week=2)], MONDAY, "09:30") == 20

    def test_sunday_first_week(self):
        assert sunday_index(MONDAY) == 1
        assert sunday_index(date(2026, 3, 1)) == 0
        assert week_bounds(MONDAY) == (date(2026, 3, 1), date(2026, 3, 7))

    def test_top_reason_prefers_earlier_category_on_ties(self):
        full = {"zoneExpertise": 30, "availability": 25, "workload": 25, "rating": 20}
        assert top_reason(full) == "Best for zone expertise"
        assert top_reason({"zoneExpertise": 5, "availability": 20, "workload": 25, "rating": 10}) == (
            "Best for light workload"
        )


class TestRanking:
    def test_best_first_and_excluded(self):
        expert = _guide(1, assigned_zones=[3], rating=4.8, total_ratings=12)
        novice = _guide(2)
        busy = _guide(3, assigned_zones=[3])
        retired = _guide(4, is_active=False)
        removed = _guide(5, deleted_at=date(2026, 1, 1))

        ranked = rank_guides(
            [novice, busy, expert, retired, removed],
            {},
            {3: 7},
            MONDAY,
            "10:00",
            ["3"],
        )

        assert [s["guide"].id for s in ranked] == [1, 3, 2]
        assert ranked[0]["score"] == 30 + 20 + 25 + 19
        assert ranked[0]["breakdown"]["zoneExpertise"] == 30
        assert "Expert in all selected zones" in ranked[0]["reasons"]
        assert "Busy week, consider backup" in ranked[1]["reasons"]

        without_expert = rank_guides([novice, expert], {}, {}, MONDAY, "10:00", ["3"], exclude_ids=[1])
        assert [s["guide"].id for s in without_expert] == [2]

    def test_ties_keep_input_order(self):
        ranked = rank_guides([_guide(7), _guide(3), _guide(5)], {}, {}, MONDAY, "10:00", [])
        assert [s["guide"].id for s in ranked] == [7, 3, 5]


class TestStats:
    def test_completion_rate(self):
        assert completion_rate(0, 0) == 0.0
        assert completion_rate(3, 2) == 66.7

    def test_reconcile_corrects_drift_once(self, db, make_guide, make_booking):
        guide = make_guide(total_tours=5, completed_tours=0)
        make_booking(assigned_guide_id=guide.id, status="completed", total_amount=20000, visitor_rating=4)
        make_booking(assigned_guide_id=guide.id, status="confirmed", total_amount=15000)
        make_booking(assigned_guide_id=guide.id, status="cancelled", total_amount=15000)

        corrections = reconcile_guide_stats(db, guide.id)

        assert len(corrections) == 1
        drift = corrections[0]["drift"]
        assert drift["total_tours"] == {"stored": 5, "computed": 2}
        assert drift["completed_tours"]["computed"] == 1
        db.expire_all()
        refreshed = db.get(Guide, guide.id)
        assert refreshed.total_tours == 2
        assert refreshed.completed_tours == 1
        assert refreshed.total_earnings == 20000
        assert refreshed.rating == 4.0
        assert refreshed.total_ratings == 1

        assert reconcile_guide_stats(db, guide.id) == []

    def test_stats_endpoint_reports_drift(self, client, coordinator, make_guide, make_booking):
        _, headers = coordinator
        guide = make_guide(total_tours=3)
        make_booking(assigned_guide_id=guide.id, status="confirmed")

        body = client.get(f"/api/guides/{guide.id}/stats", headers=headers).json()

        assert body["totalTours"] == 3
        assert body["computed"]["total_tours"] == 1
        assert "total_tours" in body["drift"]

    def test_reconcile_endpoint_is_admin_only(self, client, admin, coordinator, make_guide):
        make_guide(total_tours=2)
        _, coordinator_headers = coordinator
        _, admin_headers = admin

        assert client.post("/api/guides/reconcile-stats", headers=coordinator_headers).status_code == 403
        response = client.post("/api/guides/reconcile-stats", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["corrected"] == 1


class TestGuideApi:
    def test_create_normalises_days_and_phone(self, client, coordinator):
        _, headers = coordinator
        response = client.post(
            "/api/guides",
            json={
                "firstName": "Esther",
                "lastName": "Mugisha",
                "phone": "+265 999 000 111",
                "availableDays": ["Monday", "friday"],
                "assignedZones": [1, 2],
            },
            headers=headers,
        )
        assert response.status_code == 201
        body = response.json()
        assert body["availableDays"] == ["monday", "friday"]
        assert body["phone"] == "+265999000111"
        assert body["fullName"] == "Esther Mugisha"

    def test_invalid_weekday_rejected(self, client, coordinator):
        _, headers = coordinator
        response = client.post(
            "/api/guides",
            json={"firstName": "A", "lastName": "B", "phone": "0999000111", "availableDays": ["funday"]},
            headers=headers,
        )
        assert response.status_code == 422

    def test_soft_delete_hides_guide(self, client, db, coordinator, make_guide):
        _, headers = coordinator
        guide = make_guide()

        assert client.delete(f"/api/guides/{guide.id}", headers=headers).status_code == 200

        assert client.get("/api/guides", headers=headers).json() == []
        db.expire_all()
        assert db.get(Guide, guide.id).deleted_at is not None

    def test_guide_manages_own_availability(self, client, make_user, make_guide):
        user, headers = make_user("guide")
        guide = make_guide(user_id=user.id)
        other = make_guide()

        weekly = client.post(
            f"/api/guides/{guide.id}/availability",
            json={"dayOfWeek": 1, "startTime": "08:00", "endTime": "12:00"},
            headers=headers,
        )
        assert weekly.status_code == 201
        assert weekly.json()["isRecurring"] is True

        dated = client.post(
            f"/api/guides/{guide.id}/availability",
            json={"date": (date.today() + timedelta(days=3)).isoformat(), "startTime": "09:00", "endTime": "11:00", "isAvailable": False},
            headers=headers,
        )
        assert dated.json()["isRecurring"] is False

        listed = client.get(f"/api/guides/{guide.id}/availability", headers=headers).json()
        assert len(listed) == 2

        forbidden = client.post(
            f"/api/guides/{other.id}/availability",
            json={"dayOfWeek": 2, "startTime": "08:00", "endTime": "12:00"},
            headers=headers,
        )
        assert forbidden.status_code == 403

        removed = client.delete(f"/api/guides/availability/{weekly.json()['id']}", headers=headers)
        assert removed.status_code == 200

    def test_availability_needs_day_and_ordered_times(self, client, coordinator, make_guide):
        _, headers = coordinator
        guide = make_guide()
        url = f"/api/guides/{guide.id}/availability"
        assert client.post(url, json={"startTime": "08:00", "endTime": "12:00"}, headers=headers).status_code == 422
        assert (
            client.post(url, json={"dayOfWeek": 1, "startTime": "12:00", "endTime": "08:00"}, headers=headers).status_code
            == 422
        )

    def test_suggest_ranks_zone_experts_first(self, client, coordinator, make_guide):
        _, headers = coordinator
        make_guide(first_name="Generalist")
        expert = make_guide(first_name="Expert", assigned_zones=[4])
        visit = (date.today() + timedelta(days=5)).isoformat()

        response = client.get(
            "/api/guides/suggest",
            params={"visitDate": visit, "visitTime": "10:00", "selectedZones": "4"},
            headers=headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body[0]["guideId"] == expert.id
        assert body[0]["breakdown"]["zoneExpertise"] == 30
        assert body[1]["breakdown"]["zoneExpertise"] == 5

    def test_suggest_requires_date_and_time(self, client, coordinator):
        _, headers = coordinator
        assert client.get("/api/guides/suggest", headers=headers).status_code == 400
        response = client.get(
            "/api/guides/suggest", params={"visitDate": "tomorrow", "visitTime": "10:00"}, headers=headers
        )
        assert response.status_code == 400
