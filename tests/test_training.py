import pytest

from visit_dzaleka.domain.training.service import training_percentage
from visit_dzaleka.models import TrainingModule


def test_training_percentage():
    assert training_percentage(0, 0) == 0
    assert training_percentage(1, 3) == 33
    assert training_percentage(2, 3) == 67


@pytest.fixture
def modules(db):
    rows = [
        TrainingModule(title="Camp history", is_required=True, target_audience="guide", sort_order=1),
        TrainingModule(title="First aid", is_required=True, target_audience="both", sort_order=2),
        TrainingModule(title="Storytelling", is_required=False, target_audience="guide", sort_order=3),
        TrainingModule(title="Visitor etiquette", is_required=True, target_audience="visitor", sort_order=4),
        TrainingModule(title="Retired", is_required=True, target_audience="guide", is_active=False),
    ]
    db.add_all(rows)
    db.commit()
    return {m.title: m for m in rows}


class TestModules:
    def test_audience_filtering(self, client, admin, visitor, make_user, modules):
        _, admin_headers = admin
        _, visitor_headers = visitor
        _, guide_headers = make_user("guide")

        staff_titles = [m["title"] for m in client.get("/api/training/modules", headers=admin_headers).json()]
        assert staff_titles == ["Camp history", "First aid", "Storytelling", "Visitor etiquette"]

        everything = client.get(
            "/api/training/modules", params={"includeInactive": "true"}, headers=admin_headers
        ).json()
        assert len(everything) == 5

        guide_titles = [m["title"] for m in client.get("/api/training/modules", headers=guide_headers).json()]
        assert guide_titles == ["Camp history", "First aid", "Storytelling"]

        visitor_titles = [m["title"] for m in client.get("/api/training/modules", headers=visitor_headers).json()]
        assert visitor_titles == ["First aid", "Visitor etiquette"]
        resources = client.get("/api/training/visitor-resources", headers=guide_headers).json()
        assert [m["title"] for m in resources] == ["First aid", "Visitor etiquette"]

    def test_admin_manages_modules(self, client, db, admin, coordinator):
        _, headers = admin
        _, coordinator_headers = coordinator

        created = client.post(
            "/api/training/modules",
            json={"title": "Photography consent", "isRequired": True, "targetAudience": "both"},
            headers=headers,
        )
        assert created.status_code == 201
        module_id = created.json()["id"]
        assert created.json()["estimatedMinutes"] == 15

        assert client.post("/api/training/modules", json={"title": "X"}, headers=coordinator_headers).status_code == 403
        bad = client.post("/api/training/modules", json={"title": "X", "targetAudience": "everyone"}, headers=headers)
        assert bad.status_code == 422

        updated = client.patch(f"/api/training/modules/{module_id}", json={"sortOrder": 9}, headers=headers).json()
        assert updated["sortOrder"] == 9
        assert updated["isRequired"] is True

        assert client.delete(f"/api/training/modules/{module_id}", headers=headers).status_code == 200
        db.expire_all()
        assert db.get(TrainingModule, module_id).is_active is False


class TestProgress:
    def test_completing_modules_updates_stats(self, client, make_user, make_guide, coordinator, modules):
        user, headers = make_user("guide")
        guide = make_guide(user_id=user.id)
        make_guide(first_name="Untrained")

        started = client.post(
            f"/api/training/progress/{modules['Camp history'].id}", json={"status": "in_progress"}, headers=headers
        ).json()
        assert started["startedAt"] is not None
        assert started["completedAt"] is None

        done = client.post(
            f"/api/training/progress/{modules['Camp history'].id}",
            json={"status": "completed", "score": 90},
            headers=headers,
        ).json()
        assert done["completedAt"] is not None
        assert done["startedAt"] == started["startedAt"]
        assert done["score"] == 90

        # Optional modules do not count towards completion
        client.post(
            f"/api/training/progress/{modules['Storytelling'].id}", json={"status": "completed"}, headers=headers
        )

        assert client.get("/api/training/stats", headers=headers).json() == {
            "completed": 1,
            "total": 2,
            "percentage": 50,
        }

        progress = client.get("/api/training/progress", headers=headers).json()
        by_title = {m["title"]: m["progress"]["status"] for m in progress}
        assert by_title == {"Camp history": "completed", "First aid": "not_started", "Storytelling": "completed"}

        _, staff = coordinator
        overview = client.get("/api/training/guides-stats", headers=staff).json()
        rows = {row["guideId"]: row for row in overview}
        assert rows[guide.id]["percentage"] == 50
        assert [row["completed"] for row in overview if row["guideId"] != guide.id] == [0]

        training = client.get(f"/api/guides/{guide.id}/training", headers=headers).json()
        assert training["stats"]["completed"] == 1

    def test_reset_to_not_started(self, client, make_user, modules):
        _, headers = make_user("guide")
        module_id = modules["First aid"].id
        client.post(f"/api/training/progress/{module_id}", json={"status": "completed"}, headers=headers)

        reset = client.post(
            f"/api/training/progress/{module_id}", json={"status": "not_started"}, headers=headers
        ).json()
        assert reset["startedAt"] is None
        assert reset["completedAt"] is None

    def test_progress_rules(self, client, visitor, make_user, modules):
        _, headers = make_user("guide")
        _, visitor_headers = visitor

        inactive = client.post(
            f"/api/training/progress/{modules['Retired'].id}", json={"status": "completed"}, headers=headers
        )
        assert inactive.status_code == 400
        assert client.post("/api/training/progress/999", json={"status": "completed"}, headers=headers).status_code == 404
        bad_status = client.post(
            f"/api/training/progress/{modules['First aid'].id}", json={"status": "done"}, headers=headers
        )
        assert bad_status.status_code == 422
        as_visitor = client.post(
            f"/api/training/progress/{modules['First aid'].id}", json={"status": "completed"}, headers=visitor_headers
        )
        assert as_visitor.status_code == 403

    def test_guides_stats_is_staff_only(self, client, make_user):
        _, headers = make_user("guide")
        assert client.get("/api/training/guides-stats", headers=headers).status_code == 403
