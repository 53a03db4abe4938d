from datetime import date, timedelta
from types import SimpleNamespace

from visit_dzaleka.domain.tasks.service import summarize_tasks
from visit_dzaleka.models import Notification, Task

TODAY = date(2026, 3, 10)


def _task(status="pending", priority="medium", category="other", due_date=None):
    return SimpleNamespace(status=status, priority=priority, category=category, due_date=due_date)


def test_summary():
    tasks = [
        _task("completed", "high", "tour_prep", due_date=TODAY - timedelta(days=3)),
        _task("pending", "urgent", "tour_prep", due_date=TODAY - timedelta(days=1)),
        _task("in_progress", due_date=TODAY),
        _task("cancelled", due_date=TODAY - timedelta(days=5)),
    ]

    stats = summarize_tasks(tasks, TODAY)

    assert stats["total"] == 4
    assert stats["byStatus"]["completed"] == 1
    assert stats["byStatus"]["under_review"] == 0
    assert stats["byPriority"]["urgent"] == 1
    assert stats["byCategory"]["tour_prep"] == 2
    assert stats["overdue"] == 1
    assert stats["completionRate"] == 25.0
    assert summarize_tasks([], TODAY)["completionRate"] == 0.0


class TestTaskApi:
    def test_create_notifies_assignee(self, client, db, coordinator, make_user):
        _, headers = coordinator
        guide, _ = make_user("guide")

        response = client.post(
            "/api/tasks",
            json={"title": "Prepare market route", "category": "tour_prep", "assignedTo": guide.id},
            headers=headers,
        )

        assert response.status_code == 201
        assert response.json()["assignedTo"] == guide.id
        notification = db.query(Notification).filter(Notification.user_id == guide.id).one()
        assert notification.type == "task_assigned"

    def test_create_rejects_unknown_assignee_and_bad_choices(self, client, coordinator):
        _, headers = coordinator
        assert client.post("/api/tasks", json={"title": "X", "assignedTo": 999}, headers=headers).status_code == 400
        assert client.post("/api/tasks", json={"title": "X", "priority": "asap"}, headers=headers).status_code == 422

    def test_only_staff_create(self, client, make_user):
        _, headers = make_user("guide")
        assert client.post("/api/tasks", json={"title": "X"}, headers=headers).status_code == 403

    def test_non_staff_only_see_and_move_their_own(self, client, coordinator, make_user):
        _, staff = coordinator
        guide, guide_headers = make_user("guide")
        mine = client.post("/api/tasks", json={"title": "Mine", "assignedTo": guide.id}, headers=staff).json()
        other = client.post("/api/tasks", json={"title": "Other"}, headers=staff).json()

        listed = client.get("/api/tasks", headers=guide_headers).json()
        assert [t["id"] for t in listed] == [mine["id"]]
        assert client.get(f"/api/tasks/{other['id']}", headers=guide_headers).status_code == 403

        retitle = client.patch(f"/api/tasks/{mine['id']}", json={"title": "Renamed"}, headers=guide_headers)
        assert retitle.status_code == 400
        foreign = client.patch(f"/api/tasks/{other['id']}", json={"status": "completed"}, headers=guide_headers)
        assert foreign.status_code == 403

        moved = client.patch(f"/api/tasks/{mine['id']}", json={"status": "in_progress"}, headers=guide_headers)
        assert moved.json()["status"] == "in_progress"
        assert moved.json()["title"] == "Mine"

    def test_completion_timestamp_follows_status(self, client, coordinator):
        _, headers = coordinator
        task = client.post("/api/tasks", json={"title": "Print maps"}, headers=headers).json()

        done = client.patch(f"/api/tasks/{task['id']}", json={"status": "completed"}, headers=headers).json()
        assert done["completedAt"] is not None

        reopened = client.patch(f"/api/tasks/{task['id']}", json={"status": "in_progress"}, headers=headers).json()
        assert reopened["completedAt"] is None

    def test_overdue_flag(self, client, coordinator):
        _, headers = coordinator
        due = (date.today() - timedelta(days=1)).isoformat()
        task = client.post("/api/tasks", json={"title": "Late", "dueDate": due}, headers=headers).json()
        assert task["isOverdue"] is True

    def test_delete_is_admin_only_and_soft(self, client, db, admin, coordinator):
        _, staff = coordinator
        _, admin_headers = admin
        task = client.post("/api/tasks", json={"title": "Old"}, headers=staff).json()

        assert client.delete(f"/api/tasks/{task['id']}", headers=staff).status_code == 403
        assert client.delete(f"/api/tasks/{task['id']}", headers=admin_headers).status_code == 204

        assert client.get(f"/api/tasks/{task['id']}", headers=admin_headers).status_code == 404
        db.expire_all()
        assert db.get(Task, task["id"]).deleted_at is not None

    def test_stats_endpoint(self, client, coordinator, make_user):
        _, headers = coordinator
        client.post("/api/tasks", json={"title": "A", "status": "completed"}, headers=headers)
        client.post("/api/tasks", json={"title": "B"}, headers=headers)

        stats = client.get("/api/tasks/stats", headers=headers).json()
        assert stats["total"] == 2
        assert stats["completionRate"] == 50.0

        _, guide_headers = make_user("guide")
        assert client.get("/api/tasks/stats", headers=guide_headers).status_code == 403
