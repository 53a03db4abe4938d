"""Task service - Business logic for staff tasks"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import is_staff
from ...models import Task, User
from ...services.notification_service import create_notification
from .repository import TaskRepository
from .schemas import TASK_CATEGORIES, TASK_PRIORITIES, TASK_STATUSES, TaskCreate, TaskUpdate

logger = logging.getLogger(__name__)

OPEN_STATUSES = ("pending", "in_progress", "under_review")

TASK_FIELD_MAP = {
    "title": "title",
    "description": "description",
    "category": "category",
    "priority": "priority",
    "status": "status",
    "assignedTo": "assigned_to",
    "dueDate": "due_date",
    "estimatedHours": "estimated_hours",
    "actualHours": "actual_hours",
}


def summarize_tasks(tasks: list[Task], today: date) -> dict:
    """Counts by status, priority and category, overdue count and completion rate"""
    by_status = {s: 0 for s in TASK_STATUSES}
    by_priority = {p: 0 for p in TASK_PRIORITIES}
    by_category = {c: 0 for c in TASK_CATEGORIES}
    overdue = 0

    for task in tasks:
        by_status[task.status] = by_status.get(task.status, 0) + 1
        by_priority[task.priority] = by_priority.get(task.priority, 0) + 1
        by_category[task.category] = by_category.get(task.category, 0) + 1
        if task.due_date and task.due_date < today and task.status in OPEN_STATUSES:
            overdue += 1

    total = len(tasks)
    return {
        "total": total,
        "byStatus": by_status,
        "byPriority": by_priority,
        "byCategory": by_category,
        "overdue": overdue,
        "completionRate": round(by_status["completed"] / total * 100, 1) if total else 0.0,
    }


class TaskService:
    """Service layer for task business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TaskRepository()

    def get_tasks(
        self,
        user: User,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to: Optional[int] = None,
    ) -> list[Task]:
        """Staff may filter by assignee; everyone else only sees their own tasks"""
        if not is_staff(user):
            assigned_to = user.id
        return self.repo.get_tasks(self.db, status, priority, assigned_to)

    def get_my_tasks(self, user: User) -> list[Task]:
        return self.repo.get_tasks(self.db, assigned_to=user.id)

    def get_task(self, task_id: int, user: User) -> Task:
        task = self.repo.get_task_by_id(self.db, task_id)
        if not task:
            raise HTTPException(status_code=404, detail="Task not found")
        if not is_staff(user) and task.assigned_to != user.id:
            raise HTTPException(status_code=403, detail="You can only view tasks assigned to you")
        return task

    def get_stats(self) -> dict:
        return summarize_tasks(self.repo.get_tasks(self.db), date.today())

    def _check_assignee(self, user_id: Optional[int]) -> None:
        if user_id is not None and not self.db.query(User).filter(User.id == user_id).first():
            raise HTTPException(status_code=400, detail="Assigned user not found")

    def _notify_assignee(self, task: Task, assigned_by: User) -> None:
        if task.assigned_to and task.assigned_to != assigned_by.id:
            create_notification(
                self.db,
                task.assigned_to,
                "task_assigned",
                "New task assigned",
                f"{assigned_by.full_name or assigned_by.email} assigned you: {task.title}",
                link="/tasks",
                related_id=str(task.id),
            )

    def create_task(self, data: TaskCreate, user: User) -> Task:
        self._check_assignee(data.assignedTo)
        task_data = {
            column: getattr(data, field)
            for field, column in TASK_FIELD_MAP.items()
            if hasattr(data, field)
        }
        task_data["assigned_by"] = user.id
        if data.status == "completed":
            task_data["completed_at"] = datetime.utcnow()

        task = self.repo.create_task(self.db, **task_data)
        self._notify_assignee(task, user)
        self.repo.save(self.db, task)
        logger.info(f"✅ Task {task.id} created by user {user.id}")
        return task

    def update_task(self, task_id: int, data: TaskUpdate, user: User) -> Task:
        task = self.repo.get_task_by_id(self.db, task_id)
        if not task:
            raise HTTPException(status_code=404, detail="Task not found")

        if is_staff(user):
            updates = {
                column: getattr(data, field)
                for field, column in TASK_FIELD_MAP.items()
                if getattr(data, field) is not None
            }
        else:
            if task.assigned_to != user.id:
                raise HTTPException(status_code=403, detail="You can only update tasks assigned to you")
            if data.status is None:
                raise HTTPException(status_code=400, detail="You can only update task status")
            updates = {"status": data.status}

        if "assigned_to" in updates:
            self._check_assignee(updates["assigned_to"])
        reassigned = "assigned_to" in updates and updates["assigned_to"] != task.assigned_to

        new_status = updates.get("status")
        if new_status == "completed" and task.status != "completed":
            task.completed_at = datetime.utcnow()
        elif new_status and new_status != "completed":
            task.completed_at = None

        for key, value in updates.items():
            setattr(task, key, value)
        task.updated_at = datetime.utcnow()

        if reassigned:
            self._notify_assignee(task, user)
        self.repo.save(self.db, task)
        logger.info(f"✅ Task {task.id} updated by user {user.id}")
        return task

    def delete_task(self, task_id: int) -> Task:
        task = self.repo.get_task_by_id(self.db, task_id)
        if not task:
            raise HTTPException(status_code=404, detail="Task not found")
        self.repo.soft_delete_task(self.db, task)
        self.repo.save(self.db, task)
        logger.info(f"🗑️ Task {task_id} deleted")
        return task
