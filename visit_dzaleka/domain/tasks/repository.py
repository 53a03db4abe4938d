"""Task repository - Database operations for tasks"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Task


class TaskRepository:
    """Repository for task database operations"""

    @staticmethod
    def get_tasks(
        db: Session,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to: Optional[int] = None,
    ) -> list[Task]:
        query = db.query(Task).filter(Task.deleted_at.is_(None))
        if status:
            query = query.filter(Task.status == status)
        if priority:
            query = query.filter(Task.priority == priority)
        if assigned_to is not None:
            query = query.filter(Task.assigned_to == assigned_to)
        return query.order_by(Task.due_date.is_(None), Task.due_date, Task.created_at.desc()).all()

    @staticmethod
    def get_task_by_id(db: Session, task_id: int) -> Optional[Task]:
        return db.query(Task).filter(Task.id == task_id, Task.deleted_at.is_(None)).first()

    @staticmethod
    def create_task(db: Session, **task_data) -> Task:
        task = Task(**task_data)
        db.add(task)
        db.flush()
        return task

    @staticmethod
    def soft_delete_task(db: Session, task: Task) -> None:
        task.deleted_at = datetime.utcnow()

    @staticmethod
    def save(db: Session, task: Task) -> Task:
        db.commit()
        db.refresh(task)
        return task
