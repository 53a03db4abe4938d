"""Task domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

TASK_PRIORITIES = ("low", "medium", "high", "urgent")
TASK_STATUSES = ("pending", "in_progress", "under_review", "completed", "cancelled")
TASK_CATEGORIES = (
    "tour_prep",
    "training",
    "admin",
    "maintenance",
    "communication",
    "documentation",
    "other",
)


def _check_choice(value: Optional[str], allowed: tuple, label: str) -> Optional[str]:
    if value is not None and value not in allowed:
        raise ValueError(f"Invalid {label}. Must be one of: {', '.join(allowed)}")
    return value


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    category: str = "other"
    priority: str = "medium"
    status: str = "pending"
    assignedTo: Optional[int] = None
    dueDate: Optional[date] = None
    estimatedHours: Optional[float] = Field(default=None, ge=0)

    @field_validator("category")
    @classmethod
    def check_category(cls, v):
        return _check_choice(v, TASK_CATEGORIES, "category")

    @field_validator("priority")
    @classmethod
    def check_priority(cls, v):
        return _check_choice(v, TASK_PRIORITIES, "priority")

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        return _check_choice(v, TASK_STATUSES, "status")


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    assignedTo: Optional[int] = None
    dueDate: Optional[date] = None
    estimatedHours: Optional[float] = Field(default=None, ge=0)
    actualHours: Optional[float] = Field(default=None, ge=0)

    @field_validator("category")
    @classmethod
    def check_category(cls, v):
        return _check_choice(v, TASK_CATEGORIES, "category")

    @field_validator("priority")
    @classmethod
    def check_priority(cls, v):
        return _check_choice(v, TASK_PRIORITIES, "priority")

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        return _check_choice(v, TASK_STATUSES, "status")


class TaskResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    category: str
    priority: str
    status: str
    assignedTo: Optional[int] = None
    assignedBy: Optional[int] = None
    dueDate: Optional[date] = None
    completedAt: Optional[datetime] = None
    estimatedHours: Optional[float] = None
    actualHours: Optional[float] = None
    isOverdue: bool = False
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    class Config:
        from_attributes = True


def task_to_response(task, today: Optional[date] = None) -> TaskResponse:
    today = today or date.today()
    return TaskResponse(
        id=task.id,
        title=task.title,
        description=task.description,
        category=task.category,
        priority=task.priority,
        status=task.status,
        assignedTo=task.assigned_to,
        assignedBy=task.assigned_by,
        dueDate=task.due_date,
        completedAt=task.completed_at,
        estimatedHours=task.estimated_hours,
        actualHours=task.actual_hours,
        isOverdue=bool(
            task.due_date and task.due_date < today and task.status not in ("completed", "cancelled")
        ),
        createdAt=task.created_at,
        updatedAt=task.updated_at,
    )
