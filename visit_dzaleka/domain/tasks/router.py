"""Task router - FastAPI endpoints for staff tasks"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_role
from ...database import get_db
from ...models import User
from ...services.audit_service import record_audit
from .schemas import TaskCreate, TaskResponse, TaskUpdate, task_to_response
from .service import TaskService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])

require_staff = require_role("admin", "coordinator")
require_admin = require_role("admin")


def get_task_service(db: Session = Depends(get_db)) -> TaskService:
    """Dependency injection for TaskService"""
    return TaskService(db)


@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    assignedTo: Optional[int] = Query(None),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Admins and coordinators see every task; others see only their own"""
    tasks = service.get_tasks(current_user, status, priority, assignedTo)
    return [task_to_response(t) for t in tasks]


@router.get("/my-tasks", response_model=list[TaskResponse])
async def list_my_tasks(
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    return [task_to_response(t) for t in service.get_my_tasks(current_user)]


@router.get("/stats")
async def get_task_stats(
    current_user: User = Depends(require_staff),
    service: TaskService = Depends(get_task_service),
):
    return service.get_stats()


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    return task_to_response(service.get_task(task_id, current_user))


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task(
    data: TaskCreate,
    current_user: User = Depends(require_staff),
    service: TaskService = Depends(get_task_service),
):
    task = service.create_task(data, current_user)
    record_audit(service.db, current_user.id, "create", "task", task.id, new_values={"title": task.title})
    service.db.commit()
    return task_to_response(task)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    data: TaskUpdate,
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    task = service.update_task(task_id, data, current_user)
    record_audit(
        service.db,
        current_user.id,
        "update",
        "task",
        task.id,
        new_values=data.model_dump(exclude_none=True, mode="json"),
    )
    service.db.commit()
    return task_to_response(task)


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: int,
    current_user: User = Depends(require_admin),
    service: TaskService = Depends(get_task_service),
):
    service.delete_task(task_id)
    record_audit(service.db, current_user.id, "delete", "task", task_id)
    service.db.commit()
    return Response(status_code=204)
