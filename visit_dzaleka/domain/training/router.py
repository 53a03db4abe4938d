"""Training router - FastAPI endpoints for training modules and progress"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_role
from ...database import get_db
from ...models import User
from ...services.audit_service import record_audit
from .schemas import (
    ProgressResponse,
    ProgressUpdate,
    TrainingModuleCreate,
    TrainingModuleResponse,
    TrainingModuleUpdate,
    module_to_response,
    progress_to_response,
)
from .service import TrainingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/training", tags=["Training"])

require_admin = require_role("admin")
require_staff = require_role("admin", "coordinator")
require_trainee = require_role("guide", "admin", "coordinator")


def get_training_service(db: Session = Depends(get_db)) -> TrainingService:
    """Dependency injection for TrainingService"""
    return TrainingService(db)


# ============================================================================
# MODULES
# ============================================================================


@router.get("/modules", response_model=list[TrainingModuleResponse])
async def list_modules(
    includeInactive: bool = Query(False),
    current_user: User = Depends(get_current_user),
    service: TrainingService = Depends(get_training_service),
):
    return [module_to_response(m) for m in service.get_modules(current_user, includeInactive)]


@router.get("/visitor-resources", response_model=list[TrainingModuleResponse])
async def list_visitor_resources(
    current_user: User = Depends(get_current_user),
    service: TrainingService = Depends(get_training_service),
):
    return [module_to_response(m) for m in service.get_visitor_resources()]


@router.get("/modules/{module_id}", response_model=TrainingModuleResponse)
async def get_module(
    module_id: int,
    current_user: User = Depends(get_current_user),
    service: TrainingService = Depends(get_training_service),
):
    return module_to_response(service.get_module(module_id))


@router.post("/modules", response_model=TrainingModuleResponse, status_code=201)
async def create_module(
    data: TrainingModuleCreate,
    current_user: User = Depends(require_admin),
    service: TrainingService = Depends(get_training_service),
):
    module = service.create_module(data, current_user)
    record_audit(service.db, current_user.id, "create", "training_module", module.id, new_values=data.model_dump())
    service.db.commit()
    return module_to_response(module)


@router.patch("/modules/{module_id}", response_model=TrainingModuleResponse)
async def update_module(
    module_id: int,
    data: TrainingModuleUpdate,
    current_user: User = Depends(require_admin),
    service: TrainingService = Depends(get_training_service),
):
    module = service.update_module(module_id, data)
    record_audit(
        service.db,
        current_user.id,
        "update",
        "training_module",
        module.id,
        new_values=data.model_dump(exclude_none=True),
    )
    service.db.commit()
    return module_to_response(module)


@router.delete("/modules/{module_id}")
async def delete_module(
    module_id: int,
    current_user: User = Depends(require_admin),
    service: TrainingService = Depends(get_training_service),
):
    service.delete_module(module_id)
    record_audit(service.db, current_user.id, "delete", "training_module", module_id)
    service.db.commit()
    return {"message": "Training module deleted"}


# ============================================================================
# PROGRESS
# ============================================================================


@router.get("/progress")
async def get_my_progress(
    current_user: User = Depends(require_trainee),
    service: TrainingService = Depends(get_training_service),
):
    """Guide modules, each with the current user's progress"""
    return service.modules_with_progress(current_user.id)


@router.post("/progress/{module_id}", response_model=ProgressResponse)
async def update_progress(
    module_id: int,
    data: ProgressUpdate,
    current_user: User = Depends(require_trainee),
    service: TrainingService = Depends(get_training_service),
):
    return progress_to_response(service.update_progress(module_id, data, current_user))


@router.get("/stats")
async def get_my_training_stats(
    current_user: User = Depends(get_current_user),
    service: TrainingService = Depends(get_training_service),
):
    return service.stats_for_user(current_user.id)


@router.get("/guides-stats")
async def get_guides_training_stats(
    current_user: User = Depends(require_staff),
    service: TrainingService = Depends(get_training_service),
):
    return service.all_guides_stats()
