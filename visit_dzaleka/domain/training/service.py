"""Training service - Business logic for training modules and guide progress"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import is_staff
from ...models import Guide, GuideTrainingProgress, TrainingModule, User
from .repository import GUIDE_AUDIENCES, VISITOR_AUDIENCES, TrainingRepository
from .schemas import (
    ProgressUpdate,
    TrainingModuleCreate,
    TrainingModuleUpdate,
    module_to_response,
    progress_to_response,
)

logger = logging.getLogger(__name__)

MODULE_FIELD_MAP = {
    "title": "title",
    "description": "description",
    "category": "category",
    "content": "content",
    "externalUrl": "external_url",
    "estimatedMinutes": "estimated_minutes",
    "sortOrder": "sort_order",
    "isRequired": "is_required",
    "isActive": "is_active",
    "targetAudience": "target_audience",
}


def training_percentage(completed: int, total: int) -> int:
    if not total:
        return 0
    return round(completed / total * 100)


class TrainingService:
    """Service layer for training business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TrainingRepository()

    # ------------------------------------------------------------------
    # Modules
    # ------------------------------------------------------------------

    def get_modules(self, user: User, include_inactive: bool = False) -> list[TrainingModule]:
        """Staff see every audience; visitors only visitor resources"""
        if is_staff(user):
            return self.repo.get_modules(self.db, include_inactive=include_inactive)
        if user.role == "visitor":
            return self.repo.get_modules(self.db, VISITOR_AUDIENCES)
        return self.repo.get_modules(self.db, GUIDE_AUDIENCES)

    def get_visitor_resources(self) -> list[TrainingModule]:
        return self.repo.get_modules(self.db, VISITOR_AUDIENCES)

    def get_module(self, module_id: int) -> TrainingModule:
        module = self.repo.get_module_by_id(self.db, module_id)
        if not module:
            raise HTTPException(status_code=404, detail="Training module not found")
        return module

    def create_module(self, data: TrainingModuleCreate, user: User) -> TrainingModule:
        module_data = {column: getattr(data, field) for field, column in MODULE_FIELD_MAP.items()}
        module_data["created_by"] = user.id
        module = self.repo.create_module(self.db, **module_data)
        logger.info(f"✅ Training module {module.id} created: {module.title}")
        return module

    def update_module(self, module_id: int, data: TrainingModuleUpdate) -> TrainingModule:
        module = self.get_module(module_id)
        updates = {
            column: getattr(data, field)
            for field, column in MODULE_FIELD_MAP.items()
            if getattr(data, field) is not None
        }
        return self.repo.update_module(self.db, module, **updates)

    def delete_module(self, module_id: int) -> TrainingModule:
        """Deactivate rather than delete so recorded progress keeps its module"""
        module = self.get_module(module_id)
        module = self.repo.update_module(self.db, module, is_active=False)
        logger.info(f"🗑️ Training module {module_id} deactivated")
        return module

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def modules_with_progress(self, user_id: Optional[int]) -> list[dict]:
        modules = self.repo.get_modules(self.db, GUIDE_AUDIENCES)
        progress = {p.module_id: p for p in self.repo.get_progress(self.db, user_id)} if user_id else {}

        combined = []
        for module in modules:
            entry = progress.get(module.id)
            combined.append(
                {
                    **module_to_response(module).model_dump(),
                    "progress": (
                        progress_to_response(entry).model_dump()
                        if entry
                        else {"moduleId": module.id, "status": "not_started", "completedAt": None}
                    ),
                }
            )
        return combined

    def update_progress(self, module_id: int, data: ProgressUpdate, user: User) -> GuideTrainingProgress:
        module = self.get_module(module_id)
        if not module.is_active:
            raise HTTPException(status_code=400, detail="Training module is not active")

        entry = self.repo.get_progress_entry(self.db, user.id, module.id)
        if not entry:
            entry = GuideTrainingProgress(user_id=user.id, module_id=module.id)
            self.db.add(entry)

        now = datetime.utcnow()
        entry.status = data.status
        if data.status == "not_started":
            entry.started_at = None
            entry.completed_at = None
        elif data.status == "in_progress":
            entry.started_at = entry.started_at or now
            entry.completed_at = None
        else:
            entry.started_at = entry.started_at or now
            entry.completed_at = now
        if data.score is not None:
            entry.score = data.score

        self.db.commit()
        self.db.refresh(entry)
        logger.info(f"📚 User {user.id} marked module {module.id} {data.status}")
        return entry

    def stats_for_user(self, user_id: Optional[int]) -> dict:
        """Completion of required guide modules"""
        required = self.repo.get_modules(self.db, GUIDE_AUDIENCES, required_only=True)
        required_ids = {m.id for m in required}
        completed_ids = (
            self.repo.get_completed_module_ids(self.db, [user_id])[user_id] if user_id else set()
        )
        completed = len(required_ids & completed_ids)
        return {
            "completed": completed,
            "total": len(required_ids),
            "percentage": training_percentage(completed, len(required_ids)),
        }

    def training_overview(self, user_id: Optional[int]) -> dict:
        return {
            "modules": self.modules_with_progress(user_id),
            "stats": self.stats_for_user(user_id),
        }

    def all_guides_stats(self) -> list[dict]:
        guides = (
            self.db.query(Guide)
            .filter(Guide.deleted_at.is_(None))
            .order_by(Guide.first_name, Guide.last_name)
            .all()
        )
        required_ids = {
            m.id for m in self.repo.get_modules(self.db, GUIDE_AUDIENCES, required_only=True)
        }
        user_ids = [g.user_id for g in guides if g.user_id]
        completed_by_user = self.repo.get_completed_module_ids(self.db, user_ids)

        results = []
        for guide in guides:
            completed = len(required_ids & completed_by_user.get(guide.user_id, set()))
            results.append(
                {
                    "guideId": guide.id,
                    "guideName": guide.full_name,
                    "completed": completed,
                    "total": len(required_ids),
                    "percentage": training_percentage(completed, len(required_ids)),
                }
            )
        return results
