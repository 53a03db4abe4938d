"""Training repository - Database operations for modules and progress"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import GuideTrainingProgress, TrainingModule

GUIDE_AUDIENCES = ("guide", "both")
VISITOR_AUDIENCES = ("visitor", "both")


class TrainingRepository:
    """Repository for training database operations"""

    @staticmethod
    def get_modules(
        db: Session,
        audiences: Optional[tuple] = None,
        include_inactive: bool = False,
        required_only: bool = False,
    ) -> list[TrainingModule]:
        query = db.query(TrainingModule)
        if not include_inactive:
            query = query.filter(TrainingModule.is_active.is_(True))
        if audiences:
            query = query.filter(TrainingModule.target_audience.in_(audiences))
        if required_only:
            query = query.filter(TrainingModule.is_required.is_(True))
        return query.order_by(TrainingModule.sort_order, TrainingModule.id).all()

    @staticmethod
    def get_module_by_id(db: Session, module_id: int) -> Optional[TrainingModule]:
        return db.query(TrainingModule).filter(TrainingModule.id == module_id).first()

    @staticmethod
    def create_module(db: Session, **module_data) -> TrainingModule:
        module = TrainingModule(**module_data)
        db.add(module)
        db.commit()
        db.refresh(module)
        return module

    @staticmethod
    def update_module(db: Session, module: TrainingModule, **updates) -> TrainingModule:
        for key, value in updates.items():
            if value is not None and hasattr(module, key):
                setattr(module, key, value)
        db.commit()
        db.refresh(module)
        return module

    @staticmethod
    def get_progress(db: Session, user_id: int) -> list[GuideTrainingProgress]:
        return (
            db.query(GuideTrainingProgress)
            .filter(GuideTrainingProgress.user_id == user_id)
            .all()
        )

    @staticmethod
    def get_progress_entry(db: Session, user_id: int, module_id: int) -> Optional[GuideTrainingProgress]:
        return (
            db.query(GuideTrainingProgress)
            .filter(
                GuideTrainingProgress.user_id == user_id,
                GuideTrainingProgress.module_id == module_id,
            )
            .first()
        )

    @staticmethod
    def get_completed_module_ids(db: Session, user_ids: list[int]) -> dict[int, set[int]]:
        """Completed module ids keyed by user id"""
        completed = {user_id: set() for user_id in user_ids}
        if not user_ids:
            return completed
        rows = (
            db.query(GuideTrainingProgress.user_id, GuideTrainingProgress.module_id)
            .filter(
                GuideTrainingProgress.user_id.in_(user_ids),
                GuideTrainingProgress.status == "completed",
            )
            .all()
        )
        for user_id, module_id in rows:
            completed[user_id].add(module_id)
        return completed
