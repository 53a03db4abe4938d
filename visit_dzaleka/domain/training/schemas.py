"""Training domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

TRAINING_AUDIENCES = ("guide", "visitor", "both")
PROGRESS_STATUSES = ("not_started", "in_progress", "completed")


class TrainingModuleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = None
    content: Optional[str] = None
    externalUrl: Optional[str] = None
    estimatedMinutes: int = Field(default=15, ge=1)
    sortOrder: int = 0
    isRequired: bool = False
    isActive: bool = True
    targetAudience: str = "guide"

    @field_validator("targetAudience")
    @classmethod
    def check_audience(cls, v):
        if v not in TRAINING_AUDIENCES:
            raise ValueError(f"Invalid target audience. Must be one of: {', '.join(TRAINING_AUDIENCES)}")
        return v


class TrainingModuleUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    content: Optional[str] = None
    externalUrl: Optional[str] = None
    estimatedMinutes: Optional[int] = Field(default=None, ge=1)
    sortOrder: Optional[int] = None
    isRequired: Optional[bool] = None
    isActive: Optional[bool] = None
    targetAudience: Optional[str] = None

    @field_validator("targetAudience")
    @classmethod
    def check_audience(cls, v):
        if v is not None and v not in TRAINING_AUDIENCES:
            raise ValueError(f"Invalid target audience. Must be one of: {', '.join(TRAINING_AUDIENCES)}")
        return v


class TrainingModuleResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    content: Optional[str] = None
    externalUrl: Optional[str] = None
    estimatedMinutes: int
    sortOrder: int
    isRequired: bool
    isActive: bool
    targetAudience: str
    createdAt: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProgressUpdate(BaseModel):
    status: str
    score: Optional[int] = Field(default=None, ge=0, le=100)

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        if v not in PROGRESS_STATUSES:
            raise ValueError("Invalid status. Must be not_started, in_progress, or completed")
        return v


class ProgressResponse(BaseModel):
    id: Optional[int] = None
    userId: Optional[int] = None
    moduleId: int
    status: str
    startedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    score: Optional[int] = None


def module_to_response(module) -> TrainingModuleResponse:
    return TrainingModuleResponse(
        id=module.id,
        title=module.title,
        description=module.description,
        category=module.category,
        content=module.content,
        externalUrl=module.external_url,
        estimatedMinutes=module.estimated_minutes,
        sortOrder=module.sort_order,
        isRequired=module.is_required,
        isActive=module.is_active,
        targetAudience=module.target_audience,
        createdAt=module.created_at,
    )


def progress_to_response(progress) -> ProgressResponse:
    return ProgressResponse(
        id=progress.id,
        userId=progress.user_id,
        moduleId=progress.module_id,
        status=progress.status,
        startedAt=progress.started_at,
        completedAt=progress.completed_at,
        score=progress.score,
    )
