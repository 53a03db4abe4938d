from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import require_role
from ..database import get_db
from ..models import AuditLog, User

router = APIRouter(prefix="/api/audit-logs", tags=["Audit"])


class AuditLogResponse(BaseModel):
    id: int
    userId: Optional[int] = None
    userEmail: Optional[str] = None
    action: str
    entityType: str
    entityId: Optional[str] = None
    oldValues: Optional[dict[str, Any]] = None
    newValues: Optional[dict[str, Any]] = None
    ipAddress: Optional[str] = None
    createdAt: datetime


@router.get("", response_model=list[AuditLogResponse])
async def list_audit_logs(
    userId: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    entityType: Optional[str] = Query(None),
    entityId: Optional[str] = Query(None),
    startDate: Optional[date] = Query(None),
    endDate: Optional[date] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    """Staff actions, newest first"""
    query = db.query(AuditLog, User.email).outerjoin(User, User.id == AuditLog.user_id)
    if userId is not None:
        query = query.filter(AuditLog.user_id == userId)
    if action:
        query = query.filter(AuditLog.action == action)
    if entityType:
        query = query.filter(AuditLog.entity_type == entityType)
    if entityId:
        query = query.filter(AuditLog.entity_id == entityId)
    if startDate:
        query = query.filter(AuditLog.created_at >= datetime.combine(startDate, time.min))
    if endDate:
        query = query.filter(AuditLog.created_at < datetime.combine(endDate + timedelta(days=1), time.min))

    rows = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
    return [
        AuditLogResponse(
            id=log.id,
            userId=log.user_id,
            userEmail=email,
            action=log.action,
            entityType=log.entity_type,
            entityId=log.entity_id,
            oldValues=log.old_values,
            newValues=log.new_values,
            ipAddress=log.ip_address,
            createdAt=log.created_at,
        )
        for log, email in rows
    ]
