import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_role
from ..database import get_db
from ..models import Booking, Incident, User
from ..services.audit_service import record_audit
from ..services.notification_service import notify_staff
from ..utils.sanitization import sanitize_string

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/incidents", tags=["Incidents"])

INCIDENT_SEVERITIES = ("low", "medium", "high", "critical")
INCIDENT_STATUSES = ("reported", "investigating", "resolved", "closed")
INCIDENT_MANAGER_ROLES = ("admin", "coordinator", "security")

require_incident_manager = require_role(*INCIDENT_MANAGER_ROLES)


def _check_severity(v):
    if v is not None and v not in INCIDENT_SEVERITIES:
        raise ValueError(f"Invalid severity. Must be one of: {', '.join(INCIDENT_SEVERITIES)}")
    return v


class IncidentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    severity: str = "low"
    location: Optional[str] = None
    bookingId: Optional[int] = None

    @field_validator("severity")
    @classmethod
    def check_severity(cls, v):
        return _check_severity(v)


class IncidentUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    severity: Optional[str] = None
    status: Optional[str] = None
    location: Optional[str] = None
    resolutionNotes: Optional[str] = None

    @field_validator("severity")
    @classmethod
    def check_severity(cls, v):
        return _check_severity(v)

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        if v is not None and v not in INCIDENT_STATUSES:
            raise ValueError(f"Invalid status. Must be one of: {', '.join(INCIDENT_STATUSES)}")
        return v


class IncidentResolve(BaseModel):
    resolutionNotes: Optional[str] = None


class IncidentResponse(BaseModel):
    id: int
    title: str
    description: str
    severity: str
    status: str
    location: Optional[str] = None
    bookingId: Optional[int] = None
    reportedBy: Optional[int] = None
    resolvedBy: Optional[int] = None
    resolvedAt: Optional[datetime] = None
    resolutionNotes: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


def _to_response(incident: Incident) -> IncidentResponse:
    return IncidentResponse(
        id=incident.id,
        title=incident.title,
        description=incident.description,
        severity=incident.severity,
        status=incident.status,
        location=incident.location,
        bookingId=incident.booking_id,
        reportedBy=incident.reported_by,
        resolvedBy=incident.resolved_by,
        resolvedAt=incident.resolved_at,
        resolutionNotes=incident.resolution_notes,
        createdAt=incident.created_at,
        updatedAt=incident.updated_at,
    )


def _get_incident(db: Session, incident_id: int) -> Incident:
    incident = db.query(Incident).filter(Incident.id == incident_id).first()
    if not incident:
        raise HTTPException(status_code=404, detail="Incident not found")
    return incident


def _snapshot(incident: Incident) -> dict:
    return {
        "title": incident.title,
        "severity": incident.severity,
        "status": incident.status,
        "location": incident.location,
    }


@router.get("", response_model=list[IncidentResponse])
async def list_incidents(
    status: Optional[str] = Query(None),
    severity: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Incident managers see every report; everyone else only their own"""
    query = db.query(Incident)
    if current_user.role not in INCIDENT_MANAGER_ROLES:
        query = query.filter(Incident.reported_by == current_user.id)
    if status:
        query = query.filter(Incident.status == status)
    if severity:
        query = query.filter(Incident.severity == severity)
    return [_to_response(i) for i in query.order_by(Incident.created_at.desc(), Incident.id.desc()).all()]


@router.get("/{incident_id}", response_model=IncidentResponse)
async def get_incident(
    incident_id: int,
    current_user: User = Depends(require_incident_manager),
    db: Session = Depends(get_db),
):
    return _to_response(_get_incident(db, incident_id))


@router.post("", response_model=IncidentResponse, status_code=201)
async def report_incident(
    data: IncidentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """New reports always start as 'reported' and alert admins and security"""
    if data.bookingId is not None and not db.query(Booking.id).filter(Booking.id == data.bookingId).first():
        raise HTTPException(status_code=400, detail="Booking not found")

    incident = Incident(
        title=sanitize_string(data.title.strip()),
        description=sanitize_string(data.description),
        severity=data.severity,
        status="reported",
        location=sanitize_string(data.location),
        booking_id=data.bookingId,
        reported_by=current_user.id,
    )
    db.add(incident)
    db.flush()

    record_audit(db, current_user.id, "create", "incident", incident.id, new_values=_snapshot(incident))
    notify_staff(
        db,
        "incident_reported",
        f"New {incident.severity} incident",
        f"{current_user.full_name or current_user.email} reported: {incident.title}",
        link=f"/incidents/{incident.id}",
        related_id=str(incident.id),
        roles=("admin", "security"),
    )
    db.commit()
    db.refresh(incident)
    logger.info(f"🚨 Incident {incident.id} reported ({incident.severity}) by user {current_user.id}")
    return _to_response(incident)


@router.patch("/{incident_id}", response_model=IncidentResponse)
async def update_incident(
    incident_id: int,
    data: IncidentUpdate,
    current_user: User = Depends(require_incident_manager),
    db: Session = Depends(get_db),
):
    incident = _get_incident(db, incident_id)
    old_values = _snapshot(incident)

    if data.title is not None:
        incident.title = sanitize_string(data.title.strip())
    if data.description is not None:
        incident.description = sanitize_string(data.description)
    if data.severity is not None:
        incident.severity = data.severity
    if data.location is not None:
        incident.location = sanitize_string(data.location)
    if data.resolutionNotes is not None:
        incident.resolution_notes = sanitize_string(data.resolutionNotes)
    if data.status is not None and data.status != incident.status:
        incident.status = data.status
        if data.status in ("resolved", "closed") and not incident.resolved_at:
            incident.resolved_at = datetime.utcnow()
            incident.resolved_by = current_user.id
        elif data.status in ("reported", "investigating"):
            incident.resolved_at = None
            incident.resolved_by = None

    record_audit(
        db, current_user.id, "update", "incident", incident.id,
        old_values=old_values, new_values=_snapshot(incident),
    )
    db.commit()
    db.refresh(incident)
    return _to_response(incident)


@router.post("/{incident_id}/resolve", response_model=IncidentResponse)
async def resolve_incident(
    incident_id: int,
    data: Optional[IncidentResolve] = None,
    current_user: User = Depends(require_incident_manager),
    db: Session = Depends(get_db),
):
    incident = _get_incident(db, incident_id)
    if incident.status in ("resolved", "closed"):
        raise HTTPException(status_code=400, detail=f"Incident is already {incident.status}")

    old_values = _snapshot(incident)
    incident.status = "resolved"
    incident.resolved_at = datetime.utcnow()
    incident.resolved_by = current_user.id
    if data and data.resolutionNotes:
        incident.resolution_notes = sanitize_string(data.resolutionNotes)

    record_audit(
        db, current_user.id, "resolve", "incident", incident.id,
        old_values=old_values, new_values=_snapshot(incident),
    )
    db.commit()
    db.refresh(incident)
    logger.info(f"✅ Incident {incident.id} resolved by user {current_user.id}")
    return _to_response(incident)
