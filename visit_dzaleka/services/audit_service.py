"""
Audit trail for staff actions
Rows are added to the caller's session and committed with the change they describe
"""

import logging
from typing import Any, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from ..models import AuditLog
from ..rate_limiter import client_ip

logger = logging.getLogger(__name__)


def record_audit(
    db: Session,
    user_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Optional[Any] = None,
    old_values: Optional[dict] = None,
    new_values: Optional[dict] = None,
    request: Optional[Request] = None,
) -> AuditLog:
    ip_address = None
    user_agent = None
    if request is not None:
        ip_address = client_ip(request)
        user_agent = request.headers.get("User-Agent")

    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        old_values=old_values,
        new_values=new_values,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(entry)
    logger.debug(f"📝 Audit {action} {entity_type}:{entity_id} by user {user_id}")
    return entry
