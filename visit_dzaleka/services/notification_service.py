"""
In-app notification service
Notifications are written in the caller's transaction; the caller commits
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..auth import STAFF_ROLES
from ..models import Notification, User

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    user_id: int,
    notification_type: str,
    title: str,
    message: str,
    link: Optional[str] = None,
    related_id: Optional[str] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        link=link,
        related_id=related_id,
    )
    db.add(notification)
    logger.debug(f"🔔 Queued {notification_type} notification for user {user_id}")
    return notification


def notify_staff(
    db: Session,
    notification_type: str,
    title: str,
    message: str,
    link: Optional[str] = None,
    related_id: Optional[str] = None,
    roles: tuple[str, ...] = STAFF_ROLES,
) -> int:
    """
    Notify every active user holding one of the given roles

    Returns:
        Number of notifications created
    """
    recipients = (
        db.query(User.id).filter(User.role.in_(roles), User.is_active.is_(True)).all()
    )
    for (user_id,) in recipients:
        create_notification(db, user_id, notification_type, title, message, link, related_id)

    if recipients:
        logger.info(f"🔔 {notification_type} notification sent to {len(recipients)} staff users")
    return len(recipients)
