"""
In-app notifications.
"""

from enum import Enum
from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from roundcaddy.models.notification import Notification
from roundcaddy.services.swing_capture import utcnow

logger = structlog.get_logger()


class NotificationType(str, Enum):
    COURSE_CONFIRMED = "course_confirmed"
    COURSE_VERIFIED = "course_verified"
    CONTRIBUTION_APPROVED = "contribution_approved"
    CONTRIBUTION_REJECTED = "contribution_rejected"
    THANK_YOU_RECEIVED = "thank_you_received"
    QUESTION_ASKED = "question_asked"
    MILESTONE_REACHED = "milestone_reached"


class NotificationNotFoundError(Exception):
    pass


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        course_id: Optional[str] = None,
        contribution_id: Optional[str] = None,
        related_user_id: Optional[str] = None,
        commit: bool = True,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type.value,
            title=title,
            message=message,
            course_id=course_id,
            contribution_id=contribution_id,
            related_user_id=related_user_id,
            read=False,
            created_at=utcnow(),
        )
        self.db.add(notification)
        if commit:
            self.db.commit()
            self.db.refresh(notification)

        logger.info("Notification created", user_id=user_id, type=type.value)
        return notification

    def list_for_user(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.read.is_(False))
        return query.order_by(Notification.created_at.desc()).all()

    def unread_count(self, user_id: str) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.read.is_(False))
            .count()
        )

    def mark_read(self, user_id: str, notification_id: str) -> Notification:
        notification = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )
        if notification is None:
            raise NotificationNotFoundError(notification_id)

        # Already-read notifications keep their original read_at
        if not notification.read:
            notification.read = True
            notification.read_at = utcnow()
            self.db.commit()
            self.db.refresh(notification)
        return notification

    def mark_all_read(self, user_id: str) -> int:
        now = utcnow()
        unread = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.read.is_(False))
            .all()
        )
        for notification in unread:
            notification.read = True
            notification.read_at = now
        self.db.commit()

        logger.info("Notifications marked read", user_id=user_id, count=len(unread))
        return len(unread)
