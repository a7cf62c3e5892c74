from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from roundcaddy.services.notification_service import NotificationType


class NotificationResponse(BaseModel):
    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    course_id: Optional[str] = None
    contribution_id: Optional[str] = None
    related_user_id: Optional[str] = None
    read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class UnreadCountResponse(BaseModel):
    count: int


class MarkAllReadResponse(BaseModel):
    updated: int
