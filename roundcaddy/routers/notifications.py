from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from roundcaddy.database import get_db
from roundcaddy.middleware.auth import get_current_user_id
from roundcaddy.schemas.notification import MarkAllReadResponse, NotificationResponse, UnreadCountResponse
from roundcaddy.services.notification_service import NotificationNotFoundError, NotificationService
import structlog

logger = structlog.get_logger()
router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """List notifications newest first, optionally only unread ones."""
    try:
        return NotificationService(db).list_for_user(current_user_id, unread_only=unread_only)
    except Exception as e:
        logger.error("Failed to retrieve notifications", error=str(e), user_id=current_user_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to retrieve notifications: {str(e)}"
        )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    try:
        return UnreadCountResponse(count=NotificationService(db).unread_count(current_user_id))
    except Exception as e:
        logger.error("Failed to count notifications", error=str(e), user_id=current_user_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to count notifications: {str(e)}"
        )


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    try:
        return MarkAllReadResponse(updated=NotificationService(db).mark_all_read(current_user_id))
    except Exception as e:
        db.rollback()
        logger.error("Failed to mark notifications read", error=str(e), user_id=current_user_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to mark notifications read: {str(e)}"
        )


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Mark one notification read. Repeating the call is a no-op."""
    try:
        return NotificationService(db).mark_read(current_user_id, notification_id)
    except NotificationNotFoundError:
        raise HTTPException(status_code=404, detail="Notification not found")
    except Exception as e:
        db.rollback()
        logger.error(
            "Failed to mark notification read",
            error=str(e),
            notification_id=notification_id
        )
        raise HTTPException(
            status_code=500,
            detail=f"Failed to mark notification read: {str(e)}"
        )
