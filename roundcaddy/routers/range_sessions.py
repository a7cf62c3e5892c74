from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from roundcaddy.database import get_db
from roundcaddy.middleware.auth import get_current_user_id
from roundcaddy.schemas.range import (
    RangeSessionCreate,
    RangeSessionResponse,
    RangeSessionSummaryResponse,
    SwingAnnotationUpdate,
    SwingCaptureCreate,
    SwingCaptureResponse,
)
from roundcaddy.services.capture_codec import session_to_response, session_to_summary, swing_to_response
from roundcaddy.services.range_session_service import (
    RangeSessionService,
    SessionClosedError,
    SessionNotFoundError,
    SwingNotFoundError,
)
from roundcaddy.services.watch_sync import watch_sync_registry
import structlog

logger = structlog.get_logger()
router = APIRouter(prefix="/range-sessions", tags=["range-sessions"])


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Range session not found")


def _closed() -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Range session has already ended")


@router.post("", response_model=RangeSessionResponse, status_code=status.HTTP_201_CREATED)
async def start_range_session(
    session_data: RangeSessionCreate,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Start a new range practice session.

    Args:
        session_data: Optional club, notes and tracking mode
        current_user_id: Current user ID from JWT token
        db: Database session

    Returns:
        The new, active session
    """
    try:
        session = RangeSessionService(db).start_session(current_user_id, session_data)
        return session_to_response(session)

    except Exception as e:
        db.rollback()
        logger.error(
            "Failed to start range session",
            error=str(e),
            user_id=current_user_id
        )
        raise HTTPException(
            status_code=500,
            detail=f"Failed to start range session: {str(e)}"
        )


@router.get("", response_model=List[RangeSessionSummaryResponse])
async def list_range_sessions(
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """List the user's sessions, newest first."""
    try:
        sessions = RangeSessionService(db).list_sessions(current_user_id)

        logger.info(
            "Retrieved range sessions",
            user_id=current_user_id,
            session_count=len(sessions)
        )

        return [session_to_summary(s) for s in sessions]

    except Exception as e:
        logger.error(
            "Failed to retrieve range sessions",
            error=str(e),
            user_id=current_user_id
        )
        raise HTTPException(
            status_code=500,
            detail=f"Failed to retrieve range sessions: {str(e)}"
        )


@router.get("/{session_id}", response_model=RangeSessionResponse)
async def get_range_session(
    session_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Fetch one session with its swings and derived metrics."""
    try:
        session = RangeSessionService(db).get_session(current_user_id, session_id)
        return session_to_response(session)

    except SessionNotFoundError:
        raise _not_found()
    except Exception as e:
        logger.error(
            "Failed to retrieve range session",
            error=str(e),
            session_id=session_id,
            user_id=current_user_id
        )
        raise HTTPException(
            status_code=500,
            detail=f"Failed to retrieve range session: {str(e)}"
        )


@router.post("/{session_id}/swings", response_model=SwingCaptureResponse, status_code=status.HTTP_201_CREATED)
async def record_swing(
    session_id: str,
    swing_data: SwingCaptureCreate,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Record a swing into an active session.

    Camera pose frames and Watch motion data are both optional. When the
    request carries no Watch data, the last swing window streamed from the
    user's Watch is attached instead. Phases, body metrics and fused scores
    are computed server-side.

    Returns:
        The recorded swing with its combined metrics
    """
    try:
        swing = RangeSessionService(db).record_swing(
            current_user_id,
            session_id,
            swing_data,
            watch_sync=watch_sync_registry.get(current_user_id),
        )
        return swing_to_response(swing)

    except SessionNotFoundError:
        raise _not_found()
    except SessionClosedError:
        raise _closed()
    except Exception as e:
        db.rollback()
        logger.error(
            "Failed to record swing",
            error=str(e),
            session_id=session_id,
            user_id=current_user_id
        )
        raise HTTPException(
            status_code=500,
            detail=f"Failed to record swing: {str(e)}"
        )


@router.patch("/{session_id}/swings/{swing_id}", response_model=SwingCaptureResponse)
async def annotate_swing(
    session_id: str,
    swing_id: str,
    annotation: SwingAnnotationUpdate,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Set club, rating (1-5) or notes on a recorded swing."""
    try:
        swing = RangeSessionService(db).annotate_swing(current_user_id, session_id, swing_id, annotation)
        return swing_to_response(swing)

    except SessionNotFoundError:
        raise _not_found()
    except SwingNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Swing not found")
    except Exception as e:
        db.rollback()
        logger.error(
            "Failed to annotate swing",
            error=str(e),
            session_id=session_id,
            swing_id=swing_id
        )
        raise HTTPException(
            status_code=500,
            detail=f"Failed to annotate swing: {str(e)}"
        )


@router.post("/{session_id}/end", response_model=RangeSessionResponse)
async def end_range_session(
    session_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """End an active session."""
    try:
        session = RangeSessionService(db).end_session(current_user_id, session_id)
        return session_to_response(session)

    except SessionNotFoundError:
        raise _not_found()
    except SessionClosedError:
        raise _closed()
    except Exception as e:
        db.rollback()
        logger.error(
            "Failed to end range session",
            error=str(e),
            session_id=session_id
        )
        raise HTTPException(
            status_code=500,
            detail=f"Failed to end range session: {str(e)}"
        )


@router.delete("/{session_id}")
async def delete_range_session(
    session_id: str,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Delete a session and all of its swings."""
    try:
        RangeSessionService(db).delete_session(current_user_id, session_id)
        return {"message": "Range session deleted successfully", "sessionId": session_id}

    except SessionNotFoundError:
        raise _not_found()
    except Exception as e:
        db.rollback()
        logger.error(
            "Failed to delete range session",
            error=str(e),
            session_id=session_id
        )
        raise HTTPException(
            status_code=500,
            detail=f"Failed to delete range session: {str(e)}"
        )
