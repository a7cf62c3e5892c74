from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from roundcaddy.database import get_db
from roundcaddy.middleware.auth import get_current_user_id
from roundcaddy.schemas.round import RoundCreate, RoundResponse, RoundUpdate, StrokesGainedSummaryResponse
from roundcaddy.services.round_service import RoundNotFoundError, RoundService, RoundValidationError
from roundcaddy.services.user_service import ensure_user
import structlog

logger = structlog.get_logger()
router = APIRouter(prefix="/rounds", tags=["rounds"])


@router.post("", response_model=RoundResponse, status_code=status.HTTP_201_CREATED)
async def create_round(
    round_data: RoundCreate,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    try:
        ensure_user(db, current_user_id)
        return RoundService(db).create(current_user_id, round_data)

    except RoundValidationError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        db.rollback()
        logger.error("Failed to save round", error=str(e), user_id=current_user_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to save round: {str(e)}"
        )


@router.get("", response_model=List[RoundResponse])
async def list_rounds(
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """List the user's rounds, most recently played first."""
    try:
        return RoundService(db).list_for_user(current_user_id)
    except Exception as e:
        logger.error("Failed to retrieve rounds", error=str(e), user_id=current_user_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to retrieve rounds: {str(e)}"
        )


@router.get("/strokes-gained", response_model=StrokesGainedSummaryResponse)
async def get_strokes_gained_summary(
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Average strokes gained per round, with the weakest and strongest areas."""
    try:
        return RoundService(db).strokes_gained_summary(current_user_id)
    except Exception as e:
        logger.error("Failed to retrieve strokes gained", error=str(e), user_id=current_user_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to retrieve strokes gained: {str(e)}"
        )


@router.get("/{round_id}", response_model=RoundResponse)
async def get_round(
    round_id: int,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    try:
        return RoundService(db).get(current_user_id, round_id)
    except RoundNotFoundError:
        raise HTTPException(status_code=404, detail="Round not found")
    except Exception as e:
        logger.error("Failed to retrieve round", error=str(e), round_id=round_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to retrieve round: {str(e)}"
        )


@router.patch("/{round_id}", response_model=RoundResponse)
async def update_round(
    round_id: int,
    round_data: RoundUpdate,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Save the round edit form.

    Validation failures return 400 with a message the client can show as-is.
    """
    try:
        return RoundService(db).update(current_user_id, round_id, round_data)

    except RoundNotFoundError:
        raise HTTPException(status_code=404, detail="Round not found")
    except RoundValidationError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        db.rollback()
        logger.error("Failed to update round", error=str(e), round_id=round_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update round: {str(e)}"
        )
