from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
from sqlalchemy.orm import Session
from roundcaddy.database import get_db
from roundcaddy.middleware.auth import get_current_user_id
from roundcaddy.schemas.preferences import (
    RoundModeFeaturesSchema,
    RoundModeResponse,
    RoundModesResponse,
    RoundPreferencesSchema,
)
from roundcaddy.services.round_preferences import (
    ROUND_MODES,
    AccessLevel,
    RoundPreferences,
    can_use_mode,
    get_round_preferences,
    save_round_preferences,
)
from roundcaddy.services.user_service import ensure_user
import structlog

logger = structlog.get_logger()
router = APIRouter(tags=["preferences"])


@router.get("/preferences/round", response_model=RoundPreferencesSchema)
async def read_round_preferences(
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Stored round preferences, or the defaults if none are saved."""
    try:
        return get_round_preferences(db, current_user_id)
    except Exception as e:
        logger.error("Failed to load round preferences", error=str(e), user_id=current_user_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to load preferences: {str(e)}"
        )


@router.put("/preferences/round", response_model=RoundPreferencesSchema)
async def replace_round_preferences(
    preferences: RoundPreferencesSchema,
    current_user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    try:
        ensure_user(db, current_user_id)
        return save_round_preferences(db, current_user_id, RoundPreferences(**preferences.model_dump()))
    except Exception as e:
        db.rollback()
        logger.error("Failed to save round preferences", error=str(e), user_id=current_user_id)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to save preferences: {str(e)}"
        )


@router.get("/round-modes", response_model=RoundModesResponse)
async def list_round_modes(access_level: Optional[AccessLevel] = Query(None)):
    """
    Feature table for each round mode.

    With access_level, each mode also reports whether that tier may use it.
    """
    return RoundModesResponse(modes=[
        RoundModeResponse(
            mode=config.mode,
            display_name=config.display_name,
            description=config.description,
            features=RoundModeFeaturesSchema.model_validate(config.features),
            requires_pro=config.requires_pro,
            minimum_access_level=config.minimum_access_level,
            available=can_use_mode(config.mode, access_level) if access_level is not None else None,
        )
        for config in ROUND_MODES.values()
    ])
