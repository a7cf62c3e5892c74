from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from roundcaddy.services.strokes_gained import ApproachResult


class HoleEntrySchema(BaseModel):
    hole_number: Optional[int] = None
    par: int = Field(ge=3, le=6)
    score: int = Field(gt=0)
    putts: int = Field(ge=0)
    fairway_hit: Optional[bool] = None
    gir: bool = False
    penalties: int = Field(0, ge=0)
    approach_distance: Optional[float] = Field(None, ge=0)  # yards
    approach_result: Optional[ApproachResult] = None
    first_putt_distance: Optional[float] = Field(None, ge=0)  # feet


class RoundBase(BaseModel):
    # Required, but checked by the service so the client gets a displayable message
    course_name: Optional[str] = None
    course_id: Optional[str] = None
    played_at: Optional[datetime] = None
    total_score: Optional[int] = None
    total_putts: Optional[int] = None
    fairways_hit: Optional[int] = None
    fairways_total: Optional[int] = None
    gir: Optional[int] = None
    penalties: Optional[int] = None
    course_rating: Optional[float] = None
    slope_rating: Optional[int] = None
    sg_total: Optional[float] = None
    sg_off_tee: Optional[float] = None
    sg_approach: Optional[float] = None
    sg_around_green: Optional[float] = None
    sg_putting: Optional[float] = None
    scoring_format: Optional[str] = None
    holes: Optional[List[HoleEntrySchema]] = None


class RoundCreate(RoundBase):
    # Per-hole yardages for strokes gained, in hole order
    hole_yardages: Optional[List[Optional[float]]] = None


class RoundUpdate(BaseModel):
    """Round edit form; every field is optional, validation happens in the service"""
    course_name: Optional[str] = None
    course_id: Optional[str] = None
    played_at: Optional[datetime] = None
    total_score: Optional[int] = None
    total_putts: Optional[int] = None
    fairways_hit: Optional[int] = None
    fairways_total: Optional[int] = None
    gir: Optional[int] = None
    penalties: Optional[int] = None
    course_rating: Optional[float] = None
    slope_rating: Optional[int] = None
    scoring_format: Optional[str] = None


class RoundResponse(RoundBase):
    id: int
    user_id: str
    course_name: str
    total_score: int
    played_at: datetime
    fairways_total: int
    penalties: int
    created_at: datetime

    class Config:
        from_attributes = True


class AreaRatingResponse(BaseModel):
    area: str
    value: float
    recommendation: Optional[str] = None


class StrokesGainedSummaryResponse(BaseModel):
    """Per-round average over every round with a strokes gained breakdown"""
    rounds_count: int
    sg_total: float
    sg_off_tee: float
    sg_approach: float
    sg_around_green: float
    sg_putting: float
    weakest_area: Optional[AreaRatingResponse] = None
    strongest_area: Optional[AreaRatingResponse] = None
