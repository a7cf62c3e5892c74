from pydantic import BaseModel
from typing import Any, Dict, Optional

from roundcaddy.schemas.range import WatchSwingMetricsSchema
from roundcaddy.services.watch_sync import RangeModeAction


class RangeModeMessageSchema(BaseModel):
    action: RangeModeAction
    timestamp: float  # Watch clock, seconds since epoch
    payload: Dict[str, Any] = {}


class WatchSessionSummarySchema(BaseModel):
    duration: float = 0.0
    swing_count: int = 0
    average_tempo: Optional[float] = None
    average_speed: Optional[float] = None
    best_tempo: Optional[float] = None
    best_speed: Optional[float] = None
    tempo_consistency: Optional[float] = None
    speed_consistency: Optional[float] = None

    class Config:
        from_attributes = True


class WatchMessageResponse(BaseModel):
    action: RangeModeAction
    samples_received: int = 0
    buffered_samples: int
    clock_offset: float
    session_active: bool
    swing_count: int
    reply: Optional[RangeModeMessageSchema] = None
    metrics: Optional[WatchSwingMetricsSchema] = None
    summary: Optional[WatchSessionSummarySchema] = None
