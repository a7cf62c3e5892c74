from pydantic import BaseModel
from typing import List, Optional

from roundcaddy.services.round_preferences import AccessLevel, RoundMode


class RoundPreferencesSchema(BaseModel):
    default_mode: RoundMode = RoundMode.FULL_TRACKING
    preferred_tees: str = "White"
    enable_shot_reminders: bool = True
    auto_advance_hole: bool = False
    show_yardage_markers: bool = True
    show_hazard_warnings: bool = True
    enable_voice_distances: bool = False
    keep_screen_on: bool = True

    class Config:
        from_attributes = True


class RoundModeFeaturesSchema(BaseModel):
    gps_enabled: bool
    shot_tracking: bool
    club_selection: bool
    stats_tracking: bool
    putts_tracking: bool
    fairway_tracking: bool
    gir_tracking: bool
    watch_sync: bool
    stroke_index: bool
    handicap_adjustment: bool
    attestation: bool

    class Config:
        from_attributes = True


class RoundModeResponse(BaseModel):
    mode: RoundMode
    display_name: str
    description: str
    features: RoundModeFeaturesSchema
    requires_pro: bool
    minimum_access_level: AccessLevel
    available: Optional[bool] = None  # set when the request names an access level


class RoundModesResponse(BaseModel):
    modes: List[RoundModeResponse]
