"""
Round mode configuration and per-user round preferences.
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict

import structlog
from sqlalchemy.orm import Session

from roundcaddy.models.preferences import UserPreferences

logger = structlog.get_logger()


class AccessLevel(str, Enum):
    """Subscription tiers, lowest first"""
    FREE = "free"
    GRACE_PERIOD = "grace_period"
    TRIAL = "trial"
    PRO = "pro"

    @property
    def rank(self) -> int:
        return list(AccessLevel).index(self)


class RoundMode(str, Enum):
    QUICK_SCORE = "quick_score"
    FULL_TRACKING = "full_tracking"
    TOURNAMENT = "tournament"


@dataclass(frozen=True)
class RoundModeFeatures:
    gps_enabled: bool
    shot_tracking: bool
    club_selection: bool
    stats_tracking: bool
    putts_tracking: bool
    fairway_tracking: bool
    gir_tracking: bool
    watch_sync: bool
    stroke_index: bool          # stroke index on the scorecard
    handicap_adjustment: bool   # playing handicap
    attestation: bool           # signature required


@dataclass(frozen=True)
class RoundModeConfig:
    mode: RoundMode
    display_name: str
    description: str
    features: RoundModeFeatures
    requires_pro: bool
    minimum_access_level: AccessLevel


_TRACKING_FEATURES = dict(
    gps_enabled=True,
    shot_tracking=True,
    club_selection=True,
    stats_tracking=True,
    putts_tracking=True,
    fairway_tracking=True,
    gir_tracking=True,
    watch_sync=True,
)

ROUND_MODES = {
    RoundMode.QUICK_SCORE: RoundModeConfig(
        mode=RoundMode.QUICK_SCORE,
        display_name="Quick Score",
        description="Just track scores. No GPS, no shot tracking - fastest way to log a round.",
        features=RoundModeFeatures(
            gps_enabled=False,
            shot_tracking=False,
            club_selection=False,
            stats_tracking=False,
            putts_tracking=True,
            fairway_tracking=False,
            gir_tracking=False,
            watch_sync=False,
            stroke_index=False,
            handicap_adjustment=False,
            attestation=False,
        ),
        requires_pro=False,
        minimum_access_level=AccessLevel.FREE,
    ),
    RoundMode.FULL_TRACKING: RoundModeConfig(
        mode=RoundMode.FULL_TRACKING,
        display_name="Full Tracking",
        description="GPS distances, shot tracking, and detailed statistics. Recommended for practice.",
        features=RoundModeFeatures(stroke_index=False, handicap_adjustment=False, attestation=False, **_TRACKING_FEATURES),
        requires_pro=False,
        minimum_access_level=AccessLevel.GRACE_PERIOD,
    ),
    RoundMode.TOURNAMENT: RoundModeConfig(
        mode=RoundMode.TOURNAMENT,
        display_name="Tournament",
        description="Competition-ready with handicap tracking, attestation, and stroke index display.",
        features=RoundModeFeatures(stroke_index=True, handicap_adjustment=True, attestation=True, **_TRACKING_FEATURES),
        requires_pro=True,
        minimum_access_level=AccessLevel.PRO,
    ),
}


@dataclass
class RoundPreferences:
    default_mode: RoundMode = RoundMode.FULL_TRACKING
    preferred_tees: str = "White"
    enable_shot_reminders: bool = True
    auto_advance_hole: bool = False
    show_yardage_markers: bool = True
    show_hazard_warnings: bool = True
    enable_voice_distances: bool = False
    keep_screen_on: bool = True

    def to_json(self) -> Dict[str, Any]:
        data = asdict(self)
        data["default_mode"] = self.default_mode.value
        return data

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "RoundPreferences":
        # Unknown keys are ignored; missing keys fall back to defaults
        known = {key: value for key, value in data.items() if key in cls.__dataclass_fields__}
        if "default_mode" in known:
            known["default_mode"] = RoundMode(known["default_mode"])
        return cls(**known)


def can_use_mode(mode: RoundMode, access_level: AccessLevel) -> bool:
    return access_level.rank >= ROUND_MODES[mode].minimum_access_level.rank


def get_round_preferences(db: Session, user_id: str) -> RoundPreferences:
    record = db.query(UserPreferences).filter(UserPreferences.user_id == user_id).first()
    if record is None or not record.round_preferences:
        return RoundPreferences()
    return RoundPreferences.from_json(record.round_preferences)


def save_round_preferences(db: Session, user_id: str, preferences: RoundPreferences) -> RoundPreferences:
    """Replace the stored preference blob"""
    record = db.query(UserPreferences).filter(UserPreferences.user_id == user_id).first()
    if record is None:
        record = UserPreferences(user_id=user_id)
        db.add(record)

    record.round_preferences = preferences.to_json()
    db.commit()

    logger.info("Round preferences saved", user_id=user_id, default_mode=preferences.default_mode.value)
    return preferences
