from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from roundcaddy.services.swing_capture import (
    BodyTrackingMode,
    CameraSwingPhase,
    SwingFault,
    SwingPathType,
)


# ---------------------------------------------------------------------------
# Camera capture
# ---------------------------------------------------------------------------

class PosePointSchema(BaseModel):
    # Normalized image coordinates
    x: float = Field(ge=0, le=1)
    y: float = Field(ge=0, le=1)


class PoseFrameSchema(BaseModel):
    timestamp: datetime
    frame_index: int
    confidence: float = Field(0.0, ge=0, le=1)

    nose: Optional[PosePointSchema] = None
    left_shoulder: Optional[PosePointSchema] = None
    right_shoulder: Optional[PosePointSchema] = None
    left_elbow: Optional[PosePointSchema] = None
    right_elbow: Optional[PosePointSchema] = None
    left_wrist: Optional[PosePointSchema] = None
    right_wrist: Optional[PosePointSchema] = None
    left_hip: Optional[PosePointSchema] = None
    right_hip: Optional[PosePointSchema] = None
    left_knee: Optional[PosePointSchema] = None
    right_knee: Optional[PosePointSchema] = None
    left_ankle: Optional[PosePointSchema] = None
    right_ankle: Optional[PosePointSchema] = None

    spine_angle: Optional[float] = None
    hip_rotation: Optional[float] = None
    shoulder_rotation: Optional[float] = None
    left_arm_angle: Optional[float] = None
    right_arm_angle: Optional[float] = None


class SwingPhaseMarkerSchema(BaseModel):
    phase: CameraSwingPhase
    timestamp: datetime
    frame_index: int
    confidence: float


class BodySwingMetricsSchema(BaseModel):
    setup_spine_angle: Optional[float] = None
    setup_hip_width: Optional[float] = None
    setup_shoulder_width: Optional[float] = None
    max_hip_turn: Optional[float] = None
    max_shoulder_turn: Optional[float] = None
    shoulder_hip_separation: Optional[float] = None
    top_of_swing_spine_angle: Optional[float] = None
    spine_angle_maintained: Optional[bool] = None
    hip_slide: Optional[float] = None
    head_movement: Optional[float] = None
    finish_balance: Optional[float] = None
    full_rotation: Optional[bool] = None
    swing_plane_consistency: Optional[float] = None


class CameraSwingCaptureSchema(BaseModel):
    start_time: datetime
    end_time: datetime
    pose_frames: List[PoseFrameSchema] = []
    phases: List[SwingPhaseMarkerSchema] = []
    body_metrics: Optional[BodySwingMetricsSchema] = None


class CameraSwingCaptureResponse(CameraSwingCaptureSchema):
    duration: float
    frame_count: int
    fps: float


# ---------------------------------------------------------------------------
# Watch capture
# ---------------------------------------------------------------------------

class MotionSampleSchema(BaseModel):
    timestamp: datetime
    index: int
    acceleration_x: float
    acceleration_y: float
    acceleration_z: float
    rotation_x: float
    rotation_y: float
    rotation_z: float


class WatchSwingMetricsSchema(BaseModel):
    backswing_duration: Optional[float] = None
    downswing_duration: Optional[float] = None
    total_swing_duration: Optional[float] = None
    tempo_ratio: Optional[float] = None
    peak_wrist_acceleration: Optional[float] = None
    estimated_club_speed: Optional[float] = None
    peak_rotation_rate: Optional[float] = None
    impact_timestamp: Optional[datetime] = None
    impact_quality: Optional[float] = None
    impact_deceleration: Optional[float] = None
    lag_retained: Optional[bool] = None
    smoothness_score: Optional[float] = None
    consistency_with_previous: Optional[float] = None
    swing_path: Optional[str] = None


class WatchMotionCaptureSchema(BaseModel):
    start_time: datetime
    end_time: datetime
    samples: List[MotionSampleSchema] = []
    metrics: Optional[WatchSwingMetricsSchema] = None


class WatchMotionCaptureResponse(WatchMotionCaptureSchema):
    duration: float
    sample_count: int
    effective_sample_rate: float


# ---------------------------------------------------------------------------
# Fused metrics
# ---------------------------------------------------------------------------

class CombinedSwingMetricsSchema(BaseModel):
    has_camera_data: bool = False
    has_watch_data: bool = False

    tempo_ratio: Optional[float] = None
    backswing_duration: Optional[float] = None
    downswing_duration: Optional[float] = None

    estimated_club_speed: Optional[float] = None
    peak_wrist_speed: Optional[float] = None

    hip_turn_degrees: Optional[float] = None
    shoulder_turn_degrees: Optional[float] = None
    x_factor: Optional[float] = None
    spine_angle_maintained: Optional[bool] = None
    head_movement_inches: Optional[float] = None

    impact_quality: Optional[float] = None
    impact_timestamp: Optional[datetime] = None

    swing_path: SwingPathType = SwingPathType.UNKNOWN
    swing_plane_angle: Optional[float] = None

    sync_confidence: Optional[float] = None

    overall_score: Optional[float] = None
    consistency_score: Optional[float] = None
    tempo_score: Optional[float] = None
    balance_score: Optional[float] = None

    primary_fault: Optional[SwingFault] = None
    suggestions: List[str] = []


class CombinedSwingMetricsResponse(CombinedSwingMetricsSchema):
    tempo_rating: Optional[str] = None
    fault_description: Optional[str] = None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class RangeSessionCreate(BaseModel):
    selected_club: Optional[str] = None
    notes: Optional[str] = None
    tracking_mode: Optional[BodyTrackingMode] = None


class SwingCaptureCreate(BaseModel):
    timestamp: Optional[datetime] = None
    camera_capture: Optional[CameraSwingCaptureSchema] = None
    watch_motion_data: Optional[WatchMotionCaptureSchema] = None
    video_url: Optional[str] = None
    club: Optional[str] = None
    user_rating: Optional[int] = Field(default=None, ge=1, le=5)
    notes: Optional[str] = None


class SwingAnnotationUpdate(BaseModel):
    club: Optional[str] = None
    user_rating: Optional[int] = Field(default=None, ge=1, le=5)
    notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class SwingCaptureResponse(BaseModel):
    id: str
    timestamp: datetime
    camera_capture: Optional[CameraSwingCaptureResponse] = None
    watch_motion_data: Optional[WatchMotionCaptureResponse] = None
    combined_metrics: Optional[CombinedSwingMetricsResponse] = None
    video_url: Optional[str] = None
    club: Optional[str] = None
    user_rating: Optional[int] = None
    notes: Optional[str] = None
    has_sensor_data: bool


class RangeSessionSummaryResponse(BaseModel):
    id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    selected_club: Optional[str] = None
    notes: Optional[str] = None
    tracking_mode: Optional[BodyTrackingMode] = None
    is_active: bool
    duration: float
    swing_count: int
    average_tempo: Optional[float] = None
    average_club_speed: Optional[float] = None
    consistency_score: Optional[float] = None


class RangeSessionResponse(RangeSessionSummaryResponse):
    swings: List[SwingCaptureResponse] = []
