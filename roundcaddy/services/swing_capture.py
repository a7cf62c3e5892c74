#!/usr/bin/env python3
"""
Range Mode Swing Capture Model

Data structures for a driving-range practice session. A session owns an
ordered list of swing captures; each capture may carry camera pose data,
Watch motion data, or both, plus the fused metrics computed from them.

Derived values (frame rate, sample rate, session averages, consistency)
are properties computed from the stored sequences and are never stored.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

import numpy as np


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from the database"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _seconds_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds()


class BodyTrackingMode(Enum):
    """Camera tracking backend used for a session"""
    VISION_2D = "2D (Standard)"
    ARKIT_3D = "3D (LiDAR)"


class CameraSwingPhase(Enum):
    """Swing phases as detected by the camera, in swing order"""
    SETUP = "Setup"
    TAKEAWAY = "Takeaway"
    BACKSWING = "Backswing"
    TOP = "Top"
    DOWNSWING = "Downswing"
    IMPACT = "Impact"
    FOLLOW_THROUGH = "Follow Through"
    FINISH = "Finish"


class SwingPathType(Enum):
    INSIDE_OUT = "Inside-Out"
    OUTSIDE_IN = "Outside-In"
    NEUTRAL = "Neutral"
    UNKNOWN = "Unknown"


class SwingFault(Enum):
    """Common swing faults with a description and a corrective tip"""
    OVER_THE_TOP = "Over the Top"
    EARLY_EXTENSION = "Early Extension"
    LOSS_OF_POSTURE = "Loss of Posture"
    SWAY_OFF = "Sway Off Ball"
    SLIDE_THROUGH = "Slide Through"
    CASTING = "Casting/Early Release"
    REVERSE_SPINE_ANGLE = "Reverse Spine Angle"
    FLAT_SHOULDER_PLANE = "Flat Shoulder Plane"
    CHICKEN_WING = "Chicken Wing"
    HANGING_BACK = "Hanging Back"

    @property
    def description(self) -> str:
        return _FAULT_DESCRIPTIONS[self]

    @property
    def tip(self) -> str:
        return _FAULT_TIPS[self]


_FAULT_DESCRIPTIONS = {
    SwingFault.OVER_THE_TOP: "Club moves outside the target line in the downswing",
    SwingFault.EARLY_EXTENSION: "Hips thrust toward the ball in the downswing",
    SwingFault.LOSS_OF_POSTURE: "Spine angle changes significantly during the swing",
    SwingFault.SWAY_OFF: "Excessive lateral movement away from target in backswing",
    SwingFault.SLIDE_THROUGH: "Excessive lateral movement toward target in downswing",
    SwingFault.CASTING: "Early release of wrist angle, losing lag",
    SwingFault.REVERSE_SPINE_ANGLE: "Upper body tilts toward target at top of backswing",
    SwingFault.FLAT_SHOULDER_PLANE: "Shoulders turn too flat, not enough tilt",
    SwingFault.CHICKEN_WING: "Lead elbow bends and moves away from body through impact",
    SwingFault.HANGING_BACK: "Weight stays on trail side through impact",
}

_FAULT_TIPS = {
    SwingFault.OVER_THE_TOP: "Feel like your hands drop down to start the downswing",
    SwingFault.EARLY_EXTENSION: "Keep your belt buckle pointing at the ball longer",
    SwingFault.LOSS_OF_POSTURE: "Maintain your spine angle throughout the swing",
    SwingFault.SWAY_OFF: "Keep your head centered over the ball",
    SwingFault.SLIDE_THROUGH: "Rotate your hips rather than sliding them",
    SwingFault.CASTING: "Feel like you're throwing the club from the inside",
    SwingFault.REVERSE_SPINE_ANGLE: "Keep your chest pointing at the ball at the top",
    SwingFault.FLAT_SHOULDER_PLANE: "Feel your lead shoulder work down in the backswing",
    SwingFault.CHICKEN_WING: "Keep your lead elbow pointing at the target through impact",
    SwingFault.HANGING_BACK: "Feel your weight shift to your lead foot at impact",
}


class VideoQuality(Enum):
    LOW = "720p"
    MEDIUM = "1080p"
    HIGH = "4K"


# ---------------------------------------------------------------------------
# Camera capture
# ---------------------------------------------------------------------------

@dataclass
class PosePoint:
    """Normalized image coordinate (0-1)"""
    x: float
    y: float


LANDMARK_NAMES = (
    "nose",
    "left_shoulder", "right_shoulder",
    "left_elbow", "right_elbow",
    "left_wrist", "right_wrist",
    "left_hip", "right_hip",
    "left_knee", "right_knee",
    "left_ankle", "right_ankle",
)


@dataclass
class PoseFrame:
    """A single frame of body pose data"""
    timestamp: datetime
    frame_index: int
    confidence: float = 0.0

    nose: Optional[PosePoint] = None
    left_shoulder: Optional[PosePoint] = None
    right_shoulder: Optional[PosePoint] = None
    left_elbow: Optional[PosePoint] = None
    right_elbow: Optional[PosePoint] = None
    left_wrist: Optional[PosePoint] = None
    right_wrist: Optional[PosePoint] = None
    left_hip: Optional[PosePoint] = None
    right_hip: Optional[PosePoint] = None
    left_knee: Optional[PosePoint] = None
    right_knee: Optional[PosePoint] = None
    left_ankle: Optional[PosePoint] = None
    right_ankle: Optional[PosePoint] = None

    # Derived angles (degrees)
    spine_angle: Optional[float] = None
    hip_rotation: Optional[float] = None
    shoulder_rotation: Optional[float] = None
    left_arm_angle: Optional[float] = None
    right_arm_angle: Optional[float] = None

    @property
    def hip_center(self) -> Optional[PosePoint]:
        if self.left_hip is None or self.right_hip is None:
            return None
        return PosePoint(
            (self.left_hip.x + self.right_hip.x) / 2,
            (self.left_hip.y + self.right_hip.y) / 2,
        )

    @property
    def shoulder_center(self) -> Optional[PosePoint]:
        if self.left_shoulder is None or self.right_shoulder is None:
            return None
        return PosePoint(
            (self.left_shoulder.x + self.right_shoulder.x) / 2,
            (self.left_shoulder.y + self.right_shoulder.y) / 2,
        )


@dataclass
class SwingPhaseMarker:
    """Marks a detected swing phase with its timestamp"""
    phase: CameraSwingPhase
    timestamp: datetime
    frame_index: int
    confidence: float


@dataclass
class BodySwingMetrics:
    """Body-based swing metrics computed from camera pose data"""
    # Setup position
    setup_spine_angle: Optional[float] = None
    setup_hip_width: Optional[float] = None
    setup_shoulder_width: Optional[float] = None

    # Backswing
    max_hip_turn: Optional[float] = None
    max_shoulder_turn: Optional[float] = None
    shoulder_hip_separation: Optional[float] = None
    top_of_swing_spine_angle: Optional[float] = None

    # Downswing & impact
    spine_angle_maintained: Optional[bool] = None
    hip_slide: Optional[float] = None
    head_movement: Optional[float] = None

    # Follow through
    finish_balance: Optional[float] = None
    full_rotation: Optional[bool] = None

    swing_plane_consistency: Optional[float] = None


@dataclass
class CameraSwingCapture:
    """Data captured from the phone camera"""
    start_time: datetime
    end_time: datetime
    pose_frames: List[PoseFrame] = field(default_factory=list)
    phases: List[SwingPhaseMarker] = field(default_factory=list)
    body_metrics: Optional[BodySwingMetrics] = None

    @property
    def duration(self) -> float:
        return _seconds_between(self.start_time, self.end_time)

    @property
    def frame_count(self) -> int:
        return len(self.pose_frames)

    @property
    def average_confidence(self) -> float:
        if not self.pose_frames:
            return 0.0
        return sum(f.confidence for f in self.pose_frames) / len(self.pose_frames)

    @property
    def fps(self) -> float:
        if self.duration <= 0:
            return 0.0
        return self.frame_count / self.duration

    def phase_marker(self, phase: CameraSwingPhase) -> Optional[SwingPhaseMarker]:
        for marker in self.phases:
            if marker.phase == phase:
                return marker
        return None


# ---------------------------------------------------------------------------
# Watch capture
# ---------------------------------------------------------------------------

@dataclass
class MotionSample:
    """A single motion sample from the Watch sensors"""
    timestamp: datetime
    index: int

    # Accelerometer (g)
    acceleration_x: float
    acceleration_y: float
    acceleration_z: float

    # Gyroscope (rad/s)
    rotation_x: float
    rotation_y: float
    rotation_z: float

    @property
    def total_acceleration(self) -> float:
        return math.sqrt(self.acceleration_x ** 2 + self.acceleration_y ** 2 + self.acceleration_z ** 2)

    @property
    def total_rotation(self) -> float:
        return math.sqrt(self.rotation_x ** 2 + self.rotation_y ** 2 + self.rotation_z ** 2)


@dataclass
class WatchSwingMetrics:
    """Swing metrics derived from Watch motion data"""
    # Timing
    backswing_duration: Optional[float] = None
    downswing_duration: Optional[float] = None
    total_swing_duration: Optional[float] = None
    tempo_ratio: Optional[float] = None

    # Speed
    peak_wrist_acceleration: Optional[float] = None
    estimated_club_speed: Optional[float] = None
    peak_rotation_rate: Optional[float] = None

    # Impact
    impact_timestamp: Optional[datetime] = None
    impact_quality: Optional[float] = None
    impact_deceleration: Optional[float] = None

    # Pattern analysis
    lag_retained: Optional[bool] = None
    smoothness_score: Optional[float] = None
    consistency_with_previous: Optional[float] = None
    swing_path: Optional[str] = None


@dataclass
class WatchMotionCapture:
    """High-frequency motion data captured on the Watch during a swing"""
    start_time: datetime
    end_time: datetime
    samples: List[MotionSample] = field(default_factory=list)
    metrics: Optional[WatchSwingMetrics] = None

    @property
    def duration(self) -> float:
        return _seconds_between(self.start_time, self.end_time)

    @property
    def sample_count(self) -> int:
        return len(self.samples)

    @property
    def effective_sample_rate(self) -> float:
        if self.duration <= 0:
            return 0.0
        return self.sample_count / self.duration


# ---------------------------------------------------------------------------
# Fusion output and session
# ---------------------------------------------------------------------------

@dataclass
class CombinedSwingMetrics:
    """Metrics computed by combining camera and Watch data"""
    has_camera_data: bool = False
    has_watch_data: bool = False

    # Timing (Watch primary, camera fallback)
    tempo_ratio: Optional[float] = None
    backswing_duration: Optional[float] = None
    downswing_duration: Optional[float] = None

    # Speed (Watch)
    estimated_club_speed: Optional[float] = None
    peak_wrist_speed: Optional[float] = None

    # Body position (camera)
    hip_turn_degrees: Optional[float] = None
    shoulder_turn_degrees: Optional[float] = None
    x_factor: Optional[float] = None
    spine_angle_maintained: Optional[bool] = None
    head_movement_inches: Optional[float] = None

    # Impact (Watch primary, camera validation)
    impact_quality: Optional[float] = None
    impact_timestamp: Optional[datetime] = None

    # Swing path
    swing_path: SwingPathType = SwingPathType.UNKNOWN
    swing_plane_angle: Optional[float] = None

    # Camera and Watch agreement for this swing (0-1)
    sync_confidence: Optional[float] = None

    # Scores (0-100)
    overall_score: Optional[float] = None
    consistency_score: Optional[float] = None
    tempo_score: Optional[float] = None
    balance_score: Optional[float] = None

    primary_fault: Optional[SwingFault] = None
    suggestions: List[str] = field(default_factory=list)


@dataclass
class CombinedSwingCapture:
    """A single swing with optional camera and Watch data"""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=utcnow)

    camera_capture: Optional[CameraSwingCapture] = None
    watch_motion_data: Optional[WatchMotionCapture] = None
    combined_metrics: Optional[CombinedSwingMetrics] = None

    video_url: Optional[str] = None

    # User annotations
    club: Optional[str] = None
    user_rating: Optional[int] = None
    notes: Optional[str] = None

    @property
    def has_sensor_data(self) -> bool:
        return self.camera_capture is not None or self.watch_motion_data is not None


def consistency_from_tempos(tempos: List[float]) -> Optional[float]:
    """100 - 100 * population stddev of tempo ratios, clamped to 0-100"""
    if len(tempos) < 3:
        return None
    std_dev = float(np.std(np.asarray(tempos, dtype=float)))
    return max(0.0, min(100.0, 100.0 - std_dev * 100.0))


@dataclass
class RangeSession:
    """A complete practice session at the driving range"""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    start_time: datetime = field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    swings: List[CombinedSwingCapture] = field(default_factory=list)
    selected_club: Optional[str] = None
    notes: Optional[str] = None
    tracking_mode: Optional[BodyTrackingMode] = None

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    @property
    def duration(self) -> float:
        return _seconds_between(self.start_time, self.end_time or utcnow())

    @property
    def swing_count(self) -> int:
        return len(self.swings)

    def _metric_values(self, name: str) -> List[float]:
        values = []
        for swing in self.swings:
            metrics = swing.combined_metrics
            if metrics is not None and getattr(metrics, name) is not None:
                values.append(getattr(metrics, name))
        return values

    @property
    def tempo_ratios(self) -> List[float]:
        return self._metric_values("tempo_ratio")

    @property
    def average_tempo(self) -> Optional[float]:
        tempos = self.tempo_ratios
        if not tempos:
            return None
        return sum(tempos) / len(tempos)

    @property
    def average_club_speed(self) -> Optional[float]:
        speeds = self._metric_values("estimated_club_speed")
        if not speeds:
            return None
        return sum(speeds) / len(speeds)

    @property
    def consistency_score(self) -> Optional[float]:
        if self.swing_count < 3:
            return None
        return consistency_from_tempos(self.tempo_ratios)


@dataclass
class RangeModeSettings:
    """User preferences for Range Mode"""
    record_video: bool = True
    show_live_metrics: bool = True
    target_tempo: float = 3.0
    auto_detect_swing: bool = True
    haptic_feedback: bool = True
    voice_feedback: bool = False
    show_skeleton_overlay: bool = True
    video_quality: VideoQuality = VideoQuality.HIGH
    slow_motion_capture: bool = True
    auto_end_after_minutes: Optional[int] = None
    reminder_interval: Optional[int] = 10
