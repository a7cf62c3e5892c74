#!/usr/bin/env python3
"""
Camera Swing Phase Detection

Replays the live range-mode phase state machine over a recorded sequence of
pose frames. Frames arrive already pose-detected from the phone; this module
fills in any body angles the client did not send and marks the
setup -> takeaway -> ... -> finish transitions of the first complete swing.
"""

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import numpy as np
import structlog

from roundcaddy.services.swing_capture import (
    CameraSwingPhase,
    PoseFrame,
    PosePoint,
    SwingPhaseMarker,
)

logger = structlog.get_logger()


class PoseAngleCalculator:
    """
    Body angles from normalized 2D landmarks.

    Rotations are estimated from the apparent width of the shoulder or hip
    line: square to the camera shows the full width, a 90 degree turn
    collapses it to zero.
    """

    SHOULDER_MAX_WIDTH = 0.4
    HIP_MAX_WIDTH = 0.3

    @staticmethod
    def spine_angle(frame: PoseFrame) -> Optional[float]:
        """Angle of the hip-to-shoulder line from vertical, in degrees"""
        shoulder_center = frame.shoulder_center
        hip_center = frame.hip_center
        if shoulder_center is None or hip_center is None:
            return None

        spine_vector = np.array([
            shoulder_center.x - hip_center.x,
            shoulder_center.y - hip_center.y,
        ])
        norm = np.linalg.norm(spine_vector)
        if norm == 0:
            return None

        # Image y grows downward, so "up" is (0, -1)
        vertical = np.array([0.0, -1.0])
        cos_angle = np.clip(np.dot(spine_vector, vertical) / norm, -1.0, 1.0)
        return float(np.degrees(np.arccos(cos_angle)))

    @staticmethod
    def _width_rotation(left: Optional[PosePoint], right: Optional[PosePoint], max_width: float) -> Optional[float]:
        if left is None or right is None:
            return None
        normalized_width = min(abs(left.x - right.x) / max_width, 1.0)
        return float(np.degrees(np.arccos(normalized_width)))

    @classmethod
    def shoulder_rotation(cls, frame: PoseFrame) -> Optional[float]:
        return cls._width_rotation(frame.left_shoulder, frame.right_shoulder, cls.SHOULDER_MAX_WIDTH)

    @classmethod
    def hip_rotation(cls, frame: PoseFrame) -> Optional[float]:
        return cls._width_rotation(frame.left_hip, frame.right_hip, cls.HIP_MAX_WIDTH)

    @staticmethod
    def joint_angle(p1: Optional[PosePoint], vertex: Optional[PosePoint], p3: Optional[PosePoint]) -> Optional[float]:
        """Angle at vertex formed by p1-vertex-p3"""
        if p1 is None or vertex is None or p3 is None:
            return None

        v1 = np.array([p1.x - vertex.x, p1.y - vertex.y])
        v2 = np.array([p3.x - vertex.x, p3.y - vertex.y])
        denominator = np.linalg.norm(v1) * np.linalg.norm(v2)
        if denominator == 0:
            return None

        cos_angle = np.clip(np.dot(v1, v2) / denominator, -1.0, 1.0)
        return float(np.degrees(np.arccos(cos_angle)))

    @classmethod
    def enrich(cls, frame: PoseFrame) -> PoseFrame:
        """Return a copy of the frame with any computable missing angle filled in"""
        updates = {}
        if frame.spine_angle is None:
            updates["spine_angle"] = cls.spine_angle(frame)
        if frame.shoulder_rotation is None:
            updates["shoulder_rotation"] = cls.shoulder_rotation(frame)
        if frame.hip_rotation is None:
            updates["hip_rotation"] = cls.hip_rotation(frame)
        if frame.left_arm_angle is None:
            updates["left_arm_angle"] = cls.joint_angle(frame.left_shoulder, frame.left_elbow, frame.left_wrist)
        if frame.right_arm_angle is None:
            updates["right_arm_angle"] = cls.joint_angle(frame.right_shoulder, frame.right_elbow, frame.right_wrist)

        updates = {key: value for key, value in updates.items() if value is not None}
        if not updates:
            return frame
        return dataclasses.replace(frame, **updates)


@dataclass
class SwingDetectionConfig:
    """Thresholds for camera swing detection"""
    takeaway_threshold: float = 5              # degrees of rotation from setup
    backswing_start_threshold: float = 15      # shoulder rotation
    top_of_swing_min_rotation: float = 60
    downswing_velocity_threshold: float = 100  # degrees/second
    impact_hip_rotation_threshold: float = 15  # hips nearly square
    follow_through_threshold: float = 10
    min_swing_duration: float = 0.8            # seconds
    max_swing_duration: float = 2.0
    finish_stability_threshold: float = 5      # variance
    setup_stability_threshold: float = 3
    setup_confidence: float = 0.8
    buffer_size: int = 300                     # ~10 seconds at 30fps

    # Per-phase timeouts (seconds since last transition)
    takeaway_timeout: float = 1.0
    backswing_timeout: float = 2.0
    top_timeout: float = 0.5
    downswing_timeout: float = 0.5
    impact_timeout: float = 0.3


def _variance(values: List[float]) -> float:
    if len(values) <= 1:
        return 0.0
    return float(np.var(np.asarray(values, dtype=float)))


class CameraPhaseDetector:
    """Detect swing phase markers in a recorded pose sequence"""

    def __init__(self, config: Optional[SwingDetectionConfig] = None):
        self.config = config or SwingDetectionConfig()
        self._reset()

    def _reset(self):
        self.phase = CameraSwingPhase.SETUP
        self.setup_pose: Optional[PoseFrame] = None
        self.buffer: List[PoseFrame] = []
        self.swing_start: Optional[datetime] = None
        self.last_phase_change: Optional[datetime] = None
        self.markers: List[SwingPhaseMarker] = []
        self.completed = False

    def detect(self, frames: List[PoseFrame], impact_time: Optional[datetime] = None) -> List[SwingPhaseMarker]:
        """
        Run the phase state machine over frames.

        Args:
            frames: Pose frames; angles are computed where missing
            impact_time: Impact timestamp from Watch data, if known. When set,
                the downswing ends at the first frame at or after it.

        Returns:
            Markers for the first completed swing, or an empty list
        """
        self._reset()
        ordered = sorted((PoseAngleCalculator.enrich(f) for f in frames), key=lambda f: f.timestamp)

        for frame in ordered:
            self.buffer.append(frame)
            if len(self.buffer) > self.config.buffer_size:
                self.buffer.pop(0)

            self._process(frame, impact_time)
            if self.completed:
                logger.info(
                    "Camera swing phases detected",
                    markers=len(self.markers),
                    start_frame=self.markers[0].frame_index,
                    end_frame=self.markers[-1].frame_index,
                )
                return list(self.markers)

        logger.info("No complete swing in pose sequence", frames=len(ordered))
        return []

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _process(self, frame: PoseFrame, impact_time: Optional[datetime]):
        if self.phase == CameraSwingPhase.SETUP:
            self._detect_takeaway(frame)
        elif self.phase == CameraSwingPhase.TAKEAWAY:
            self._detect_backswing_start(frame)
        elif self.phase == CameraSwingPhase.BACKSWING:
            self._detect_top(frame)
        elif self.phase == CameraSwingPhase.TOP:
            self._detect_downswing_start(frame)
        elif self.phase == CameraSwingPhase.DOWNSWING:
            self._detect_impact(frame, impact_time)
        elif self.phase == CameraSwingPhase.IMPACT:
            self._detect_follow_through(frame)
        elif self.phase == CameraSwingPhase.FOLLOW_THROUGH:
            self._detect_finish(frame)

    def _recent_shoulder_rotations(self, count: int) -> List[float]:
        return [f.shoulder_rotation for f in self.buffer[-count:] if f.shoulder_rotation is not None]

    def _detect_takeaway(self, frame: PoseFrame):
        if self.setup_pose is None and frame.confidence > self.config.setup_confidence:
            self.setup_pose = frame

        setup = self.setup_pose
        if setup is None or setup.shoulder_rotation is None or frame.shoulder_rotation is None:
            return

        if abs(frame.shoulder_rotation - setup.shoulder_rotation) > self.config.takeaway_threshold:
            self.swing_start = frame.timestamp
            self.markers = [SwingPhaseMarker(
                phase=CameraSwingPhase.SETUP,
                timestamp=setup.timestamp,
                frame_index=setup.frame_index,
                confidence=setup.confidence,
            )]
            self._transition(CameraSwingPhase.TAKEAWAY, frame)

    def _detect_backswing_start(self, frame: PoseFrame):
        if frame.shoulder_rotation is not None and frame.shoulder_rotation > self.config.backswing_start_threshold:
            self._transition(CameraSwingPhase.BACKSWING, frame)
        self._check_timeout(frame, self.config.takeaway_timeout)

    def _detect_top(self, frame: PoseFrame):
        if frame.shoulder_rotation is not None and frame.hip_rotation is not None:
            recent = self._recent_shoulder_rotations(10)
            if len(recent) >= 5:
                # Rotation has started to come back down from its peak
                is_decreasing = recent[-1] < max(recent[:-2])
                if is_decreasing and frame.shoulder_rotation > self.config.top_of_swing_min_rotation:
                    self._transition(CameraSwingPhase.TOP, frame)
        self._check_timeout(frame, self.config.backswing_timeout)

    def _detect_downswing_start(self, frame: PoseFrame):
        if frame.shoulder_rotation is not None:
            window = [f for f in self.buffer[-5:] if f.shoulder_rotation is not None]
            if len(window) >= 3:
                span = (window[-1].timestamp - window[0].timestamp).total_seconds()
                drop = window[0].shoulder_rotation - window[-1].shoulder_rotation
                if span > 0:
                    velocity = drop / span
                else:
                    velocity = drop / len(window) * 30
                if velocity > self.config.downswing_velocity_threshold:
                    self._transition(CameraSwingPhase.DOWNSWING, frame)
        self._check_timeout(frame, self.config.top_timeout)

    def _detect_impact(self, frame: PoseFrame, impact_time: Optional[datetime]):
        if impact_time is not None and frame.timestamp >= impact_time:
            self._transition(CameraSwingPhase.IMPACT, frame)
            return

        if frame.hip_rotation is not None and frame.hip_rotation < self.config.impact_hip_rotation_threshold:
            self._transition(CameraSwingPhase.IMPACT, frame)
        self._check_timeout(frame, self.config.downswing_timeout)

    def _detect_follow_through(self, frame: PoseFrame):
        if frame.shoulder_rotation is not None and frame.shoulder_rotation < self.config.follow_through_threshold:
            self._transition(CameraSwingPhase.FOLLOW_THROUGH, frame)
        self._check_timeout(frame, self.config.impact_timeout)

    def _detect_finish(self, frame: PoseFrame):
        if self.swing_start is None:
            return

        elapsed = (frame.timestamp - self.swing_start).total_seconds()
        if elapsed > self.config.min_swing_duration:
            rotation_variance = _variance(self._recent_shoulder_rotations(10))
            if rotation_variance < self.config.finish_stability_threshold or elapsed > self.config.max_swing_duration:
                self._transition(CameraSwingPhase.FINISH, frame)
                self.completed = True

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _transition(self, new_phase: CameraSwingPhase, frame: Optional[PoseFrame]):
        if new_phase == self.phase:
            return

        logger.debug("Camera phase transition", from_phase=self.phase.value, to_phase=new_phase.value)
        self.phase = new_phase
        if frame is not None:
            self.last_phase_change = frame.timestamp
            self.markers.append(SwingPhaseMarker(
                phase=new_phase,
                timestamp=frame.timestamp,
                frame_index=frame.frame_index,
                confidence=frame.confidence,
            ))

    def _check_timeout(self, frame: PoseFrame, max_duration: float):
        if self.last_phase_change is None:
            return

        if (frame.timestamp - self.last_phase_change).total_seconds() > max_duration:
            logger.info("Swing cancelled", reason="Phase timeout", phase=self.phase.value)
            self.swing_start = None
            self.markers = []
            self.last_phase_change = None
            self.phase = CameraSwingPhase.SETUP
