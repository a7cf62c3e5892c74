#!/usr/bin/env python3
"""
Swing Sensor Fusion

Combines camera body metrics with Watch motion metrics into a single set of
swing metrics, scores and coaching suggestions. The Watch is the primary
source for timing, speed and impact; the camera supplies body position and
acts as the timing fallback when no Watch data is present.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import structlog

from roundcaddy.services.swing_capture import (
    BodySwingMetrics,
    CameraSwingPhase,
    CombinedSwingCapture,
    CombinedSwingMetrics,
    PoseFrame,
    RangeModeSettings,
    SwingFault,
    SwingPathType,
    SwingPhaseMarker,
    consistency_from_tempos,
)

logger = structlog.get_logger()

# Conversion factors
G_TO_MPH = 2.2
# Normalized frame height maps to roughly 6ft of visible body, ~70% of frame
FRAME_HEIGHT_INCHES = 72
BODY_FRAME_FRACTION = 0.7

SPINE_TOLERANCE_DEGREES = 10
FULL_ROTATION_FRACTION = 0.9

WATCH_PATH_LABELS = {
    "Inside-Out": SwingPathType.INSIDE_OUT,
    "Over-the-Top": SwingPathType.OUTSIDE_IN,
    "Outside-In": SwingPathType.OUTSIDE_IN,
    "Neutral": SwingPathType.NEUTRAL,
}


@dataclass
class CameraTiming:
    backswing_duration: Optional[float] = None
    downswing_duration: Optional[float] = None
    tempo_ratio: Optional[float] = None


def tempo_rating(ratio: float) -> str:
    """Human readable rating for a tempo ratio"""
    if 2.5 <= ratio < 3.5:
        return "Excellent"
    if 2.0 <= ratio < 2.5 or 3.5 <= ratio < 4.0:
        return "Good"
    if 1.5 <= ratio < 2.0 or 4.0 <= ratio < 4.5:
        return "Needs Work"
    return "Poor"


def camera_timing(phases: List[SwingPhaseMarker]) -> CameraTiming:
    """Backswing and downswing durations from camera phase markers"""
    by_phase = {marker.phase: marker for marker in phases}
    backswing = by_phase.get(CameraSwingPhase.BACKSWING)
    top = by_phase.get(CameraSwingPhase.TOP)
    impact = by_phase.get(CameraSwingPhase.IMPACT)

    timing = CameraTiming()
    if backswing is not None and top is not None:
        timing.backswing_duration = (top.timestamp - backswing.timestamp).total_seconds()
    if top is not None and impact is not None:
        timing.downswing_duration = (impact.timestamp - top.timestamp).total_seconds()

    if timing.backswing_duration is not None and timing.downswing_duration and timing.downswing_duration > 0:
        timing.tempo_ratio = timing.backswing_duration / timing.downswing_duration
    return timing


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class SwingFusionEngine:
    """Fuses camera and Watch captures into combined swing metrics"""

    def __init__(self, settings: Optional[RangeModeSettings] = None):
        self.settings = settings or RangeModeSettings()

    # ------------------------------------------------------------------
    # Body metrics
    # ------------------------------------------------------------------

    def calculate_body_metrics(self, frames: Sequence[PoseFrame]) -> BodySwingMetrics:
        metrics = BodySwingMetrics()
        if not frames:
            return metrics

        setup_spines = [f.spine_angle for f in frames[:5] if f.spine_angle is not None]
        if setup_spines:
            metrics.setup_spine_angle = float(np.mean(setup_spines))

        for frame in frames:
            if frame.left_hip is not None and frame.right_hip is not None:
                metrics.setup_hip_width = abs(frame.left_hip.x - frame.right_hip.x)
                break
        for frame in frames:
            if frame.left_shoulder is not None and frame.right_shoulder is not None:
                metrics.setup_shoulder_width = abs(frame.left_shoulder.x - frame.right_shoulder.x)
                break

        shoulder_frames = [f for f in frames if f.shoulder_rotation is not None]
        hip_turns = [f.hip_rotation for f in frames if f.hip_rotation is not None]

        if shoulder_frames:
            top_frame = max(shoulder_frames, key=lambda f: f.shoulder_rotation)
            metrics.max_shoulder_turn = top_frame.shoulder_rotation
            metrics.top_of_swing_spine_angle = top_frame.spine_angle
            final_turn = shoulder_frames[-1].shoulder_rotation
            if metrics.max_shoulder_turn > 0:
                metrics.full_rotation = final_turn >= FULL_ROTATION_FRACTION * metrics.max_shoulder_turn
        if hip_turns:
            metrics.max_hip_turn = max(hip_turns)
        if metrics.max_shoulder_turn is not None and metrics.max_hip_turn is not None:
            metrics.shoulder_hip_separation = metrics.max_shoulder_turn - metrics.max_hip_turn

        if metrics.setup_spine_angle is not None:
            deviations = [abs(f.spine_angle - metrics.setup_spine_angle) for f in frames if f.spine_angle is not None]
            if deviations:
                metrics.spine_angle_maintained = max(deviations) < SPINE_TOLERANCE_DEGREES

        nose_points = [f.nose for f in frames if f.nose is not None]
        if len(nose_points) > 2:
            xs = [p.x for p in nose_points]
            ys = [p.y for p in nose_points]
            metrics.head_movement = float(np.hypot(max(xs) - min(xs), max(ys) - min(ys)))

        hip_centers = [f.hip_center for f in frames if f.hip_center is not None]
        if len(hip_centers) >= 2:
            metrics.hip_slide = hip_centers[-1].x - hip_centers[0].x
        if hip_centers:
            finish_x = [c.x for c in hip_centers[-5:]]
            metrics.finish_balance = _clamp(1.0 - 20.0 * float(np.std(finish_x)), 0.0, 1.0)

        return metrics

    # ------------------------------------------------------------------
    # Fusion
    # ------------------------------------------------------------------

    def fuse(self, capture: CombinedSwingCapture, previous_tempos: Sequence[float] = ()) -> CombinedSwingMetrics:
        camera = capture.camera_capture
        watch = capture.watch_motion_data
        watch_metrics = watch.metrics if watch is not None else None
        body = camera.body_metrics if camera is not None else None

        combined = CombinedSwingMetrics(
            has_camera_data=camera is not None,
            has_watch_data=watch is not None,
        )

        # Timing, speed and impact
        if watch_metrics is not None:
            combined.tempo_ratio = watch_metrics.tempo_ratio
            combined.backswing_duration = watch_metrics.backswing_duration
            combined.downswing_duration = watch_metrics.downswing_duration
            combined.estimated_club_speed = watch_metrics.estimated_club_speed
            if watch_metrics.peak_wrist_acceleration is not None:
                combined.peak_wrist_speed = watch_metrics.peak_wrist_acceleration * G_TO_MPH
            combined.impact_quality = watch_metrics.impact_quality
            combined.impact_timestamp = watch_metrics.impact_timestamp
            combined.swing_path = WATCH_PATH_LABELS.get(watch_metrics.swing_path, SwingPathType.UNKNOWN)
        elif camera is not None:
            timing = camera_timing(camera.phases)
            combined.tempo_ratio = timing.tempo_ratio
            combined.backswing_duration = timing.backswing_duration
            combined.downswing_duration = timing.downswing_duration
            impact = camera.phase_marker(CameraSwingPhase.IMPACT)
            if impact is not None:
                combined.impact_timestamp = impact.timestamp

        # Body position
        if body is not None:
            combined.hip_turn_degrees = body.max_hip_turn
            combined.shoulder_turn_degrees = body.max_shoulder_turn
            combined.x_factor = body.shoulder_hip_separation
            combined.spine_angle_maintained = body.spine_angle_maintained
            if body.head_movement is not None:
                combined.head_movement_inches = body.head_movement * FRAME_HEIGHT_INCHES * BODY_FRAME_FRACTION
            combined.swing_plane_angle = body.top_of_swing_spine_angle

        # Scores
        if combined.tempo_ratio is not None:
            combined.tempo_score = max(0.0, 100.0 - abs(combined.tempo_ratio - self.settings.target_tempo) * 50.0)
        combined.balance_score = self._balance_score(body, combined.head_movement_inches)
        if combined.tempo_ratio is not None:
            combined.consistency_score = consistency_from_tempos(list(previous_tempos) + [combined.tempo_ratio])
        combined.overall_score = self._overall_score(combined)

        combined.primary_fault = self._detect_primary_fault(combined)
        combined.suggestions = self._suggestions(combined)

        logger.info(
            "Swing metrics fused",
            swing_id=capture.id,
            has_camera=combined.has_camera_data,
            has_watch=combined.has_watch_data,
            tempo=combined.tempo_ratio,
            overall_score=combined.overall_score,
            fault=combined.primary_fault.value if combined.primary_fault else None,
        )
        return combined

    @staticmethod
    def _balance_score(body: Optional[BodySwingMetrics], head_movement_inches: Optional[float]) -> Optional[float]:
        if body is None or body.finish_balance is None:
            return None
        score = body.finish_balance * 100.0
        if head_movement_inches is not None and head_movement_inches > 2.0:
            score -= (head_movement_inches - 2.0) * 10.0
        return _clamp(score, 0.0, 100.0)

    @staticmethod
    def _overall_score(metrics: CombinedSwingMetrics) -> Optional[float]:
        components: List[float] = []
        if metrics.tempo_score is not None:
            components.append(metrics.tempo_score)
        if metrics.impact_quality is not None:
            components.append(metrics.impact_quality * 100.0)
        if metrics.spine_angle_maintained:
            components.append(90.0)
        if metrics.x_factor is not None and metrics.x_factor > 30:
            components.append(80.0)

        if not components:
            return None
        return sum(components) / len(components)

    @staticmethod
    def _detect_primary_fault(metrics: CombinedSwingMetrics) -> Optional[SwingFault]:
        if metrics.spine_angle_maintained is False:
            return SwingFault.LOSS_OF_POSTURE
        if metrics.head_movement_inches is not None and metrics.head_movement_inches > 3.0:
            return SwingFault.SWAY_OFF
        if metrics.swing_path == SwingPathType.OUTSIDE_IN:
            return SwingFault.OVER_THE_TOP
        if metrics.x_factor is not None and metrics.x_factor < 20:
            return SwingFault.FLAT_SHOULDER_PLANE
        if metrics.tempo_ratio is not None and metrics.tempo_ratio < 2.0:
            return SwingFault.CASTING
        return None

    @staticmethod
    def _suggestions(metrics: CombinedSwingMetrics) -> List[str]:
        suggestions = []
        if metrics.primary_fault is not None:
            suggestions.append(metrics.primary_fault.tip)

        if metrics.tempo_ratio is not None:
            if metrics.tempo_ratio < 2.5:
                suggestions.append("Slow down your transition at the top")
            elif metrics.tempo_ratio > 3.5:
                suggestions.append("Accelerate more smoothly into the ball")

        if metrics.x_factor is not None and metrics.x_factor < 25:
            suggestions.append("Create more separation between shoulders and hips")

        return suggestions[:3]
