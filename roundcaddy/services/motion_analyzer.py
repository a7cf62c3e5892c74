#!/usr/bin/env python3
"""
Watch Motion Swing Analysis

Replays the Watch's accelerometer/gyroscope swing detector over a recorded
sample stream and derives timing, speed, impact and path metrics for the
first complete swing.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np
import structlog

from roundcaddy.services.swing_capture import MotionSample, WatchSwingMetrics

logger = structlog.get_logger()

G_TO_MPH = 2.2
CLUB_TO_HAND_SPEED = 4.0


class WatchSwingPhase(Enum):
    IDLE = "idle"
    ADDRESS = "address"
    BACKSWING = "backswing"
    TOP_OF_SWING = "top_of_swing"
    DOWNSWING = "downswing"
    IMPACT = "impact"
    FOLLOW_THROUGH = "follow_through"
    FINISHED = "finished"


class SwingType(Enum):
    FULL_SWING = "full_swing"
    IRON_SWING = "iron_swing"
    CHIP_OR_PITCH = "chip_or_pitch"
    PUTT = "putt"
    UNKNOWN = "unknown"


def classify_swing_type(peak_g_force: float, tempo_ratio: Optional[float]) -> SwingType:
    """Classify a swing by peak g-force and tempo"""
    tempo = tempo_ratio or 0.0
    if peak_g_force > 10 and tempo > 2.0:
        return SwingType.FULL_SWING
    if peak_g_force > 6 and tempo > 2.0:
        return SwingType.IRON_SWING
    if 3 < peak_g_force <= 6:
        return SwingType.CHIP_OR_PITCH
    if peak_g_force <= 3:
        return SwingType.PUTT
    return SwingType.UNKNOWN


def swing_path_from_rotation(rotation_x: Sequence[float]) -> Optional[str]:
    """
    Read swing path from x-axis rotation over the downswing.

    Positive mean rotation over the last 30 samples is inside-out, negative
    is over-the-top. Needs at least 50 samples of history.
    """
    if len(rotation_x) < 50:
        return None

    avg_rotation = float(np.mean(rotation_x[-30:]))
    if avg_rotation > 3.0:
        return "Inside-Out"
    if avg_rotation < -3.0:
        return "Over-the-Top"
    return "Neutral"


def smoothness_score(accelerations: Sequence[float]) -> Optional[float]:
    """1 / (1 + mean absolute change in acceleration magnitude)"""
    if len(accelerations) < 2:
        return None
    jerk = np.abs(np.diff(np.asarray(accelerations, dtype=float)))
    return float(1.0 / (1.0 + jerk.mean()))


class WatchMotionAnalyzer:
    """Phase-tracking swing detector for Watch motion samples"""

    MIN_BACKSWING_DURATION = 0.3
    MAX_BACKSWING_DURATION = 2.5
    MIN_DOWNSWING_DURATION = 0.1
    MAX_DOWNSWING_DURATION = 0.8
    MAX_TRANSITION_DURATION = 1.0
    MAX_BUFFER_SIZE = 300

    def __init__(self, sensitivity: float = 1.0):
        self.sensitivity = sensitivity
        self.swing_type = SwingType.UNKNOWN
        self._reset()

    @property
    def backswing_start_threshold(self) -> float:
        return 1.5 * self.sensitivity

    @property
    def top_of_swing_threshold(self) -> float:
        return 0.8 * self.sensitivity

    @property
    def downswing_threshold(self) -> float:
        return 4.0 * self.sensitivity

    @property
    def impact_threshold(self) -> float:
        return 8.0 * self.sensitivity

    @property
    def impact_deceleration_threshold(self) -> float:
        return 6.0 * self.sensitivity

    def _reset(self):
        self.phase = WatchSwingPhase.IDLE
        self.acceleration_buffer: List[float] = []
        self.rotation_x_buffer: List[float] = []
        self.swing_accelerations: List[float] = []

        self.phase_start: Optional[datetime] = None
        self.address_start: Optional[datetime] = None
        self.backswing_start: Optional[datetime] = None
        self.top_time: Optional[datetime] = None
        self.downswing_start: Optional[datetime] = None
        self.impact_time: Optional[datetime] = None

        self.backswing_duration: Optional[float] = None
        self.downswing_duration: Optional[float] = None
        self.peak_g_force = 0.0
        self.peak_g_time: Optional[datetime] = None
        self.peak_rotation_rate = 0.0
        self.impact_deceleration: Optional[float] = None

    def analyze(self, samples: Sequence[MotionSample]) -> Optional[WatchSwingMetrics]:
        """
        Detect the first complete swing in a sample stream.

        Returns:
            WatchSwingMetrics for that swing, or None when no swing completed
        """
        self._reset()
        self.swing_type = SwingType.UNKNOWN

        for sample in sorted(samples, key=lambda s: s.timestamp):
            acceleration = sample.total_acceleration
            rotation = sample.total_rotation

            self.acceleration_buffer.append(acceleration)
            self.rotation_x_buffer.append(sample.rotation_x)
            if len(self.acceleration_buffer) > self.MAX_BUFFER_SIZE:
                self.acceleration_buffer.pop(0)
                self.rotation_x_buffer.pop(0)
            if self.backswing_start is not None:
                self.swing_accelerations.append(acceleration)

            self._process(acceleration, rotation, sample.timestamp)
            if self.phase == WatchSwingPhase.FINISHED:
                return self._complete()

        # Stream ended after the downswing finished; the swing still counts
        if self.phase in (WatchSwingPhase.IMPACT, WatchSwingPhase.FOLLOW_THROUGH):
            return self._complete()

        logger.info("No complete swing in Watch samples", samples=len(samples), phase=self.phase.value)
        return None

    # ------------------------------------------------------------------
    # Phase processing
    # ------------------------------------------------------------------

    def _process(self, acceleration: float, rotation: float, timestamp: datetime):
        if self.phase == WatchSwingPhase.IDLE:
            self._detect_address(acceleration, rotation, timestamp)
        elif self.phase == WatchSwingPhase.ADDRESS:
            self._detect_backswing_start(acceleration, rotation, timestamp)
        elif self.phase == WatchSwingPhase.BACKSWING:
            self._detect_top(acceleration, rotation, timestamp)
        elif self.phase == WatchSwingPhase.TOP_OF_SWING:
            self._detect_downswing_start(acceleration, timestamp)
        elif self.phase == WatchSwingPhase.DOWNSWING:
            self._detect_impact(acceleration, rotation, timestamp)
        elif self.phase == WatchSwingPhase.IMPACT:
            self._transition(WatchSwingPhase.FOLLOW_THROUGH, timestamp)
        elif self.phase == WatchSwingPhase.FOLLOW_THROUGH:
            self._detect_swing_end(acceleration, timestamp)

    def _start_backswing(self, acceleration: float, timestamp: datetime):
        self.backswing_start = timestamp
        self.swing_accelerations = [acceleration]
        self._transition(WatchSwingPhase.BACKSWING, timestamp)

    def _detect_address(self, acceleration: float, rotation: float, timestamp: datetime):
        if acceleration < 0.5 and rotation < 1.0:
            if self.address_start is None:
                self.address_start = timestamp
            elif (timestamp - self.address_start).total_seconds() > 0.5:
                self._transition(WatchSwingPhase.ADDRESS, timestamp)
        else:
            self.address_start = None

        # Swing can start without a settled address
        if acceleration > self.backswing_start_threshold and rotation > 2.0:
            self._start_backswing(acceleration, timestamp)

    def _detect_backswing_start(self, acceleration: float, rotation: float, timestamp: datetime):
        if acceleration > self.backswing_start_threshold and rotation > 2.0:
            self._start_backswing(acceleration, timestamp)
            return

        if self.phase_start is not None and (timestamp - self.phase_start).total_seconds() > 3.0:
            self._transition(WatchSwingPhase.IDLE, timestamp)

    def _detect_top(self, acceleration: float, rotation: float, timestamp: datetime):
        backswing_duration = (timestamp - self.backswing_start).total_seconds()

        if backswing_duration >= self.MIN_BACKSWING_DURATION:
            if rotation < self.top_of_swing_threshold and acceleration < 2.0:
                self.top_time = timestamp
                self.backswing_duration = backswing_duration
                self._transition(WatchSwingPhase.TOP_OF_SWING, timestamp)
                return

        if backswing_duration > self.MAX_BACKSWING_DURATION:
            self._cancel("Backswing too long")

    def _detect_downswing_start(self, acceleration: float, timestamp: datetime):
        if acceleration > self.downswing_threshold:
            self.downswing_start = timestamp
            self._transition(WatchSwingPhase.DOWNSWING, timestamp)
            return

        if (timestamp - self.top_time).total_seconds() > self.MAX_TRANSITION_DURATION:
            self._cancel("Transition too slow")

    def _detect_impact(self, acceleration: float, rotation: float, timestamp: datetime):
        downswing_duration = (timestamp - self.downswing_start).total_seconds()

        if acceleration > self.peak_g_force:
            self.peak_g_force = acceleration
            self.peak_g_time = timestamp
        if rotation > self.peak_rotation_rate:
            self.peak_rotation_rate = rotation

        if downswing_duration >= self.MIN_DOWNSWING_DURATION:
            recent = self.acceleration_buffer[-5:]
            if len(recent) >= 5:
                peak = max(recent)
                deceleration = peak - recent[-1]
                if peak > self.impact_threshold and deceleration > self.impact_deceleration_threshold:
                    self.impact_time = timestamp
                    self.impact_deceleration = deceleration
                    self.downswing_duration = downswing_duration
                    self._transition(WatchSwingPhase.IMPACT, timestamp)
                    return

        # Missed impact; the swing still completes
        if downswing_duration > self.MAX_DOWNSWING_DURATION:
            self.downswing_duration = downswing_duration
            self._transition(WatchSwingPhase.IMPACT, timestamp)

    def _detect_swing_end(self, acceleration: float, timestamp: datetime):
        if acceleration < 1.5:
            self._transition(WatchSwingPhase.FINISHED, timestamp)
        elif self.impact_time is not None and (timestamp - self.impact_time).total_seconds() > 1.0:
            self._transition(WatchSwingPhase.FINISHED, timestamp)

    def _transition(self, new_phase: WatchSwingPhase, timestamp: datetime):
        if new_phase != self.phase:
            logger.debug("Watch phase transition", from_phase=self.phase.value, to_phase=new_phase.value)
        self.phase = new_phase
        self.phase_start = timestamp

    def _cancel(self, reason: str):
        logger.info("Watch swing cancelled", reason=reason)
        self._reset()

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def _complete(self) -> WatchSwingMetrics:
        metrics = WatchSwingMetrics(
            backswing_duration=self.backswing_duration,
            downswing_duration=self.downswing_duration,
            peak_wrist_acceleration=self.peak_g_force,
            peak_rotation_rate=self.peak_rotation_rate,
        )

        if self.backswing_duration is not None and self.downswing_duration is not None:
            metrics.total_swing_duration = self.backswing_duration + self.downswing_duration
            if self.downswing_duration > 0:
                metrics.tempo_ratio = self.backswing_duration / self.downswing_duration

        hand_speed = self.peak_g_force * G_TO_MPH
        metrics.estimated_club_speed = hand_speed * CLUB_TO_HAND_SPEED

        if self.impact_time is not None:
            metrics.impact_timestamp = self.impact_time
            metrics.impact_deceleration = self.impact_deceleration
            metrics.impact_quality = min(1.0, self.impact_deceleration / (2 * self.impact_deceleration_threshold))

        # Peak speed in the last third of the downswing means the wrist angle held
        if self.peak_g_time is not None and self.downswing_start is not None and self.downswing_duration:
            peak_offset = (self.peak_g_time - self.downswing_start).total_seconds()
            metrics.lag_retained = peak_offset >= self.downswing_duration * (2 / 3)

        metrics.smoothness_score = smoothness_score(self.swing_accelerations)
        metrics.swing_path = swing_path_from_rotation(self.rotation_x_buffer)
        self.swing_type = classify_swing_type(self.peak_g_force, metrics.tempo_ratio)

        logger.info(
            "Watch swing analyzed",
            tempo=metrics.tempo_ratio,
            club_speed=metrics.estimated_club_speed,
            impact=self.impact_time is not None,
            swing_type=self.swing_type.value,
            path=metrics.swing_path,
        )
        self.phase = WatchSwingPhase.IDLE
        return metrics
