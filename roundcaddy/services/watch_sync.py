#!/usr/bin/env python3
"""
Watch-Phone Swing Synchronization

Receives Range Mode messages from the Watch, keeps a rolling buffer of
clock-corrected motion samples, and hands the motion window of the most
recent Watch swing to the range session service so it can be fused with
the camera capture.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np
import structlog
from pydantic import BaseModel, Field, ValidationError

from roundcaddy.config import settings
from roundcaddy.services.swing_capture import (
    MotionSample,
    WatchMotionCapture,
    WatchSwingMetrics,
    consistency_from_tempos,
    utcnow,
)

logger = structlog.get_logger()


class InvalidWatchPayloadError(Exception):
    """A Watch message whose payload does not parse; sync state is left untouched"""


class RangeModeAction(str, Enum):
    START_SESSION = "startRangeSession"
    END_SESSION = "endRangeSession"
    MOTION_SAMPLE = "motionSample"
    MOTION_BATCH = "motionBatch"
    SWING_START = "swingStart"
    SWING_END = "swingEnd"
    SWING_METRICS = "swingMetrics"
    SYNC_REQUEST = "syncRequest"
    SYNC_ACKNOWLEDGE = "syncAcknowledge"


class SwingMetricsPayload(BaseModel):
    tempo: Optional[float] = None
    peak_speed: Optional[float] = Field(None, alias="peakSpeed")
    backswing_duration: Optional[float] = Field(None, alias="backswingDuration")
    downswing_duration: Optional[float] = Field(None, alias="downswingDuration")
    peak_g_force: Optional[float] = Field(None, alias="peakGForce")
    peak_rotation_rate: Optional[float] = Field(None, alias="peakRotationRate")
    impact_detected: bool = Field(False, alias="impactDetected")
    impact_quality: Optional[float] = Field(None, alias="impactQuality")
    swing_path: Optional[str] = Field(None, alias="swingPath")


class EndSessionPayload(BaseModel):
    duration: float = 0.0
    swing_count: Optional[int] = Field(None, alias="swingCount")
    average_tempo: Optional[float] = Field(None, alias="averageTempo")
    average_speed: Optional[float] = Field(None, alias="averageSpeed")
    best_tempo: Optional[float] = Field(None, alias="bestTempo")
    best_speed: Optional[float] = Field(None, alias="bestSpeed")
    tempo_consistency: Optional[float] = Field(None, alias="tempoConsistency")
    speed_consistency: Optional[float] = Field(None, alias="speedConsistency")


class SyncAcknowledgePayload(BaseModel):
    server_time: Optional[float] = Field(None, alias="serverTime")
    watch_time: Optional[float] = Field(None, alias="watchTime")


@dataclass
class RangeModeMessage:
    """Message envelope exchanged with the Watch"""
    action: RangeModeAction
    timestamp: float
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WatchRangeSessionSummary:
    """Session summary reported by the Watch"""
    duration: float = 0.0
    swing_count: int = 0
    average_tempo: Optional[float] = None
    average_speed: Optional[float] = None
    best_tempo: Optional[float] = None
    best_speed: Optional[float] = None
    tempo_consistency: Optional[float] = None
    speed_consistency: Optional[float] = None


@dataclass
class SyncResult:
    """Outcome of handling one Watch message"""
    action: RangeModeAction
    reply: Optional[RangeModeMessage] = None
    samples_received: int = 0
    metrics: Optional[WatchSwingMetrics] = None
    summary: Optional[WatchRangeSessionSummary] = None


def _from_epoch(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


class WatchSwingSync:
    """Per-user Watch connection state for Range Mode"""

    def __init__(self, user_id: str, buffer_size: Optional[int] = None, buffer_trim: Optional[int] = None):
        self.user_id = user_id
        self.buffer_size = buffer_size or settings.watch_buffer_size
        self.buffer_trim = buffer_trim or settings.watch_buffer_trim

        self.motion_buffer: List[MotionSample] = []
        self.clock_offset = 0.0  # server time - Watch time, seconds
        self.last_clock_sync: Optional[datetime] = None

        self.is_session_active = False
        self.swing_count = 0
        self.swing_tempos: List[float] = []
        self.swing_speeds: List[float] = []
        self.last_summary: Optional[WatchRangeSessionSummary] = None

        self._swing_window_start: Optional[datetime] = None
        self._pending_capture: Optional[WatchMotionCapture] = None

    # ------------------------------------------------------------------
    # Clock synchronization
    # ------------------------------------------------------------------

    def update_clock_offset(self, watch_time: float, round_trip_time: float, receive_time: Optional[datetime] = None) -> float:
        """offset = receive - (watch_time + rtt / 2)"""
        receive_time = receive_time or utcnow()
        estimated_watch_time = watch_time + round_trip_time / 2
        self.clock_offset = receive_time.timestamp() - estimated_watch_time
        self.last_clock_sync = receive_time
        logger.info("Watch clock synced", user_id=self.user_id, clock_offset=round(self.clock_offset, 3))
        return self.clock_offset

    def convert_watch_timestamp(self, watch_timestamp: float) -> datetime:
        return _from_epoch(watch_timestamp + self.clock_offset)

    # ------------------------------------------------------------------
    # Motion buffer
    # ------------------------------------------------------------------

    def add_sample(self, sample: MotionSample):
        self.motion_buffer.append(sample)
        if len(self.motion_buffer) > self.buffer_size:
            del self.motion_buffer[:self.buffer_trim]

    def samples_between(self, start: datetime, end: datetime) -> List[MotionSample]:
        return [s for s in self.motion_buffer if start <= s.timestamp <= end]

    # ------------------------------------------------------------------
    # Fusion helpers
    # ------------------------------------------------------------------

    @staticmethod
    def combined_confidence(camera_confidence: float, has_watch_data: bool, time_delta: float) -> float:
        confidence = camera_confidence
        if has_watch_data:
            confidence += 0.1
        # More than 50ms apart
        if time_delta > 0.05:
            confidence -= time_delta * 2
        return min(1.0, max(0.0, confidence))

    @staticmethod
    def is_matching_swing(camera_swing_start: datetime, watch_swing_start: datetime, tolerance: float = 0.5) -> bool:
        return abs((camera_swing_start - watch_swing_start).total_seconds()) < tolerance

    def take_pending_capture(self) -> Optional[WatchMotionCapture]:
        """Hand over the last completed Watch swing window, once"""
        capture, self._pending_capture = self._pending_capture, None
        return capture

    def restore_pending_capture(self, capture: WatchMotionCapture):
        """Put back a window whose swing failed to save, unless a newer one arrived"""
        if self._pending_capture is None:
            self._pending_capture = capture

    # ------------------------------------------------------------------
    # Message handling
    # ------------------------------------------------------------------

    def handle(self, message: RangeModeMessage) -> SyncResult:
        handlers = {
            RangeModeAction.START_SESSION: self._handle_start,
            RangeModeAction.END_SESSION: self._handle_end,
            RangeModeAction.MOTION_SAMPLE: self._handle_motion_sample,
            RangeModeAction.MOTION_BATCH: self._handle_motion_batch,
            RangeModeAction.SWING_START: self._handle_swing_start,
            RangeModeAction.SWING_END: self._handle_swing_end,
            RangeModeAction.SWING_METRICS: self._handle_swing_metrics,
            RangeModeAction.SYNC_REQUEST: self._handle_sync_request,
            RangeModeAction.SYNC_ACKNOWLEDGE: self._handle_sync_acknowledge,
        }
        result = SyncResult(action=message.action)
        handlers[message.action](message, result)
        return result

    def _handle_start(self, message: RangeModeMessage, result: SyncResult):
        self.is_session_active = True
        self.swing_count = 0
        self.swing_tempos = []
        self.swing_speeds = []
        self.motion_buffer = []
        self._swing_window_start = None
        self._pending_capture = None
        logger.info("Watch range session started", user_id=self.user_id)

    def _parse(self, model, message: RangeModeMessage):
        try:
            return model.model_validate(message.payload)
        except ValidationError as e:
            logger.warning("Rejected Watch payload", user_id=self.user_id, action=message.action.value)
            raise InvalidWatchPayloadError(f"Invalid {message.action.value} payload: {e}") from e

    def _handle_end(self, message: RangeModeMessage, result: SyncResult):
        payload = self._parse(EndSessionPayload, message)
        tempos = self.swing_tempos
        speeds = self.swing_speeds

        def reported(value, fallback):
            return value if value is not None else fallback

        summary = WatchRangeSessionSummary(
            duration=payload.duration,
            swing_count=reported(payload.swing_count, self.swing_count),
            average_tempo=reported(payload.average_tempo, float(np.mean(tempos)) if tempos else None),
            average_speed=reported(payload.average_speed, float(np.mean(speeds)) if speeds else None),
            best_tempo=reported(payload.best_tempo, min(tempos, key=lambda t: abs(t - 3.0)) if tempos else None),
            best_speed=reported(payload.best_speed, max(speeds) if speeds else None),
            tempo_consistency=reported(payload.tempo_consistency, consistency_from_tempos(tempos)),
            speed_consistency=payload.speed_consistency,
        )

        self.is_session_active = False
        self.last_summary = summary
        result.summary = summary
        logger.info(
            "Watch range session ended",
            user_id=self.user_id,
            swing_count=summary.swing_count,
            average_tempo=summary.average_tempo,
        )

    def _sample_from_compact(self, data: Dict[str, Any]) -> Optional[MotionSample]:
        try:
            return MotionSample(
                timestamp=self.convert_watch_timestamp(float(data["t"])),
                index=int(data["i"]),
                acceleration_x=float(data["ax"]),
                acceleration_y=float(data["ay"]),
                acceleration_z=float(data["az"]),
                rotation_x=float(data["rx"]),
                rotation_y=float(data["ry"]),
                rotation_z=float(data["rz"]),
            )
        except (KeyError, TypeError, ValueError):
            logger.warning("Dropping malformed motion sample", user_id=self.user_id)
            return None

    def _handle_motion_sample(self, message: RangeModeMessage, result: SyncResult):
        sample = self._sample_from_compact(message.payload)
        if sample is not None:
            self.add_sample(sample)
            result.samples_received = 1

    def _handle_motion_batch(self, message: RangeModeMessage, result: SyncResult):
        for data in message.payload.get("samples", []):
            sample = self._sample_from_compact(data)
            if sample is not None:
                self.add_sample(sample)
                result.samples_received += 1

    def _handle_swing_start(self, message: RangeModeMessage, result: SyncResult):
        self._swing_window_start = self.convert_watch_timestamp(message.timestamp)

    def _handle_swing_end(self, message: RangeModeMessage, result: SyncResult):
        end = self.convert_watch_timestamp(message.timestamp)
        start = self._swing_window_start
        if start is None:
            logger.warning("Swing end without swing start", user_id=self.user_id)
            return

        self._pending_capture = WatchMotionCapture(
            start_time=start,
            end_time=end,
            samples=self.samples_between(start, end),
        )
        self._swing_window_start = None
        self.swing_count += 1
        logger.info(
            "Watch swing window captured",
            user_id=self.user_id,
            samples=self._pending_capture.sample_count,
            swing_count=self.swing_count,
        )

    def _handle_swing_metrics(self, message: RangeModeMessage, result: SyncResult):
        payload = self._parse(SwingMetricsPayload, message)
        backswing = payload.backswing_duration
        downswing = payload.downswing_duration

        metrics = WatchSwingMetrics(
            backswing_duration=backswing,
            downswing_duration=downswing,
            total_swing_duration=(backswing or 0.0) + (downswing or 0.0),
            tempo_ratio=payload.tempo,
            peak_wrist_acceleration=payload.peak_g_force,
            estimated_club_speed=payload.peak_speed,
            peak_rotation_rate=payload.peak_rotation_rate,
            impact_timestamp=self.convert_watch_timestamp(message.timestamp) if payload.impact_detected else None,
            impact_quality=payload.impact_quality,
            swing_path=payload.swing_path,
        )

        if metrics.tempo_ratio is not None:
            self.swing_tempos.append(metrics.tempo_ratio)
        if metrics.estimated_club_speed is not None:
            self.swing_speeds.append(metrics.estimated_club_speed)

        if self._pending_capture is not None:
            self._pending_capture.metrics = metrics
        result.metrics = metrics
        logger.info(
            "Watch swing metrics received",
            user_id=self.user_id,
            tempo=metrics.tempo_ratio,
            club_speed=metrics.estimated_club_speed,
        )

    def _handle_sync_request(self, message: RangeModeMessage, result: SyncResult):
        now = utcnow().timestamp()
        result.reply = RangeModeMessage(
            action=RangeModeAction.SYNC_ACKNOWLEDGE,
            timestamp=now,
            payload={"serverTime": now, "watchTime": message.timestamp},
        )

    def _handle_sync_acknowledge(self, message: RangeModeMessage, result: SyncResult):
        # The Watch echoes our serverTime back with its own clock reading
        payload = self._parse(SyncAcknowledgePayload, message)
        receive_time = utcnow()
        watch_time = payload.watch_time if payload.watch_time is not None else message.timestamp
        round_trip = receive_time.timestamp() - payload.server_time if payload.server_time is not None else 0.0
        self.update_clock_offset(watch_time, max(0.0, round_trip), receive_time)


class WatchSyncRegistry:
    """One WatchSwingSync per user"""

    def __init__(self):
        self._syncs: Dict[str, WatchSwingSync] = {}

    def get(self, user_id: str) -> WatchSwingSync:
        sync = self._syncs.get(user_id)
        if sync is None:
            sync = WatchSwingSync(user_id)
            self._syncs[user_id] = sync
        return sync

    def reset(self):
        self._syncs.clear()


watch_sync_registry = WatchSyncRegistry()
