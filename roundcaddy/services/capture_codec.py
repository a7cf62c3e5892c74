"""
Conversion between swing capture dataclasses and their API/storage schemas.

Capture sub-documents are persisted as the JSON dump of their schema, so the
same converters serve the routers and the database layer.
"""

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from roundcaddy.schemas.range import (
    BodySwingMetricsSchema,
    CameraSwingCaptureResponse,
    CameraSwingCaptureSchema,
    CombinedSwingMetricsResponse,
    CombinedSwingMetricsSchema,
    MotionSampleSchema,
    PoseFrameSchema,
    RangeSessionResponse,
    RangeSessionSummaryResponse,
    SwingCaptureResponse,
    SwingPhaseMarkerSchema,
    WatchMotionCaptureResponse,
    WatchMotionCaptureSchema,
    WatchSwingMetricsSchema,
)
from roundcaddy.services.sensor_fusion import tempo_rating
from roundcaddy.services.swing_capture import (
    LANDMARK_NAMES,
    BodySwingMetrics,
    CameraSwingCapture,
    CombinedSwingCapture,
    CombinedSwingMetrics,
    MotionSample,
    PoseFrame,
    PosePoint,
    RangeSession,
    SwingPhaseMarker,
    WatchMotionCapture,
    WatchSwingMetrics,
    ensure_utc,
)


# ---------------------------------------------------------------------------
# Schema -> domain
# ---------------------------------------------------------------------------

def pose_frame_from_schema(schema: PoseFrameSchema) -> PoseFrame:
    values = schema.model_dump(exclude=set(LANDMARK_NAMES))
    values["timestamp"] = ensure_utc(schema.timestamp)
    for name in LANDMARK_NAMES:
        point = getattr(schema, name)
        values[name] = PosePoint(point.x, point.y) if point is not None else None
    return PoseFrame(**values)


def camera_capture_from_schema(schema: CameraSwingCaptureSchema) -> CameraSwingCapture:
    return CameraSwingCapture(
        start_time=ensure_utc(schema.start_time),
        end_time=ensure_utc(schema.end_time),
        pose_frames=[pose_frame_from_schema(f) for f in schema.pose_frames],
        phases=[
            SwingPhaseMarker(
                phase=m.phase,
                timestamp=ensure_utc(m.timestamp),
                frame_index=m.frame_index,
                confidence=m.confidence,
            )
            for m in schema.phases
        ],
        body_metrics=BodySwingMetrics(**schema.body_metrics.model_dump()) if schema.body_metrics else None,
    )


def watch_metrics_from_schema(schema: WatchSwingMetricsSchema) -> WatchSwingMetrics:
    metrics = WatchSwingMetrics(**schema.model_dump())
    metrics.impact_timestamp = ensure_utc(metrics.impact_timestamp)
    return metrics


def watch_capture_from_schema(schema: WatchMotionCaptureSchema) -> WatchMotionCapture:
    samples = []
    for sample in schema.samples:
        values = sample.model_dump()
        values["timestamp"] = ensure_utc(sample.timestamp)
        samples.append(MotionSample(**values))

    return WatchMotionCapture(
        start_time=ensure_utc(schema.start_time),
        end_time=ensure_utc(schema.end_time),
        samples=samples,
        metrics=watch_metrics_from_schema(schema.metrics) if schema.metrics else None,
    )


def combined_metrics_from_schema(schema: CombinedSwingMetricsSchema) -> CombinedSwingMetrics:
    metrics = CombinedSwingMetrics(**schema.model_dump())
    metrics.impact_timestamp = ensure_utc(metrics.impact_timestamp)
    return metrics


# ---------------------------------------------------------------------------
# Domain -> schema
# ---------------------------------------------------------------------------

def camera_capture_to_schema(capture: CameraSwingCapture) -> CameraSwingCaptureSchema:
    return CameraSwingCaptureSchema(
        start_time=capture.start_time,
        end_time=capture.end_time,
        pose_frames=[PoseFrameSchema.model_validate(asdict(f)) for f in capture.pose_frames],
        phases=[SwingPhaseMarkerSchema.model_validate(asdict(m)) for m in capture.phases],
        body_metrics=BodySwingMetricsSchema.model_validate(asdict(capture.body_metrics)) if capture.body_metrics else None,
    )


def watch_metrics_to_schema(metrics: WatchSwingMetrics) -> WatchSwingMetricsSchema:
    return WatchSwingMetricsSchema.model_validate(asdict(metrics))


def watch_capture_to_schema(capture: WatchMotionCapture) -> WatchMotionCaptureSchema:
    return WatchMotionCaptureSchema(
        start_time=capture.start_time,
        end_time=capture.end_time,
        samples=[MotionSampleSchema.model_validate(asdict(s)) for s in capture.samples],
        metrics=watch_metrics_to_schema(capture.metrics) if capture.metrics else None,
    )


def combined_metrics_to_schema(metrics: CombinedSwingMetrics) -> CombinedSwingMetricsSchema:
    return CombinedSwingMetricsSchema.model_validate(asdict(metrics))


def to_document(schema: Optional[Any]) -> Optional[Dict[str, Any]]:
    """JSON-safe dict for a JSON column"""
    if schema is None:
        return None
    return schema.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

def _camera_response(capture: CameraSwingCapture) -> CameraSwingCaptureResponse:
    return CameraSwingCaptureResponse(
        **camera_capture_to_schema(capture).model_dump(),
        duration=capture.duration,
        frame_count=capture.frame_count,
        fps=capture.fps,
    )


def _watch_response(capture: WatchMotionCapture) -> WatchMotionCaptureResponse:
    return WatchMotionCaptureResponse(
        **watch_capture_to_schema(capture).model_dump(),
        duration=capture.duration,
        sample_count=capture.sample_count,
        effective_sample_rate=capture.effective_sample_rate,
    )


def _metrics_response(metrics: CombinedSwingMetrics) -> CombinedSwingMetricsResponse:
    return CombinedSwingMetricsResponse(
        **combined_metrics_to_schema(metrics).model_dump(),
        tempo_rating=tempo_rating(metrics.tempo_ratio) if metrics.tempo_ratio is not None else None,
        fault_description=metrics.primary_fault.description if metrics.primary_fault else None,
    )


def swing_to_response(swing: CombinedSwingCapture) -> SwingCaptureResponse:
    return SwingCaptureResponse(
        id=swing.id,
        timestamp=swing.timestamp,
        camera_capture=_camera_response(swing.camera_capture) if swing.camera_capture else None,
        watch_motion_data=_watch_response(swing.watch_motion_data) if swing.watch_motion_data else None,
        combined_metrics=_metrics_response(swing.combined_metrics) if swing.combined_metrics else None,
        video_url=swing.video_url,
        club=swing.club,
        user_rating=swing.user_rating,
        notes=swing.notes,
        has_sensor_data=swing.has_sensor_data,
    )


def _session_fields(session: RangeSession) -> Dict[str, Any]:
    return dict(
        id=session.id,
        start_time=session.start_time,
        end_time=session.end_time,
        selected_club=session.selected_club,
        notes=session.notes,
        tracking_mode=session.tracking_mode,
        is_active=session.is_active,
        duration=session.duration,
        swing_count=session.swing_count,
        average_tempo=session.average_tempo,
        average_club_speed=session.average_club_speed,
        consistency_score=session.consistency_score,
    )


def session_to_summary(session: RangeSession) -> RangeSessionSummaryResponse:
    return RangeSessionSummaryResponse(**_session_fields(session))


def session_to_response(session: RangeSession) -> RangeSessionResponse:
    swings: List[SwingCaptureResponse] = [swing_to_response(s) for s in session.swings]
    return RangeSessionResponse(**_session_fields(session), swings=swings)
