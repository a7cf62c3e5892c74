#!/usr/bin/env python3
"""
Range Session Service

Owns range practice sessions: persistence, the swing recording pipeline
(pose angles -> camera phases -> body metrics -> Watch analysis -> fusion)
and swing-count milestone notifications.
"""

from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from roundcaddy.config import settings
from roundcaddy.models.notification import Notification
from roundcaddy.models.range_session import RangeSessionRecord, SwingCaptureRecord
from roundcaddy.schemas.range import (
    CameraSwingCaptureSchema,
    CombinedSwingMetricsSchema,
    RangeSessionCreate,
    SwingAnnotationUpdate,
    SwingCaptureCreate,
    WatchMotionCaptureSchema,
)
from roundcaddy.services import capture_codec
from roundcaddy.services.motion_analyzer import WatchMotionAnalyzer
from roundcaddy.services.notification_service import NotificationService, NotificationType
from roundcaddy.services.pose_phases import CameraPhaseDetector, PoseAngleCalculator
from roundcaddy.services.sensor_fusion import SwingFusionEngine
from roundcaddy.services.swing_capture import (
    BodyTrackingMode,
    CameraSwingCapture,
    CameraSwingPhase,
    CombinedSwingCapture,
    RangeModeSettings,
    RangeSession,
    WatchMotionCapture,
    ensure_utc,
    utcnow,
)
from roundcaddy.services.user_service import ensure_user
from roundcaddy.services.watch_sync import WatchSwingSync

logger = structlog.get_logger()


class SessionNotFoundError(Exception):
    """Unknown session, or one owned by another user"""


class SwingNotFoundError(Exception):
    pass


class SessionClosedError(Exception):
    """The session has already ended"""


# ---------------------------------------------------------------------------
# Record <-> domain
# ---------------------------------------------------------------------------

def swing_from_record(record: SwingCaptureRecord) -> CombinedSwingCapture:
    camera = None
    if record.camera_capture:
        camera = capture_codec.camera_capture_from_schema(
            CameraSwingCaptureSchema.model_validate(record.camera_capture)
        )
    watch = None
    if record.watch_motion_data:
        watch = capture_codec.watch_capture_from_schema(
            WatchMotionCaptureSchema.model_validate(record.watch_motion_data)
        )
    metrics = None
    if record.combined_metrics:
        metrics = capture_codec.combined_metrics_from_schema(
            CombinedSwingMetricsSchema.model_validate(record.combined_metrics)
        )

    return CombinedSwingCapture(
        id=record.id,
        timestamp=ensure_utc(record.timestamp),
        camera_capture=camera,
        watch_motion_data=watch,
        combined_metrics=metrics,
        video_url=record.video_url,
        club=record.club,
        user_rating=record.user_rating,
        notes=record.notes,
    )


def session_from_record(record: RangeSessionRecord, include_swings: bool = True) -> RangeSession:
    return RangeSession(
        id=record.id,
        start_time=ensure_utc(record.start_time),
        end_time=ensure_utc(record.end_time),
        swings=[swing_from_record(s) for s in record.swings] if include_swings else [],
        selected_club=record.selected_club,
        notes=record.notes,
        tracking_mode=BodyTrackingMode(record.tracking_mode) if record.tracking_mode else None,
    )


class RangeSessionService:
    """Range session operations scoped to a single user"""

    def __init__(self, db: Session, range_settings: Optional[RangeModeSettings] = None):
        self.db = db
        self.range_settings = range_settings or RangeModeSettings(target_tempo=settings.default_target_tempo)
        self.fusion = SwingFusionEngine(self.range_settings)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _get_record(self, user_id: str, session_id: str) -> RangeSessionRecord:
        record = (
            self.db.query(RangeSessionRecord)
            .filter(RangeSessionRecord.id == session_id, RangeSessionRecord.user_id == user_id)
            .first()
        )
        if record is None:
            raise SessionNotFoundError(session_id)
        return record

    def _get_active_record(self, user_id: str, session_id: str) -> RangeSessionRecord:
        record = self._get_record(user_id, session_id)
        if record.end_time is not None:
            raise SessionClosedError(session_id)
        return record

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def start_session(self, user_id: str, data: RangeSessionCreate) -> RangeSession:
        ensure_user(self.db, user_id)

        record = RangeSessionRecord(
            user_id=user_id,
            start_time=utcnow(),
            selected_club=data.selected_club,
            notes=data.notes,
            tracking_mode=data.tracking_mode.value if data.tracking_mode else None,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)

        logger.info("Range session started", session_id=record.id, user_id=user_id, club=data.selected_club)
        return session_from_record(record)

    def list_sessions(self, user_id: str) -> List[RangeSession]:
        records = (
            self.db.query(RangeSessionRecord)
            .filter(RangeSessionRecord.user_id == user_id)
            .order_by(RangeSessionRecord.start_time.desc())
            .all()
        )
        return [session_from_record(r) for r in records]

    def get_session(self, user_id: str, session_id: str) -> RangeSession:
        return session_from_record(self._get_record(user_id, session_id))

    def end_session(self, user_id: str, session_id: str) -> RangeSession:
        record = self._get_active_record(user_id, session_id)
        record.end_time = utcnow()
        self.db.commit()
        self.db.refresh(record)

        session = session_from_record(record)
        logger.info(
            "Range session ended",
            session_id=session_id,
            user_id=user_id,
            swing_count=session.swing_count,
            average_tempo=session.average_tempo,
            consistency=session.consistency_score,
        )
        return session

    def delete_session(self, user_id: str, session_id: str):
        record = self._get_record(user_id, session_id)
        swing_count = len(record.swings)
        self.db.delete(record)
        self.db.commit()
        logger.info("Range session deleted", session_id=session_id, user_id=user_id, swing_count=swing_count)

    # ------------------------------------------------------------------
    # Swings
    # ------------------------------------------------------------------

    def _resolve_watch_capture(
        self,
        data: SwingCaptureCreate,
        watch_sync: Optional[WatchSwingSync],
    ) -> Optional[WatchMotionCapture]:
        watch = None
        if data.watch_motion_data is not None:
            watch = capture_codec.watch_capture_from_schema(data.watch_motion_data)
        elif watch_sync is not None:
            watch = watch_sync.take_pending_capture()
            if watch is not None:
                logger.info("Attached buffered Watch swing", user_id=watch_sync.user_id, samples=watch.sample_count)

        if watch is not None and watch.metrics is None and watch.samples:
            watch.metrics = WatchMotionAnalyzer().analyze(watch.samples)
        return watch

    def _prepare_camera_capture(
        self,
        capture: CameraSwingCapture,
        watch: Optional[WatchMotionCapture],
    ) -> CameraSwingCapture:
        capture.pose_frames = [PoseAngleCalculator.enrich(f) for f in capture.pose_frames]

        if not capture.phases:
            impact_time = watch.metrics.impact_timestamp if watch is not None and watch.metrics else None
            capture.phases = CameraPhaseDetector().detect(capture.pose_frames, impact_time=impact_time)

        if capture.body_metrics is None:
            capture.body_metrics = self.fusion.calculate_body_metrics(capture.pose_frames)
        return capture

    def record_swing(
        self,
        user_id: str,
        session_id: str,
        data: SwingCaptureCreate,
        watch_sync: Optional[WatchSwingSync] = None,
    ) -> CombinedSwingCapture:
        record = self._get_active_record(user_id, session_id)
        session = session_from_record(record)

        watch = self._resolve_watch_capture(data, watch_sync)
        try:
            return self._store_swing(user_id, record, session, data, watch)
        except Exception:
            if watch is not None and data.watch_motion_data is None:
                # The buffered window came from the sync; hand it back for a retry
                watch_sync.restore_pending_capture(watch)
                logger.warning("Buffered Watch swing restored after failed save", user_id=user_id)
            raise

    def _store_swing(
        self,
        user_id: str,
        record: RangeSessionRecord,
        session: RangeSession,
        data: SwingCaptureCreate,
        watch: Optional[WatchMotionCapture],
    ) -> CombinedSwingCapture:
        session_id = record.id
        camera = None
        if data.camera_capture is not None:
            camera = self._prepare_camera_capture(
                capture_codec.camera_capture_from_schema(data.camera_capture), watch
            )

        sync_confidence = None
        if camera is not None and watch is not None:
            camera_start = camera.phase_marker(CameraSwingPhase.TAKEAWAY)
            start = camera_start.timestamp if camera_start else camera.start_time
            if not WatchSwingSync.is_matching_swing(start, watch.start_time):
                logger.warning("Camera and Watch swing starts differ", session_id=session_id)
            sync_confidence = WatchSwingSync.combined_confidence(
                camera.average_confidence,
                has_watch_data=True,
                time_delta=abs((start - watch.start_time).total_seconds()),
            )

        swing = CombinedSwingCapture(
            timestamp=ensure_utc(data.timestamp) or utcnow(),
            camera_capture=camera,
            watch_motion_data=watch,
            video_url=data.video_url,
            club=data.club or session.selected_club,
            user_rating=data.user_rating,
            notes=data.notes,
        )
        swing.combined_metrics = self.fusion.fuse(swing, previous_tempos=session.tempo_ratios)
        swing.combined_metrics.sync_confidence = sync_confidence
        if watch is not None and watch.metrics is not None:
            watch.metrics.consistency_with_previous = swing.combined_metrics.consistency_score

        self.db.add(SwingCaptureRecord(
            id=swing.id,
            session_id=record.id,
            position=len(record.swings),
            timestamp=swing.timestamp,
            camera_capture=capture_codec.to_document(
                capture_codec.camera_capture_to_schema(camera) if camera else None
            ),
            watch_motion_data=capture_codec.to_document(
                capture_codec.watch_capture_to_schema(watch) if watch else None
            ),
            combined_metrics=capture_codec.to_document(
                capture_codec.combined_metrics_to_schema(swing.combined_metrics)
            ),
            video_url=swing.video_url,
            club=swing.club,
            user_rating=swing.user_rating,
            notes=swing.notes,
        ))
        self.db.flush()
        self._check_milestones(user_id)
        self.db.commit()

        logger.info(
            "Swing recorded",
            session_id=session_id,
            swing_id=swing.id,
            user_id=user_id,
            has_camera=camera is not None,
            has_watch=watch is not None,
            overall_score=swing.combined_metrics.overall_score,
        )
        return swing

    def annotate_swing(self, user_id: str, session_id: str, swing_id: str, data: SwingAnnotationUpdate) -> CombinedSwingCapture:
        record = self._get_record(user_id, session_id)
        swing_record = next((s for s in record.swings if s.id == swing_id), None)
        if swing_record is None:
            raise SwingNotFoundError(swing_id)

        for name, value in data.model_dump(exclude_unset=True).items():
            setattr(swing_record, name, value)
        self.db.commit()
        self.db.refresh(swing_record)

        logger.info("Swing annotated", session_id=session_id, swing_id=swing_id, rating=swing_record.user_rating)
        return swing_from_record(swing_record)

    # ------------------------------------------------------------------
    # Milestones
    # ------------------------------------------------------------------

    def _check_milestones(self, user_id: str):
        total = (
            self.db.query(SwingCaptureRecord)
            .join(RangeSessionRecord)
            .filter(RangeSessionRecord.user_id == user_id)
            .count()
        )
        if total not in settings.milestone_counts:
            return

        # Deleting sessions lowers the count; each milestone is only awarded once
        title = f"{total} range swings!"
        awarded = (
            self.db.query(Notification)
            .filter(
                Notification.user_id == user_id,
                Notification.type == NotificationType.MILESTONE_REACHED.value,
                Notification.title == title,
            )
            .first()
        )
        if awarded is not None:
            return

        NotificationService(self.db).create(
            user_id=user_id,
            type=NotificationType.MILESTONE_REACHED,
            title=title,
            message=f"You've recorded {total} swings in Range Mode. Keep grooving that tempo.",
            commit=False,
        )
        logger.info("Swing milestone reached", user_id=user_id, total_swings=total)
