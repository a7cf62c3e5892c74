import uuid

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from roundcaddy.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class RangeSessionRecord(Base):
    __tablename__ = "range_sessions"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)  # null while active
    selected_club = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    tracking_mode = Column(String, nullable=True)  # BodyTrackingMode value
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="range_sessions")
    swings = relationship(
        "SwingCaptureRecord",
        back_populates="session",
        order_by="SwingCaptureRecord.position",
        cascade="all, delete-orphan",
    )


class SwingCaptureRecord(Base):
    __tablename__ = "swing_captures"

    id = Column(String, primary_key=True, default=_uuid)
    session_id = Column(String, ForeignKey("range_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)  # order within the session
    timestamp = Column(DateTime(timezone=True), nullable=False)

    # Capture sub-documents, stored as their JSON schema dumps
    camera_capture = Column(JSON, nullable=True)
    watch_motion_data = Column(JSON, nullable=True)
    combined_metrics = Column(JSON, nullable=True)

    video_url = Column(String, nullable=True)
    club = Column(String, nullable=True)
    user_rating = Column(Integer, nullable=True)  # 1-5
    notes = Column(String, nullable=True)

    session = relationship("RangeSessionRecord", back_populates="swings")
