from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Float, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from roundcaddy.database import Base


class Round(Base):
    __tablename__ = "rounds"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    course_name = Column(String, nullable=False)
    course_id = Column(String, nullable=True)
    played_at = Column(DateTime(timezone=True), nullable=False)

    total_score = Column(Integer, nullable=False)
    total_putts = Column(Integer, nullable=True)
    fairways_hit = Column(Integer, nullable=True)
    fairways_total = Column(Integer, nullable=False, default=14)
    gir = Column(Integer, nullable=True)  # greens in regulation
    penalties = Column(Integer, nullable=False, default=0)

    course_rating = Column(Float, nullable=True)
    slope_rating = Column(Integer, nullable=True)

    # Strokes gained breakdown
    sg_total = Column(Float, nullable=True)
    sg_off_tee = Column(Float, nullable=True)
    sg_approach = Column(Float, nullable=True)
    sg_around_green = Column(Float, nullable=True)
    sg_putting = Column(Float, nullable=True)

    # Hole-by-hole entries the breakdown was calculated from
    holes = Column(JSON, nullable=True)

    scoring_format = Column(String, nullable=True)  # e.g. "stroke", "stableford"
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="rounds")
