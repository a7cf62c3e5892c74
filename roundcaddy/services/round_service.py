"""
Round history: create, list and edit completed rounds.
"""

from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

import structlog
from sqlalchemy.orm import Session

from roundcaddy.models.round import Round
from roundcaddy.schemas.round import HoleEntrySchema, RoundCreate, RoundUpdate
from roundcaddy.services import strokes_gained
from roundcaddy.services.strokes_gained import HoleEntry, StrokesGained
from roundcaddy.services.swing_capture import utcnow

logger = structlog.get_logger()

DEFAULT_FAIRWAYS_TOTAL = 14
DEFAULT_PENALTIES = 0

# Fields the edit form replaces wholesale; absent values clear the stat
EDITABLE_STATS = (
    "course_id",
    "total_putts",
    "fairways_hit",
    "gir",
    "course_rating",
    "slope_rating",
    "scoring_format",
)


class RoundValidationError(Exception):
    """Raised with a message suitable for display"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RoundNotFoundError(Exception):
    pass


def _validate_score(total_score: Optional[int]) -> int:
    if total_score is None or total_score <= 0:
        raise RoundValidationError("Please enter a valid score")
    return total_score


def _validate_course_name(course_name: Optional[str]) -> str:
    name = (course_name or "").strip()
    if not name:
        raise RoundValidationError("Please select or enter a course name")
    return name


def _totals_from_holes(holes: Sequence[HoleEntrySchema]) -> Dict[str, Any]:
    tracked_fairways = [h.fairway_hit for h in holes if h.fairway_hit is not None]
    totals = {
        "total_score": sum(h.score for h in holes),
        "total_putts": sum(h.putts for h in holes),
        "gir": sum(1 for h in holes if h.gir),
        "penalties": sum(h.penalties for h in holes),
    }
    if tracked_fairways:
        totals["fairways_hit"] = sum(1 for hit in tracked_fairways if hit)
        totals["fairways_total"] = len(tracked_fairways)
    return totals


class RoundService:
    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: str, data: RoundCreate) -> Round:
        """
        Save a completed round.

        When hole-by-hole entries are sent, totals the client left out are
        summed from them and the strokes gained breakdown is calculated,
        replacing any sg values in the request.
        """
        values = data.model_dump(exclude={"holes", "hole_yardages"})
        if data.holes:
            for name, value in _totals_from_holes(data.holes).items():
                if values[name] is None:
                    values[name] = value
            entries = [HoleEntry(**h.model_dump()) for h in data.holes]
            values.update(asdict(strokes_gained.calculate_round(entries, data.hole_yardages)))
            values["holes"] = [h.model_dump(mode="json") for h in data.holes]

        values["total_score"] = _validate_score(values["total_score"])
        values["course_name"] = _validate_course_name(values["course_name"])
        if values["fairways_total"] is None:
            values["fairways_total"] = DEFAULT_FAIRWAYS_TOTAL
        if values["penalties"] is None:
            values["penalties"] = DEFAULT_PENALTIES
        if values["played_at"] is None:
            values["played_at"] = utcnow()

        round_ = Round(user_id=user_id, **values)
        self.db.add(round_)
        self.db.commit()
        self.db.refresh(round_)

        logger.info("Round created", round_id=round_.id, user_id=user_id, score=round_.total_score)
        return round_

    def list_for_user(self, user_id: str) -> List[Round]:
        return (
            self.db.query(Round)
            .filter(Round.user_id == user_id)
            .order_by(Round.played_at.desc())
            .all()
        )

    def get(self, user_id: str, round_id: int) -> Round:
        round_ = self.db.query(Round).filter(Round.id == round_id, Round.user_id == user_id).first()
        if round_ is None:
            raise RoundNotFoundError(round_id)
        return round_

    def update(self, user_id: str, round_id: int, data: RoundUpdate) -> Round:
        """
        Apply the round edit form.

        Score and course name are required. fairways_total and penalties fall
        back to 14 and 0 when the form leaves them out.
        """
        round_ = self.get(user_id, round_id)

        round_.total_score = _validate_score(data.total_score)
        round_.course_name = _validate_course_name(data.course_name)
        for name in EDITABLE_STATS:
            setattr(round_, name, getattr(data, name))
        round_.fairways_total = data.fairways_total if data.fairways_total is not None else DEFAULT_FAIRWAYS_TOTAL
        round_.penalties = data.penalties if data.penalties is not None else DEFAULT_PENALTIES
        if data.played_at is not None:
            round_.played_at = data.played_at

        self.db.commit()
        self.db.refresh(round_)

        logger.info("Round updated", round_id=round_id, user_id=user_id)
        return round_

    def strokes_gained_summary(self, user_id: str) -> Dict[str, Any]:
        rounds = (
            self.db.query(Round)
            .filter(Round.user_id == user_id, Round.sg_total.isnot(None))
            .all()
        )
        breakdowns = [
            StrokesGained(
                sg_off_tee=r.sg_off_tee or 0.0,
                sg_approach=r.sg_approach or 0.0,
                sg_around_green=r.sg_around_green or 0.0,
                sg_putting=r.sg_putting or 0.0,
                sg_total=r.sg_total,
            )
            for r in rounds
        ]
        average = strokes_gained.average(breakdowns)

        summary = {"rounds_count": len(breakdowns), **asdict(average)}
        if breakdowns:
            summary["weakest_area"] = asdict(strokes_gained.weakest_area(average))
            summary["strongest_area"] = asdict(strokes_gained.strongest_area(average))
        return summary
