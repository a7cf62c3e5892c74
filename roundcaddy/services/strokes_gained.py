#!/usr/bin/env python3
"""
Strokes Gained

Breaks each hole into off the tee, approach, around the green and putting,
comparing what happened with the strokes an amateur baseline would need
from the same position. Positive values mean strokes gained on the baseline.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence

import numpy as np
import structlog

logger = structlog.get_logger()


class ApproachResult(str, Enum):
    GREEN = "green"
    FRINGE = "fringe"
    GREENSIDE_ROUGH = "greenside_rough"
    BUNKER = "bunker"
    SHORT = "short"
    LONG = "long"
    LEFT = "left"
    RIGHT = "right"


# Expected strokes to hole out, keyed by distance in yards
TEE_SHOT = {
    100: 2.92, 125: 2.99, 150: 3.08, 175: 3.18, 200: 3.32, 225: 3.45, 250: 3.58,
    275: 3.71, 300: 3.84, 325: 3.97, 350: 4.08, 375: 4.17, 400: 4.28, 425: 4.41,
    450: 4.54, 475: 4.69, 500: 4.79, 525: 4.96, 550: 5.09, 575: 5.24, 600: 5.39,
}
FAIRWAY = {
    25: 2.40, 50: 2.60, 75: 2.72, 100: 2.87, 125: 2.95, 150: 3.00,
    175: 3.08, 200: 3.19, 225: 3.32, 250: 3.48, 275: 3.65, 300: 3.81,
}
ROUGH = {
    25: 2.53, 50: 2.73, 75: 2.86, 100: 2.98, 125: 3.08, 150: 3.17,
    175: 3.28, 200: 3.42, 225: 3.58, 250: 3.75, 275: 3.92, 300: 4.08,
}
BUNKER = {
    10: 2.43, 20: 2.53, 30: 2.68, 40: 2.83, 50: 2.97,
    75: 3.15, 100: 3.32, 125: 3.52, 150: 3.72,
}

# Keyed by distance in feet
PUTTING = {
    1: 1.001, 2: 1.009, 3: 1.044, 4: 1.115, 5: 1.211, 6: 1.299, 7: 1.373, 8: 1.438,
    9: 1.495, 10: 1.546, 12: 1.635, 14: 1.710, 16: 1.774, 18: 1.829, 20: 1.877,
    25: 1.970, 30: 2.040, 35: 2.095, 40: 2.140, 45: 2.179, 50: 2.213, 60: 2.267,
    70: 2.310, 80: 2.346, 90: 2.376,
}
ON_GREEN = {
    5: 1.26, 10: 1.55, 15: 1.72, 20: 1.88, 25: 1.97, 30: 2.04, 40: 2.14, 50: 2.22, 60: 2.27,
}

AVERAGE_DRIVE_YARDS = 250
DEFAULT_HOLE_YARDAGE = {3: 165, 4: 400, 5: 520}
FALLBACK_HOLE_YARDAGE = 400

# Where a missed approach finished, and the chip played from there
MISSED_GREEN_EXPECTED = {
    ApproachResult.FRINGE: 2.4,
    ApproachResult.GREENSIDE_ROUGH: 2.6,
}
GREENSIDE_BUNKER_YARDS = 20
MISSED_GREEN_DEFAULT = 2.55
CHIP_EXPECTED = {
    ApproachResult.FRINGE: 2.3,
    ApproachResult.GREENSIDE_ROUGH: 2.5,
    ApproachResult.BUNKER: 2.7,
}
CHIP_DEFAULT = 2.5

AREA_RECOMMENDATIONS = {
    "Off the Tee": "Focus on driving accuracy and distance control",
    "Approach": "Work on iron play and distance control with approaches",
    "Around the Green": "Practice chipping, pitching, and bunker play",
    "Putting": "Focus on speed control and short putts",
}


@dataclass
class HoleEntry:
    """What the golfer recorded for one hole"""
    par: int
    score: int
    putts: int
    gir: bool = False
    fairway_hit: Optional[bool] = None  # None on par 3s or when not tracked
    penalties: int = 0
    approach_distance: Optional[float] = None  # yards
    approach_result: Optional[ApproachResult] = None
    first_putt_distance: Optional[float] = None  # feet
    hole_number: Optional[int] = None


@dataclass
class StrokesGained:
    sg_off_tee: float = 0.0
    sg_approach: float = 0.0
    sg_around_green: float = 0.0
    sg_putting: float = 0.0
    sg_total: float = 0.0

    def areas(self) -> Dict[str, float]:
        return {
            "Off the Tee": self.sg_off_tee,
            "Approach": self.sg_approach,
            "Around the Green": self.sg_around_green,
            "Putting": self.sg_putting,
        }


@dataclass
class AreaRating:
    area: str
    value: float
    recommendation: Optional[str] = None


def expected_strokes(table: Dict[int, float], distance: float) -> float:
    """Linear interpolation between baseline distances, clamped at both ends"""
    distances = sorted(table)
    return float(np.interp(distance, distances, [table[d] for d in distances]))


def default_yardage(par: int) -> int:
    return DEFAULT_HOLE_YARDAGE.get(par, FALLBACK_HOLE_YARDAGE)


def estimate_approach_distance(par: int, hole_yardage: float) -> float:
    if par == 3:
        return hole_yardage
    if par == 4:
        return max(50, hole_yardage - AVERAGE_DRIVE_YARDS)
    return 150


def estimate_first_putt_distance(gir: bool, score: int, par: int, putts: int) -> float:
    if gir:
        return 25
    # Missed the green but got up and down
    if score == par and putts == 1:
        return 3
    return 15


def _missed_green_expected(result: Optional[ApproachResult]) -> float:
    if result == ApproachResult.BUNKER:
        return expected_strokes(BUNKER, GREENSIDE_BUNKER_YARDS)
    return MISSED_GREEN_EXPECTED.get(result, MISSED_GREEN_DEFAULT)


def _lie_expected(fairway_hit: Optional[bool], distance: float) -> float:
    if fairway_hit is True:
        return expected_strokes(FAIRWAY, distance)
    if fairway_hit is False:
        return expected_strokes(ROUGH, distance)
    return (expected_strokes(FAIRWAY, distance) + expected_strokes(ROUGH, distance)) / 2


def calculate_hole(hole: HoleEntry, hole_yardage: Optional[float] = None) -> StrokesGained:
    yardage = hole_yardage or default_yardage(hole.par)
    approach_distance = hole.approach_distance
    if approach_distance is None:
        approach_distance = estimate_approach_distance(hole.par, yardage)
    first_putt = hole.first_putt_distance
    if first_putt is None:
        first_putt = estimate_first_putt_distance(hole.gir, hole.score, hole.par, hole.putts)

    putting = 0.0
    if hole.putts > 0:
        putting = expected_strokes(PUTTING, first_putt) - hole.putts

    off_tee = 0.0
    if hole.par >= 4:
        off_tee = expected_strokes(TEE_SHOT, yardage) - _lie_expected(hole.fairway_hit, approach_distance) - 1

    approach = 0.0
    if approach_distance > 0:
        start = expected_strokes(FAIRWAY if hole.fairway_hit else ROUGH, approach_distance)
        if hole.gir:
            approach = start - expected_strokes(ON_GREEN, first_putt) - 1
        else:
            approach = start - _missed_green_expected(hole.approach_result) - 1

    around_green = 0.0
    if not hole.gir:
        shots_around_green = hole.score - hole.putts - (2 if hole.par >= 4 else 1)
        if shots_around_green > 0:
            chip = CHIP_EXPECTED.get(hole.approach_result, CHIP_DEFAULT)
            around_green = chip - expected_strokes(ON_GREEN, first_putt) - shots_around_green

    return StrokesGained(
        sg_off_tee=round(off_tee, 2),
        sg_approach=round(approach, 2),
        sg_around_green=round(around_green, 2),
        sg_putting=round(putting, 2),
        sg_total=round(off_tee + approach + around_green + putting, 2),
    )


def calculate_round(holes: Sequence[HoleEntry], hole_yardages: Optional[Sequence[Optional[float]]] = None) -> StrokesGained:
    """Sum of the per-hole values; missing yardages fall back to a par default"""
    totals = StrokesGained()
    for index, hole in enumerate(holes):
        yardage = None
        if hole_yardages is not None and index < len(hole_yardages):
            yardage = hole_yardages[index]
        hole_sg = calculate_hole(hole, yardage or default_yardage(hole.par))
        totals.sg_off_tee += hole_sg.sg_off_tee
        totals.sg_approach += hole_sg.sg_approach
        totals.sg_around_green += hole_sg.sg_around_green
        totals.sg_putting += hole_sg.sg_putting
        totals.sg_total += hole_sg.sg_total

    result = StrokesGained(
        sg_off_tee=round(totals.sg_off_tee, 2),
        sg_approach=round(totals.sg_approach, 2),
        sg_around_green=round(totals.sg_around_green, 2),
        sg_putting=round(totals.sg_putting, 2),
        sg_total=round(totals.sg_total, 2),
    )
    logger.debug("Round strokes gained calculated", holes=len(holes), sg_total=result.sg_total)
    return result


def average(rounds: Sequence[StrokesGained]) -> StrokesGained:
    if not rounds:
        return StrokesGained()
    return StrokesGained(
        sg_off_tee=round(float(np.mean([r.sg_off_tee for r in rounds])), 2),
        sg_approach=round(float(np.mean([r.sg_approach for r in rounds])), 2),
        sg_around_green=round(float(np.mean([r.sg_around_green for r in rounds])), 2),
        sg_putting=round(float(np.mean([r.sg_putting for r in rounds])), 2),
        sg_total=round(float(np.mean([r.sg_total for r in rounds])), 2),
    )


def weakest_area(sg: StrokesGained) -> AreaRating:
    areas = list(sg.areas().items())
    area, value = min(areas, key=lambda item: item[1])
    return AreaRating(area=area, value=value, recommendation=AREA_RECOMMENDATIONS[area])


def strongest_area(sg: StrokesGained) -> AreaRating:
    areas = list(sg.areas().items())
    area, value = max(areas, key=lambda item: item[1])
    return AreaRating(area=area, value=value)

