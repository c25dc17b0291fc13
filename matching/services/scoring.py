"""Match scoring.

Five independently clamped terms are summed:

    distance      max(100 - deadhead miles, 0), 0 when location is unknown
    equipment     50 when the carrier runs the load's equipment type
    service area  30 for the pickup state + 20 for the delivery state
    reliability   average rating (0-5) x 10, capped at 50
    on-time       on-time percentage x 0.5, capped at 50

The sum is not normalised. It can exceed 100 and is only meaningful for
ranking carriers against each other for the same load.
"""

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from matching.carriers import CarrierCapability
from matching.conf import get_setting
from matching.services.eligibility import measure_deadhead
from matching.services.routing import get_estimator

DISTANCE_MAX = 100.0
EQUIPMENT_POINTS = 50.0
PICKUP_AREA_POINTS = 30.0
DELIVERY_AREA_POINTS = 20.0
RELIABILITY_MAX = 50.0
ON_TIME_MAX = 50.0


def _clamp(value, upper):
    return min(max(value, 0.0), upper)


@dataclass(frozen=True)
class ScoreBreakdown:
    distance: float
    equipment: float
    service_area: float
    reliability: float
    on_time: float

    @property
    def total(self):
        return round(
            self.distance + self.equipment + self.service_area + self.reliability + self.on_time,
            2,
        )


@dataclass(frozen=True)
class ScoredCandidate:
    carrier: CarrierCapability
    breakdown: ScoreBreakdown
    deadhead_miles: Optional[float]

    @property
    def score(self):
        return self.breakdown.total

    def sort_key(self):
        deadhead = math.inf if self.deadhead_miles is None else self.deadhead_miles
        return (-self.score, deadhead, self.carrier.id)


def score_carrier(load, carrier, deadhead_miles):
    distance = 0.0
    if deadhead_miles is not None:
        distance = _clamp(DISTANCE_MAX - deadhead_miles, DISTANCE_MAX)

    service_area = 0.0
    if carrier.serves_state(load.pickup_state):
        service_area += PICKUP_AREA_POINTS
    if carrier.serves_state(load.delivery_state):
        service_area += DELIVERY_AREA_POINTS

    return ScoreBreakdown(
        distance=round(distance, 2),
        equipment=EQUIPMENT_POINTS if carrier.handles_equipment(load.equipment_type) else 0.0,
        service_area=service_area,
        reliability=_clamp(carrier.average_rating * 10, RELIABILITY_MAX),
        on_time=_clamp(carrier.on_time_percentage * 0.5, ON_TIME_MAX),
    )


def score_candidate(load, carrier, estimator=None):
    deadhead = measure_deadhead(load, carrier, estimator)
    return ScoredCandidate(
        carrier=carrier,
        breakdown=score_carrier(load, carrier, deadhead),
        deadhead_miles=deadhead,
    )


def rank_candidates(load, carriers, *, estimator=None, max_workers=None, limit=None):
    """Score ``carriers`` in parallel and return them best first.

    Ties fall back to lower deadhead, then carrier id.
    """
    carriers = list(carriers)
    if not carriers:
        return []

    estimator = estimator or get_estimator()
    max_workers = max_workers or get_setting("SCORING_MAX_WORKERS")
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        scored = list(pool.map(lambda c: score_candidate(load, c, estimator), carriers))

    scored.sort(key=ScoredCandidate.sort_key)
    return scored[:limit] if limit is not None else scored
