"""Eligibility filter: which carriers can legally and physically haul a load.

Pure functions over a Load and ``CarrierCapability`` snapshots. Nothing here
touches the database or raises for an ineligible carrier; callers get the
names of the failed rules instead.
"""

from dataclasses import dataclass
from typing import Optional

from matching.models import Carrier
from matching.services.routing import get_estimator

SAFETY_RANK = {
    Carrier.SafetyRating.SATISFACTORY: 3,
    Carrier.SafetyRating.CONDITIONAL: 2,
    Carrier.SafetyRating.NOT_RATED: 1,
    Carrier.SafetyRating.UNSATISFACTORY: 0,
}


@dataclass(frozen=True)
class EligibilityOptions:
    min_safety_rating: Optional[str] = None
    max_deadhead_miles: Optional[float] = None

    def __post_init__(self):
        if self.min_safety_rating is not None and self.min_safety_rating not in SAFETY_RANK:
            raise ValueError(f"Unknown safety rating: {self.min_safety_rating}")
        if self.max_deadhead_miles is not None and self.max_deadhead_miles < 0:
            raise ValueError("max_deadhead_miles cannot be negative")


def measure_deadhead(load, carrier, estimator=None):
    """Road miles from the carrier's last position to pickup, or None."""
    pickup = load.pickup_coordinates
    if carrier.location is None or pickup is None:
        return None
    estimator = estimator or get_estimator()
    return estimator.estimate_route(carrier.location, pickup).distance_miles


def _has_capacity(vehicles, weight, temperature_controlled=False):
    for vehicle in vehicles:
        if temperature_controlled and not vehicle.temperature_controlled:
            continue
        if weight is None or vehicle.capacity_weight >= weight:
            return True
    return False


def eligibility_failures(
    load,
    carrier,
    *,
    today,
    active_carrier_ids=frozenset(),
    options=None,
    deadhead_miles=None,
):
    """Return the names of every rule ``carrier`` fails for ``load``.

    An empty list means eligible. ``deadhead_miles`` is only consulted when
    ``options.max_deadhead_miles`` is set; an unknown deadhead then fails.
    """
    options = options or EligibilityOptions()
    failures = []

    if not carrier.is_active:
        failures.append("carrier_inactive")
    if not carrier.is_verified:
        failures.append("carrier_unverified")
    if not carrier.handles_equipment(load.equipment_type):
        failures.append("equipment_mismatch")
    if not carrier.serves_state(load.pickup_state):
        failures.append("pickup_state_not_served")
    if carrier.insurance_expiry is None or carrier.insurance_expiry <= today:
        failures.append("insurance_expired")
    if load.is_hazmat and not (carrier.hazmat_certified or carrier.has_hazmat_driver):
        failures.append("hazmat_not_certified")
    if load.is_team_driver and not carrier.has_team_driver:
        failures.append("team_driver_unavailable")

    vehicles = carrier.assignable_vehicles()
    if load.weight is not None and not _has_capacity(vehicles, load.weight):
        failures.append("insufficient_capacity")
    if load.temperature_controlled and not _has_capacity(
        vehicles, load.weight, temperature_controlled=True
    ):
        failures.append("no_temperature_controlled_vehicle")

    if carrier.id in active_carrier_ids:
        failures.append("active_match_exists")

    if options.min_safety_rating is not None and SAFETY_RANK.get(
        carrier.safety_rating, 0
    ) < SAFETY_RANK[options.min_safety_rating]:
        failures.append("below_min_safety_rating")
    if options.max_deadhead_miles is not None and (
        deadhead_miles is None or deadhead_miles > options.max_deadhead_miles
    ):
        failures.append("deadhead_too_far")

    return failures


def is_eligible(load, carrier, **kwargs):
    return not eligibility_failures(load, carrier, **kwargs)


def filter_eligible(
    load, carriers, *, today, active_carrier_ids=frozenset(), options=None, estimator=None
):
    """Subset of ``carriers`` passing every rule, in input order."""
    options = options or EligibilityOptions()
    eligible = []
    for carrier in carriers:
        deadhead = None
        if options.max_deadhead_miles is not None:
            deadhead = measure_deadhead(load, carrier, estimator)
        if is_eligible(
            load,
            carrier,
            today=today,
            active_carrier_ids=active_carrier_ids,
            options=options,
            deadhead_miles=deadhead,
        ):
            eligible.append(carrier)
    return eligible
