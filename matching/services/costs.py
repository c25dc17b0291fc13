from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from matching.conf import get_setting
from matching.services.routing import fuel_cost

CENTS = Decimal("0.01")


def to_money(value):
    """Round a float/Decimal to cents for a DecimalField."""
    if value is None:
        return None
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class TripCostEstimate:
    total_miles: float
    fuel_cost: float
    driver_cost: float
    maintenance_cost: float
    insurance_cost: float
    total_cost: float
    margin: float


def estimate_trip_cost(load_miles, deadhead_miles, total_rate):
    """Carrier-side cost and margin for hauling a load.

    Per-mile costs apply to loaded plus deadhead miles; insurance is a share
    of the load's total rate. Zero miles is valid and costs nothing but
    insurance.
    """
    total_miles = float(load_miles or 0) + float(deadhead_miles or 0)
    rate = float(total_rate or 0)

    fuel = fuel_cost(total_miles)
    driver = total_miles * float(get_setting("DRIVER_COST_PER_MILE"))
    maintenance = total_miles * float(get_setting("MAINTENANCE_COST_PER_MILE"))
    insurance = rate * float(get_setting("INSURANCE_RATE"))
    total = fuel + driver + maintenance + insurance

    return TripCostEstimate(
        total_miles=round(total_miles, 2),
        fuel_cost=round(fuel, 2),
        driver_cost=round(driver, 2),
        maintenance_cost=round(maintenance, 2),
        insurance_cost=round(insurance, 2),
        total_cost=round(total, 2),
        margin=round(rate - total, 2),
    )
