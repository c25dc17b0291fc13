"""Cost/route estimation.

``RouteEstimator.estimate_route`` answers with the same ``RouteEstimate``
whether an external routing provider is configured or not. Without one (or
when it times out) the deterministic fallback below is used: geodesic
distance inflated by a distance-banded road factor, a banded average speed,
fuel at the configured MPG/price and a banded per-mile toll estimate.
"""

from dataclasses import dataclass

import httpx
import structlog
from geopy.distance import geodesic

from matching.conf import get_setting
from matching.services.exceptions import EstimatorUnavailable

logger = structlog.get_logger(__name__)

# (upper bound in miles, value); first band whose bound is >= the input wins.
ROAD_FACTOR_BANDS = ((50, 1.4), (200, 1.3), (500, 1.25))
DEFAULT_ROAD_FACTOR = 1.2

SPEED_BANDS_MPH = ((50, 45.0), (200, 50.0))
DEFAULT_SPEED_MPH = 55.0

TOLL_PER_MILE_BANDS = ((100, 0.0), (300, 0.15), (600, 0.12))
DEFAULT_TOLL_PER_MILE = 0.10


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValueError(f"Longitude out of range: {self.longitude}")

    @classmethod
    def from_values(cls, latitude, longitude):
        """Build from nullable DB values; None when either part is missing."""
        if latitude is None or longitude is None:
            return None
        return cls(float(latitude), float(longitude))

    def as_tuple(self):
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class RouteEstimate:
    distance_miles: float
    duration_hours: float
    fuel_cost: float
    toll_cost: float
    source: str = "fallback"

    @classmethod
    def zero(cls, source="fallback"):
        return cls(0.0, 0.0, 0.0, 0.0, source)


def _banded(value, bands, default):
    for upper, result in bands:
        if value <= upper:
            return result
    return default


def straight_line_miles(origin: Coordinate, destination: Coordinate) -> float:
    return geodesic(origin.as_tuple(), destination.as_tuple()).miles


def road_miles(straight_miles: float) -> float:
    return straight_miles * _banded(straight_miles, ROAD_FACTOR_BANDS, DEFAULT_ROAD_FACTOR)


def driving_hours(miles: float) -> float:
    if miles <= 0:
        return 0.0
    return miles / _banded(miles, SPEED_BANDS_MPH, DEFAULT_SPEED_MPH)


def fuel_cost(miles: float) -> float:
    mpg = float(get_setting("MILES_PER_GALLON"))
    price = float(get_setting("FUEL_PRICE_PER_GALLON"))
    return miles / mpg * price


def toll_cost(miles: float) -> float:
    return miles * _banded(miles, TOLL_PER_MILE_BANDS, DEFAULT_TOLL_PER_MILE)


def fallback_route(origin: Coordinate, destination: Coordinate) -> RouteEstimate:
    straight = straight_line_miles(origin, destination)
    if straight == 0:
        return RouteEstimate.zero()

    miles = road_miles(straight)
    return RouteEstimate(
        distance_miles=round(miles, 2),
        duration_hours=round(driving_hours(miles), 2),
        fuel_cost=round(fuel_cost(miles), 2),
        toll_cost=round(toll_cost(miles), 2),
    )


class HttpRoutingProvider:
    """Routing provider reached over HTTP.

    Expects a JSON body with ``distance_miles`` and ``duration_hours``;
    ``toll_cost`` is optional. Fuel is always priced locally so both paths
    use the same fuel assumptions.
    """

    def __init__(self, base_url, timeout=2.0, transport=None):
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport

    def route(self, origin: Coordinate, destination: Coordinate) -> RouteEstimate:
        params = {
            "origin": f"{origin.latitude},{origin.longitude}",
            "destination": f"{destination.latitude},{destination.longitude}",
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(self.base_url, params=params)
                response.raise_for_status()
                body = response.json()
            miles = float(body["distance_miles"])
            hours = float(body["duration_hours"])
            tolls = body.get("toll_cost")
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
            raise EstimatorUnavailable(f"Routing provider request failed: {exc}") from exc

        return RouteEstimate(
            distance_miles=round(miles, 2),
            duration_hours=round(hours, 2),
            fuel_cost=round(fuel_cost(miles), 2),
            toll_cost=round(float(tolls) if tolls is not None else toll_cost(miles), 2),
            source="provider",
        )


class RouteEstimator:
    def __init__(self, provider=None):
        self.provider = provider

    def estimate_route(self, origin: Coordinate, destination: Coordinate) -> RouteEstimate:
        if origin == destination:
            return RouteEstimate.zero()

        if self.provider is not None:
            try:
                return self.provider.route(origin, destination)
            except EstimatorUnavailable as exc:
                logger.warning(
                    "routing_provider_failed",
                    error=str(exc),
                    origin=origin.as_tuple(),
                    destination=destination.as_tuple(),
                )

        return fallback_route(origin, destination)


def get_estimator():
    url = get_setting("ROUTING_PROVIDER_URL")
    if not url:
        return RouteEstimator()
    return RouteEstimator(
        HttpRoutingProvider(url, timeout=get_setting("ROUTING_PROVIDER_TIMEOUT_SECONDS"))
    )
