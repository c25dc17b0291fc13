import datetime

import pytest
from django.utils import timezone

from matching import factories
from matching.carriers import CarrierCapability, VehicleCapability
from matching.services.routing import Coordinate, RouteEstimator


@pytest.fixture
def carrier_factory():
    return factories.CarrierFactory


@pytest.fixture
def vehicle_factory():
    return factories.VehicleFactory


@pytest.fixture
def driver_factory():
    return factories.DriverFactory


@pytest.fixture
def load_factory():
    return factories.LoadFactory


@pytest.fixture
def match_factory():
    return factories.MatchFactory


@pytest.fixture
def shipment_factory():
    return factories.ShipmentFactory


@pytest.fixture
def tracking_event_factory():
    return factories.TrackingEventFactory


@pytest.fixture
def now():
    return timezone.now()


@pytest.fixture
def estimator():
    """Deterministic estimator; never reaches a routing provider."""
    return RouteEstimator()


@pytest.fixture
def accepted_shipment(load_factory, carrier_factory, now):
    """Load accepted through the service layer, with its shipment."""
    from matching.services import offers

    load = load_factory()
    carrier = carrier_factory()
    match = offers.create_offer(load.pk, carrier.pk, now=now)
    match = offers.accept_offer(match.pk, now=now)
    return match.shipment


@pytest.fixture
def today():
    return datetime.date(2026, 3, 2)


@pytest.fixture
def capability(today):
    """Builds CarrierCapability snapshots for a carrier parked at the pickup."""

    def make(**overrides):
        values = dict(
            id=1,
            name="Peach State Freight",
            is_active=True,
            is_verified=True,
            equipment_types=frozenset({"dry_van"}),
            service_areas=frozenset({"GA", "FL"}),
            safety_rating="satisfactory",
            insurance_expiry=today + datetime.timedelta(days=90),
            hazmat_certified=False,
            location=Coordinate(float(factories.ATLANTA[0]), float(factories.ATLANTA[1])),
            average_rating=4.5,
            on_time_percentage=95.0,
            vehicles=(
                VehicleCapability(id=1, equipment_type="dry_van", capacity_weight=45000),
            ),
        )
        values.update(overrides)
        return CarrierCapability(**values)

    return make


@pytest.fixture
def unsaved_load(today):
    def make(**overrides):
        overrides.setdefault("pickup_date", today + datetime.timedelta(days=2))
        return factories.LoadFactory.build(**overrides)

    return make
