"""Factories for demo/test data with factory_boy and Faker.

Defaults describe a plain dry-van lane from Atlanta, GA to Jacksonville, FL
and a verified carrier sitting in Atlanta that can haul it.
"""

import datetime
from decimal import Decimal

import factory
from django.utils import timezone
from factory import Faker
from factory.django import DjangoModelFactory

from . import models

ATLANTA = (Decimal("33.748997"), Decimal("-84.387985"))
JACKSONVILLE = (Decimal("30.332184"), Decimal("-81.655647"))


def _today():
    return timezone.localdate()


class CarrierFactory(DjangoModelFactory):
    class Meta:
        model = models.Carrier

    name = Faker("company")
    mc_number = factory.Sequence(lambda n: f"MC{20000 + n}")
    dot_number = factory.Sequence(lambda n: f"DOT{30000 + n}")
    state = "GA"
    is_verified = True
    equipment_types = factory.LazyFunction(lambda: [models.EquipmentType.DRY_VAN])
    service_areas = factory.LazyFunction(lambda: ["GA", "FL"])
    hazmat_certified = False
    safety_rating = models.Carrier.SafetyRating.SATISFACTORY
    insurance_expiry = factory.LazyFunction(lambda: _today() + datetime.timedelta(days=365))
    current_latitude = ATLANTA[0]
    current_longitude = ATLANTA[1]
    average_rating = Decimal("4.50")
    on_time_percentage = Decimal("95.00")
    vehicle = factory.RelatedFactory(
        "matching.factories.VehicleFactory", factory_related_name="carrier"
    )


class VehicleFactory(DjangoModelFactory):
    class Meta:
        model = models.Vehicle

    carrier = factory.SubFactory(CarrierFactory)
    unit_number = factory.Sequence(lambda n: f"TRK-{n:04d}")
    equipment_type = models.EquipmentType.DRY_VAN
    capacity_weight = 45000
    temperature_controlled = False


class DriverFactory(DjangoModelFactory):
    class Meta:
        model = models.Driver

    carrier = factory.SubFactory(CarrierFactory)
    first_name = Faker("first_name")
    last_name = Faker("last_name")
    cdl_number = factory.Sequence(lambda n: f"CDL{50000 + n}")
    hazmat_certified = False
    team_driver = False


class LoadFactory(DjangoModelFactory):
    class Meta:
        model = models.Load

    reference_number = factory.Sequence(lambda n: f"LD-TEST-{n:04d}")
    status = models.Load.Status.POSTED
    commodity = "General freight"
    equipment_type = models.EquipmentType.DRY_VAN
    weight = 25000

    pickup_city = "Atlanta"
    pickup_state = "GA"
    pickup_latitude = ATLANTA[0]
    pickup_longitude = ATLANTA[1]
    pickup_date = factory.LazyFunction(lambda: _today() + datetime.timedelta(days=2))

    delivery_city = "Jacksonville"
    delivery_state = "FL"
    delivery_latitude = JACKSONVILLE[0]
    delivery_longitude = JACKSONVILLE[1]
    delivery_date = factory.LazyAttribute(
        lambda o: o.pickup_date + datetime.timedelta(days=2)
    )

    rate = Decimal("2500.00")
    estimated_distance = Decimal("346.00")
    posted_at = factory.LazyFunction(timezone.now)
    expires_at = factory.LazyFunction(lambda: timezone.now() + datetime.timedelta(days=2))


class MatchFactory(DjangoModelFactory):
    class Meta:
        model = models.Match

    load = factory.SubFactory(LoadFactory)
    carrier = factory.SubFactory(CarrierFactory)
    status = models.Match.Status.PENDING
    match_score = Decimal("242.50")
    distance_to_pickup = Decimal("0.00")
    respond_by = factory.LazyFunction(lambda: timezone.now() + datetime.timedelta(hours=24))


class ShipmentFactory(DjangoModelFactory):
    class Meta:
        model = models.Shipment

    match = factory.SubFactory(MatchFactory, status=models.Match.Status.ACCEPTED)
    load = factory.LazyAttribute(lambda o: o.match.load)
    carrier = factory.LazyAttribute(lambda o: o.match.carrier)
    status = models.Shipment.Status.PENDING_PICKUP
    scheduled_pickup_date = factory.LazyAttribute(lambda o: o.load.pickup_date)
    scheduled_delivery_date = factory.LazyAttribute(lambda o: o.load.delivery_date)


class TrackingEventFactory(DjangoModelFactory):
    class Meta:
        model = models.TrackingEvent

    shipment = factory.SubFactory(ShipmentFactory)
    event_type = models.TrackingEvent.EventType.LOCATION_UPDATE
    status = models.TrackingEvent.EventStatus.COMPLETED
    source = models.TrackingEvent.Source.GPS
    occurred_at = factory.LazyFunction(timezone.now)
