import datetime
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from matching.models import Load, Match, Shipment, TrackingEvent
from matching.services.exceptions import InvalidStateTransition

pytestmark = pytest.mark.django_db


def test_load_total_rate_is_computed_on_save(load_factory):
    load = load_factory(
        rate=Decimal("2000.00"),
        fuel_surcharge=Decimal("150.00"),
        accessorial_charges=Decimal("75.50"),
    )
    load.refresh_from_db()
    assert load.total_rate == Decimal("2225.50")
    assert load.rate_per_mile == round(2225.50 / 346, 2)


def test_load_total_rate_follows_partial_update(load_factory):
    load = load_factory()
    load.fuel_surcharge = Decimal("100.00")
    load.save(update_fields=["fuel_surcharge"])
    load.refresh_from_db()
    assert load.total_rate == Decimal("2600.00")


def test_load_delivery_before_pickup_is_invalid(load_factory):
    load = load_factory.build()
    load.delivery_date = load.pickup_date - datetime.timedelta(days=1)
    with pytest.raises(ValidationError, match="Delivery date cannot be before pickup date"):
        load.clean()


def test_load_delivery_before_pickup_violates_constraint(load_factory):
    load = load_factory()
    load.delivery_date = load.pickup_date - datetime.timedelta(days=1)
    with pytest.raises(IntegrityError), transaction.atomic():
        load.save()


def test_reefer_load_needs_temperature_range(load_factory):
    load = load_factory.build(temperature_controlled=True)
    with pytest.raises(ValidationError, match="Temperature range is required"):
        load.clean()
    load.temperature_min = Decimal("36")
    load.temperature_max = Decimal("34")
    with pytest.raises(ValidationError, match="Maximum must be above minimum"):
        load.clean()


def test_load_availability(load_factory, now):
    load = load_factory()
    assert load.available_for_matching(now)

    load.expires_at = now
    assert load.is_expired(now)
    assert not load.available_for_matching(now)

    past_pickup = load_factory(
        pickup_date=now.date() - datetime.timedelta(days=1),
    )
    assert not past_pickup.available_for_matching(now)


def test_load_lifecycle_methods(load_factory, now):
    load = load_factory()
    load.match_with_carrier()
    load.accept_by_carrier(now)
    load.pickup(now)
    load.start_transit()
    load.deliver(now)

    load.refresh_from_db()
    assert load.status == Load.Status.DELIVERED
    assert load.accepted_at == now
    assert load.delivered_at == now


def test_load_illegal_transition_leaves_row_untouched(load_factory, now):
    load = load_factory()
    with pytest.raises(InvalidStateTransition, match="load: cannot 'pickup' from 'posted'"):
        load.pickup(now)
    load.refresh_from_db()
    assert load.status == Load.Status.POSTED
    assert load.picked_up_at is None


def test_only_one_accepted_match_per_load(match_factory, carrier_factory):
    first = match_factory(status=Match.Status.ACCEPTED)
    with pytest.raises(IntegrityError), transaction.atomic():
        match_factory(load=first.load, carrier=carrier_factory(), status=Match.Status.ACCEPTED)


def test_one_active_match_per_load_and_carrier(match_factory):
    first = match_factory()
    with pytest.raises(IntegrityError), transaction.atomic():
        match_factory(load=first.load, carrier=first.carrier, status=Match.Status.OFFERED)

    # closed matches don't count
    first.status = Match.Status.REJECTED
    first.save()
    assert match_factory(load=first.load, carrier=first.carrier).status == Match.Status.PENDING


def test_match_score_cannot_be_negative(match_factory):
    with pytest.raises(IntegrityError), transaction.atomic():
        match_factory(match_score=Decimal("-1.00"))


def test_match_accept_defaults_rate_to_load_total(match_factory, now):
    match = match_factory()
    match.accept(now)
    assert match.status == Match.Status.ACCEPTED
    assert match.rate_accepted == match.load.total_rate


def test_match_derived_values(match_factory, now):
    match = match_factory(
        status=Match.Status.OFFERED,
        distance_to_pickup=Decimal("54.00"),
        margin_estimate=Decimal("1200.00"),
        rate_offered=Decimal("2400.00"),
        matched_at=now,
    )
    match.accept(now + datetime.timedelta(hours=3))

    assert match.total_miles == 400.0
    assert match.estimated_total_cost == 1300.0
    assert match.profit_margin_percentage == round((2400 - 1300) / 2400 * 100, 2)
    assert match.time_to_respond == 3.0
    assert match.revenue_per_mile == 6.0


def test_rejected_match_is_terminal(match_factory, now):
    match = match_factory()
    match.reject(now, reason=Match.RejectionReason.RATE_TOO_LOW)
    with pytest.raises(InvalidStateTransition):
        match.accept(now)
    match.refresh_from_db()
    assert match.status == Match.Status.REJECTED
    assert match.rejection_reason == Match.RejectionReason.RATE_TOO_LOW


def test_shipment_delivery_on_time_flag(shipment_factory):
    shipment = shipment_factory()
    shipment.pickup(shipment.scheduled_pickup_date)
    shipment.start_transit()
    shipment.deliver(shipment.scheduled_delivery_date)
    assert shipment.delivered_on_time is True


def test_delivered_shipment_cannot_be_modified(shipment_factory):
    shipment = shipment_factory()
    shipment.pickup(shipment.scheduled_pickup_date)
    shipment.start_transit()
    shipment.deliver(shipment.scheduled_delivery_date)

    stored = Shipment.objects.get(pk=shipment.pk)
    stored.exception_reason = "late edit"
    with pytest.raises(ValueError, match="Delivered shipments cannot be modified"):
        stored.save()


def test_shipment_estimated_delivery_shifts_with_pickup(shipment_factory):
    shipment = shipment_factory()
    assert shipment.estimated_delivery_date == shipment.scheduled_delivery_date

    late_pickup = shipment.scheduled_pickup_date + datetime.timedelta(days=1)
    shipment.pickup(late_pickup)
    assert shipment.estimated_delivery_date == shipment.scheduled_delivery_date + datetime.timedelta(
        days=1
    )
    assert shipment.days_in_transit(late_pickup + datetime.timedelta(days=1)) == 1


def test_tracking_events_are_append_only(tracking_event_factory):
    event = tracking_event_factory()
    event.description = "edited"
    with pytest.raises(ValueError, match="append-only"):
        event.save()
    with pytest.raises(ValueError, match="append-only"):
        event.delete()
    with pytest.raises(ValueError, match="append-only"):
        TrackingEvent.objects.all().delete()


def test_tracking_event_classification(tracking_event_factory):
    pickup = tracking_event_factory(event_type=TrackingEvent.EventType.PICKUP_COMPLETED)
    breakdown = tracking_event_factory(
        shipment=pickup.shipment, event_type=TrackingEvent.EventType.BREAKDOWN
    )
    fuel = tracking_event_factory(
        shipment=pickup.shipment, event_type=TrackingEvent.EventType.FUEL_STOP
    )

    assert pickup.is_milestone and not pickup.is_alert
    assert breakdown.is_milestone and breakdown.is_alert
    assert breakdown.severity == TrackingEvent.Severity.CRITICAL
    assert not fuel.is_milestone and fuel.severity == TrackingEvent.Severity.INFO
    assert list(TrackingEvent.objects.milestones()) == [pickup, breakdown]
    assert list(TrackingEvent.objects.alerts()) == [breakdown]


def test_tracking_event_display_helpers(tracking_event_factory):
    delay = tracking_event_factory(
        event_type=TrackingEvent.EventType.DELAY, metadata={"delay_minutes": 45}
    )
    assert delay.display_description == "Shipment has been delayed (45 minutes)"
    assert delay.display_location == "Unknown location"

    located = tracking_event_factory(
        shipment=delay.shipment,
        latitude=Decimal("32.000000"),
        longitude=Decimal("-83.000000"),
    )
    assert located.display_location == "32.000000, -83.000000"
    assert TrackingEvent.objects.filter(shipment=delay.shipment).latest_location() == located


def test_temperature_violation(tracking_event_factory, shipment_factory, load_factory):
    load = load_factory(
        temperature_controlled=True,
        temperature_min=Decimal("34.00"),
        temperature_max=Decimal("38.00"),
    )
    shipment = shipment_factory(match__load=load)
    alert = tracking_event_factory(
        shipment=shipment,
        event_type=TrackingEvent.EventType.TEMPERATURE_ALERT,
        temperature=Decimal("41.50"),
    )
    assert alert.is_temperature_violation
    assert alert.display_description == "Temperature monitoring alert (Temperature: 41.50°F)"
