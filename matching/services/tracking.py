"""Tracking event ingestion.

Events are stored first, then milestone events try to move the shipment
(and its load) forward. A milestone whose transition is not legal from the
shipment's current state is stored and logged but changes nothing, so
replaying the same event is harmless.
"""

import structlog
from django.db import DatabaseError, transaction
from django.utils import timezone

from matching.forms import TrackingEventForm
from matching.models import DomainEvent, Load, Shipment, TrackingEvent
from matching.services.events import emit
from matching.services.exceptions import (
    InvalidStateTransition,
    ObjectNotFound,
    PersistenceError,
    ValidationError,
)
from matching.services.locks import load_lock

logger = structlog.get_logger(__name__)

# milestone event type -> shipment event of the same name on the load
MILESTONE_TRANSITIONS = {
    TrackingEvent.EventType.PICKUP_COMPLETED: "pickup",
    TrackingEvent.EventType.IN_TRANSIT: "start_transit",
    TrackingEvent.EventType.DELIVERY_COMPLETED: "deliver",
}


def get_shipment(shipment_id):
    try:
        return Shipment.objects.get(pk=shipment_id)
    except Shipment.DoesNotExist:
        raise ObjectNotFound("Shipment", shipment_id) from None


def _lock_shipment(shipment_id, load_id):
    """Row-lock the load, then the shipment; offers lock in the same order."""
    load = Load.objects.select_for_update().get(pk=load_id)
    shipment = Shipment.objects.select_for_update().get(pk=shipment_id)
    shipment.load = load
    return shipment


def apply_milestone(shipment, event):
    """Drive ``shipment`` and its load from a milestone event.

    Returns True when the shipment changed state.
    """
    transition = MILESTONE_TRANSITIONS.get(event.event_type)
    if transition is None:
        return False
    if not shipment.may(transition):
        logger.info(
            "milestone_ignored",
            shipment_id=shipment.pk,
            event_id=event.pk,
            event_type=event.event_type,
            shipment_status=shipment.status,
        )
        return False

    load = shipment.load
    on_date = timezone.localdate(event.occurred_at)
    if transition == "pickup":
        shipment.pickup(on_date)
        if load.may("pickup"):
            load.pickup(event.occurred_at)
    elif transition == "start_transit":
        shipment.start_transit()
        if load.may("start_transit"):
            load.start_transit()
    else:
        shipment.deliver(on_date)
        if load.may("deliver"):
            load.deliver(event.occurred_at)

    logger.info(
        "shipment_advanced",
        shipment_id=shipment.pk,
        status=shipment.status,
        load_status=load.status,
        event_id=event.pk,
    )
    return True


def _publish(shipment, event, applied, now):
    if event.is_milestone:
        emit(
            DomainEvent.EventType.SHIPMENT_MILESTONE,
            now=now,
            shipment=shipment,
            tracking_event_id=event.pk,
            tracking_event_type=event.event_type,
            occurred_at=event.occurred_at,
            shipment_status=shipment.status,
            applied=applied,
        )
    if event.is_alert:
        emit(
            DomainEvent.EventType.SHIPMENT_ALERT,
            now=now,
            shipment=shipment,
            tracking_event_id=event.pk,
            tracking_event_type=event.event_type,
            severity=event.severity,
            description=event.display_description,
            location=event.display_location,
        )


def record_tracking_event(shipment_id, data, *, now):
    """Validate, store and apply one tracking event. Returns the event."""
    form = TrackingEventForm(data)
    if not form.is_valid():
        raise ValidationError.from_form(form)
    shipment = get_shipment(shipment_id)

    with load_lock(shipment.load_id):
        try:
            with transaction.atomic():
                shipment = _lock_shipment(shipment_id, shipment.load_id)
                event = form.save(commit=False)
                event.shipment = shipment
                event.save()
                applied = apply_milestone(shipment, event)
                _publish(shipment, event, applied, now)
        except DatabaseError as exc:
            raise PersistenceError(str(exc)) from exc

    logger.info(
        "tracking_event_recorded",
        shipment_id=shipment.pk,
        event_id=event.pk,
        event_type=event.event_type,
        milestone=event.is_milestone,
        alert=event.is_alert,
    )
    return event


def report_shipment_exception(shipment_id, reason, *, now, reported_by=""):
    """Operator action: log an exception event and park the shipment.

    Alerts arriving through record_tracking_event never do this on their own.
    """
    shipment = get_shipment(shipment_id)
    with load_lock(shipment.load_id):
        try:
            with transaction.atomic():
                shipment = _lock_shipment(shipment_id, shipment.load_id)
                if not shipment.may("report_exception"):
                    raise InvalidStateTransition(
                        "shipment", shipment.status, "report_exception"
                    )
                event = TrackingEvent(
                    shipment=shipment,
                    event_type=TrackingEvent.EventType.EXCEPTION,
                    status=TrackingEvent.EventStatus.EXCEPTION,
                    source=TrackingEvent.Source.MANUAL,
                    description=reason,
                    reported_by=reported_by,
                    occurred_at=now,
                )
                event.save()
                shipment.report_exception(now, reason=reason)
                _publish(shipment, event, True, now)
        except DatabaseError as exc:
            raise PersistenceError(str(exc)) from exc

    logger.warning("shipment_exception_reported", shipment_id=shipment.pk, reason=reason)
    return shipment
