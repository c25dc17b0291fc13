from functools import partial

import structlog
from django.db import transaction

from matching.models import DomainEvent
from matching.signals import domain_event_emitted

logger = structlog.get_logger(__name__)


def _send(event):
    domain_event_emitted.send(sender=DomainEvent, event=event)


def emit(event_type, /, *, now, match=None, shipment=None, **payload):
    """Record an outbound event and publish it once the transaction commits.

    Receivers run after commit, so a slow or failing notifier can never
    hold or roll back the state change that produced the event.
    """
    event = DomainEvent.objects.create(
        event_type=event_type,
        match=match,
        shipment=shipment,
        payload=payload,
        occurred_at=now,
    )
    logger.info(
        "domain_event_recorded",
        event_type=event_type,
        match_id=match.pk if match else None,
        shipment_id=shipment.pk if shipment else None,
    )
    transaction.on_commit(partial(_send, event), robust=True)
    return event
