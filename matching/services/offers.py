"""Match lifecycle orchestration.

Every function here takes the per-load lock, opens one transaction and
row-locks the load before touching any of its matches. Cross-aggregate
effects (load transition, shipment creation, sibling cancellation) are
explicit ordered steps inside that transaction, never model side effects.
"""

import datetime
from contextlib import contextmanager

import structlog
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from matching.carriers import ModelCarrierDirectory
from matching.conf import get_setting
from matching.models import DomainEvent, Load, Match, Shipment
from matching.services.candidates import active_carrier_ids, get_load, match_estimates
from matching.services.costs import to_money
from matching.services.eligibility import eligibility_failures, measure_deadhead
from matching.services.events import emit
from matching.services.exceptions import (
    AlreadyMatched,
    ConflictError,
    IneligibleCarrierError,
    InvalidStateTransition,
    ObjectNotFound,
    PersistenceError,
    ValidationError,
)
from matching.services.locks import load_lock
from matching.services.routing import get_estimator
from matching.services.scoring import score_carrier

logger = structlog.get_logger(__name__)


def get_match(match_id):
    try:
        return Match.objects.get(pk=match_id)
    except Match.DoesNotExist:
        raise ObjectNotFound("Match", match_id) from None


@contextmanager
def load_transaction(load_id, conflict=None):
    """Per-load lock plus an atomic block; storage errors become ServiceErrors."""
    with load_lock(load_id):
        try:
            with transaction.atomic():
                yield
        except IntegrityError as exc:
            if conflict is not None:
                raise conflict() from exc
            raise ConflictError(f"Load {load_id} changed concurrently.") from exc
        except DatabaseError as exc:
            raise PersistenceError(str(exc)) from exc


def _lock_load(load_id):
    return Load.objects.select_for_update().get(pk=load_id)


def _lock_match(match_id, load):
    match = Match.objects.select_for_update().get(pk=match_id)
    match.load = load
    return match


def _require(obj, event):
    if not obj.may(event):
        raise InvalidStateTransition(obj.machine.name, obj.status, event)


def _status_changed(match, previous, now, **extra):
    emit(
        DomainEvent.EventType.MATCH_STATUS_CHANGED,
        now=now,
        match=match,
        load_id=match.load_id,
        carrier_id=match.carrier_id,
        from_status=previous,
        to_status=match.status,
        **extra,
    )


def ensure_shipment(match):
    """Shipment for an accepted match, created on first call."""
    try:
        return match.shipment
    except Shipment.DoesNotExist:
        pass
    if match.status != Match.Status.ACCEPTED:
        return None
    load = match.load
    return Shipment.objects.create(
        load=load,
        match=match,
        carrier_id=match.carrier_id,
        scheduled_pickup_date=load.pickup_date,
        scheduled_delivery_date=load.delivery_date,
    )


def create_offer(load_id, carrier_id, *, now, rate=None, directory=None, estimator=None):
    """Operator/carrier-initiated match, created directly as ``offered``."""
    directory = directory or ModelCarrierDirectory()
    load = get_load(load_id)
    carrier = directory.get_carrier(carrier_id)
    deadhead = measure_deadhead(load, carrier, estimator or get_estimator())

    with load_transaction(load.pk):
        load = _lock_load(load.pk)
        if load.status not in (Load.Status.POSTED, Load.Status.MATCHED):
            raise InvalidStateTransition("load", load.status, "create_offer")
        if not load.available_for_matching(now):
            raise ConflictError(f"Load {load.pk} is no longer open for offers.")

        failures = eligibility_failures(
            load,
            carrier,
            today=timezone.localdate(now),
            active_carrier_ids=active_carrier_ids(load),
        )
        if failures:
            raise IneligibleCarrierError(carrier.id, failures)

        match = Match.objects.create(
            load=load,
            carrier_id=carrier.id,
            status=Match.Status.OFFERED,
            match_score=to_money(score_carrier(load, carrier, deadhead).total),
            rate_offered=rate or load.total_rate,
            matched_at=now,
            **match_estimates(load, deadhead, now),
        )
        if load.may("match_with_carrier"):
            load.match_with_carrier()
        emit(
            DomainEvent.EventType.MATCH_CREATED,
            now=now,
            match=match,
            load_id=load.pk,
            carrier_id=carrier.id,
            status=match.status,
            match_score=match.match_score,
            rate_offered=match.rate_offered,
        )

    logger.info("offer_created", match_id=match.pk, load_id=load.pk, carrier_id=carrier.id)
    return match


def make_offer(match_id, *, now, rate=None):
    """pending → offered. The load moves to ``matched`` on its first offer."""
    match = get_match(match_id)
    with load_transaction(match.load_id):
        load = _lock_load(match.load_id)
        match = _lock_match(match_id, load)
        _require(match, "make_offer")

        previous = match.status
        match.make_offer(
            now,
            rate=rate or match.rate_offered or load.total_rate,
            respond_by=now + datetime.timedelta(hours=get_setting("OFFER_RESPONSE_HOURS")),
        )
        if load.may("match_with_carrier"):
            load.match_with_carrier()
        ensure_shipment(match)
        _status_changed(match, previous, now, rate_offered=match.rate_offered)

    logger.info("offer_made", match_id=match.pk, load_id=load.pk)
    return match


def accept_offer(match_id, *, now, rate=None, directory=None):
    """Accept one match and settle the whole load in a single transaction.

    Steps, all-or-nothing: accept the match, move the load to ``accepted``,
    create the shipment, cancel every other open match on the load. A
    second acceptance for the same load fails with ``AlreadyMatched``.
    """
    directory = directory or ModelCarrierDirectory()
    match = get_match(match_id)
    load_id = match.load_id

    with load_transaction(load_id, conflict=lambda: AlreadyMatched(load_id)):
        load = _lock_load(load_id)
        match = _lock_match(match_id, load)
        siblings = list(
            Match.objects.select_for_update().filter(load=load).exclude(pk=match.pk)
        )

        winner = next((m for m in siblings if m.status == Match.Status.ACCEPTED), None)
        if winner is not None:
            raise AlreadyMatched(load.pk, winner.pk)
        _require(match, "accept_offer")
        _require(load, "accept_by_carrier")
        if load.is_expired(now):
            raise ConflictError(f"Load {load.pk} expired before acceptance.")

        carrier = directory.get_carrier(match.carrier_id)
        failures = eligibility_failures(load, carrier, today=timezone.localdate(now))
        if failures:
            raise IneligibleCarrierError(carrier.id, failures)

        previous = match.status
        match.accept(now, rate=rate)
        load.accept_by_carrier(now)
        shipment = ensure_shipment(match)

        cancelled = []
        for sibling in siblings:
            if not sibling.is_open:
                continue
            sibling_previous = sibling.status
            sibling.cancel(now)
            _status_changed(sibling, sibling_previous, now, reason="load_accepted_elsewhere")
            cancelled.append(sibling.pk)

        _status_changed(
            match,
            previous,
            now,
            rate_accepted=match.rate_accepted,
            shipment_id=shipment.pk,
        )

    logger.info(
        "match_accepted",
        match_id=match.pk,
        load_id=load.pk,
        shipment_id=shipment.pk,
        cancelled_siblings=cancelled,
    )
    return match


def reject_offer(match_id, *, now, reason=Match.RejectionReason.OTHER, notes=""):
    if reason not in Match.RejectionReason.values:
        raise ValidationError({"reason": [f"Unknown rejection reason: {reason}"]})

    match = get_match(match_id)
    with load_transaction(match.load_id):
        load = _lock_load(match.load_id)
        match = _lock_match(match_id, load)
        _require(match, "reject_offer")

        previous = match.status
        match.reject(now, reason=reason, notes=notes)
        _status_changed(match, previous, now, rejection_reason=reason)

    logger.info("match_rejected", match_id=match.pk, reason=reason)
    return match


def expire_match(match_id, *, now):
    match = get_match(match_id)
    with load_transaction(match.load_id):
        load = _lock_load(match.load_id)
        match = _lock_match(match_id, load)
        _require(match, "expire")

        previous = match.status
        match.expire(now)
        _status_changed(match, previous, now)

    logger.info("match_expired", match_id=match.pk)
    return match


def cancel_match(match_id, *, now, reason=""):
    """Cancel a match at any non-terminal point.

    An accepted match can only be withdrawn before pickup: its shipment goes
    to ``exception`` and the load to ``cancelled`` with it.
    """
    match = get_match(match_id)
    with load_transaction(match.load_id):
        load = _lock_load(match.load_id)
        match = _lock_match(match_id, load)
        _require(match, "cancel")

        if match.status == Match.Status.ACCEPTED:
            shipment = ensure_shipment(match)
            if shipment.status != Shipment.Status.PENDING_PICKUP:
                raise InvalidStateTransition("shipment", shipment.status, "cancel_match")
            shipment.report_exception(now, reason=reason or "Accepted match cancelled")
            load.cancel(now, reason=reason or "Accepted match cancelled")

        previous = match.status
        match.cancel(now)
        _status_changed(match, previous, now, reason=reason)

    logger.info("match_cancelled", match_id=match.pk, previous_status=previous)
    return match


def cancel_load(load_id, *, now, reason=""):
    """Shipper withdrawal: cancel the load and everything still active on it."""
    get_load(load_id)
    with load_transaction(load_id):
        load = _lock_load(load_id)
        _require(load, "cancel")
        _close_active_matches(load, now, event="cancel", reason=reason)
        load.cancel(now, reason=reason)

    logger.info("load_cancelled", load_id=load.pk, reason=reason)
    return load


def expire_load(load_id, *, now):
    """Close a load whose ``expires_at`` passed without an acceptance.

    Posted loads expire. Matched loads have no expiry edge, so they are
    cancelled instead; their open matches expire either way.
    """
    get_load(load_id)
    with load_transaction(load_id):
        load = _lock_load(load_id)
        if not load.is_expired(now):
            raise ConflictError(f"Load {load.pk} has not expired yet.")
        _close_active_matches(load, now, event="expire")
        if load.may("expire"):
            load.expire(now)
        else:
            _require(load, "cancel")
            load.cancel(now, reason="Expired before acceptance")

    logger.info("load_expired", load_id=load.pk, status=load.status)
    return load


def _close_active_matches(load, now, *, event, reason=""):
    matches = Match.objects.select_for_update().filter(
        load=load, status__in=Match.ACTIVE_STATUSES
    )
    for match in matches:
        match.load = load
        if match.status == Match.Status.ACCEPTED:
            shipment = ensure_shipment(match)
            if shipment.status != Shipment.Status.PENDING_PICKUP:
                raise InvalidStateTransition("shipment", shipment.status, "cancel_load")
            shipment.report_exception(now, reason=reason or "Load cancelled")
            event_name = "cancel"
        else:
            event_name = event
        previous = match.status
        if event_name == "expire":
            match.expire(now)
        else:
            match.cancel(now)
        _status_changed(match, previous, now, reason=reason)
