import datetime
import threading
from decimal import Decimal

import pytest
from django.db import connection

from matching.models import DomainEvent, Load, Match, Shipment
from matching.services import offers
from matching.services.exceptions import (
    AlreadyMatched,
    ConflictError,
    IneligibleCarrierError,
    InvalidStateTransition,
    ObjectNotFound,
    ValidationError,
)
from matching.signals import domain_event_emitted

pytestmark = pytest.mark.django_db


@pytest.fixture
def posted_load(load_factory):
    return load_factory()


def test_create_offer_moves_load_to_matched(posted_load, carrier_factory, now):
    carrier = carrier_factory()

    match = offers.create_offer(posted_load.pk, carrier.pk, now=now)

    posted_load.refresh_from_db()
    assert match.status == Match.Status.OFFERED
    assert match.rate_offered == posted_load.total_rate
    assert match.match_score == Decimal("292.50")
    assert match.distance_to_pickup == Decimal("0.00")
    assert match.respond_by == now + datetime.timedelta(hours=24)
    assert posted_load.status == Load.Status.MATCHED
    assert DomainEvent.objects.filter(
        match=match, event_type=DomainEvent.EventType.MATCH_CREATED
    ).exists()


def test_create_offer_rejects_ineligible_carrier(posted_load, carrier_factory, now):
    carrier = carrier_factory(is_verified=False, insurance_expiry=None)

    with pytest.raises(IneligibleCarrierError) as exc_info:
        offers.create_offer(posted_load.pk, carrier.pk, now=now)

    assert exc_info.value.failed_rules == ["carrier_unverified", "insurance_expired"]
    assert not Match.objects.exists()
    posted_load.refresh_from_db()
    assert posted_load.status == Load.Status.POSTED


def test_create_offer_twice_for_same_carrier(posted_load, carrier_factory, now):
    carrier = carrier_factory()
    offers.create_offer(posted_load.pk, carrier.pk, now=now)

    with pytest.raises(IneligibleCarrierError, match="active_match_exists"):
        offers.create_offer(posted_load.pk, carrier.pk, now=now)


def test_create_offer_on_expired_load(load_factory, carrier_factory, now):
    load = load_factory(expires_at=now - datetime.timedelta(minutes=1))
    with pytest.raises(ConflictError, match="no longer open for offers"):
        offers.create_offer(load.pk, carrier_factory().pk, now=now)


def test_create_offer_unknown_carrier(posted_load, now):
    with pytest.raises(ObjectNotFound, match="Carrier 9999 does not exist"):
        offers.create_offer(posted_load.pk, 9999, now=now)


def test_make_offer_from_pending(match_factory, now):
    match = match_factory()

    offered = offers.make_offer(match.pk, now=now, rate=Decimal("2300.00"))

    assert offered.status == Match.Status.OFFERED
    assert offered.rate_offered == Decimal("2300.00")
    assert offered.matched_at == now
    match.load.refresh_from_db()
    assert match.load.status == Load.Status.MATCHED


def test_make_offer_twice_is_rejected(match_factory, now):
    match = match_factory()
    offers.make_offer(match.pk, now=now)
    with pytest.raises(InvalidStateTransition, match="cannot 'make_offer' from 'offered'"):
        offers.make_offer(match.pk, now=now)


def test_accept_cascades_across_the_load(posted_load, carrier_factory, now):
    m1 = offers.create_offer(posted_load.pk, carrier_factory().pk, now=now)
    m2 = offers.create_offer(posted_load.pk, carrier_factory().pk, now=now)

    accepted = offers.accept_offer(m1.pk, now=now)

    m2.refresh_from_db()
    posted_load.refresh_from_db()
    shipment = Shipment.objects.get(load=posted_load)
    assert accepted.status == Match.Status.ACCEPTED
    assert accepted.rate_accepted == m1.rate_offered
    assert posted_load.status == Load.Status.ACCEPTED
    assert posted_load.accepted_at == now
    assert shipment.match_id == m1.pk
    assert shipment.status == Shipment.Status.PENDING_PICKUP
    assert shipment.scheduled_pickup_date == posted_load.pickup_date
    assert m2.status == Match.Status.CANCELLED
    assert m2.cancelled_at == now


def test_accept_pending_match_directly(match_factory, now):
    match = match_factory()

    accepted = offers.accept_offer(match.pk, now=now, rate=Decimal("2450.00"))

    assert accepted.rate_accepted == Decimal("2450.00")
    assert accepted.shipment.carrier_id == match.carrier_id


def test_accept_leaves_closed_siblings_alone(posted_load, carrier_factory, now):
    m1 = offers.create_offer(posted_load.pk, carrier_factory().pk, now=now)
    m2 = offers.create_offer(posted_load.pk, carrier_factory().pk, now=now)
    offers.reject_offer(m2.pk, now=now, reason=Match.RejectionReason.TIMING_CONFLICT)

    offers.accept_offer(m1.pk, now=now)

    m2.refresh_from_db()
    assert m2.status == Match.Status.REJECTED


def test_second_acceptance_fails(posted_load, carrier_factory, now):
    m1 = offers.create_offer(posted_load.pk, carrier_factory().pk, now=now)
    offers.accept_offer(m1.pk, now=now)
    late = Match.objects.create(
        load=posted_load, carrier=carrier_factory(), status=Match.Status.OFFERED
    )

    with pytest.raises(AlreadyMatched) as exc_info:
        offers.accept_offer(late.pk, now=now)

    assert exc_info.value.accepted_match_id == m1.pk
    assert exc_info.value.user_message == "This load is no longer available, please refresh."
    late.refresh_from_db()
    assert late.status == Match.Status.OFFERED


def test_accepting_an_accepted_match_is_invalid(match_factory, now):
    match = match_factory()
    offers.accept_offer(match.pk, now=now)
    with pytest.raises(InvalidStateTransition):
        offers.accept_offer(match.pk, now=now)


def test_accept_after_load_expiry(match_factory, load_factory, now):
    load = load_factory(expires_at=now - datetime.timedelta(hours=1))
    match = match_factory(load=load)

    with pytest.raises(ConflictError, match="expired before acceptance"):
        offers.accept_offer(match.pk, now=now)
    match.refresh_from_db()
    assert match.status == Match.Status.PENDING


def test_accept_rechecks_eligibility(match_factory, now):
    match = match_factory()
    match.carrier.insurance_expiry = now.date() - datetime.timedelta(days=1)
    match.carrier.save()

    with pytest.raises(IneligibleCarrierError, match="insurance_expired"):
        offers.accept_offer(match.pk, now=now)
    assert not Shipment.objects.exists()


def test_failed_acceptance_rolls_back_everything(match_factory, carrier_factory, now, monkeypatch):
    match = match_factory()
    sibling = match_factory(load=match.load, carrier=carrier_factory())

    def broken(m):
        raise RuntimeError("shipment store down")

    monkeypatch.setattr(offers, "ensure_shipment", broken)
    with pytest.raises(RuntimeError):
        offers.accept_offer(match.pk, now=now)

    match.refresh_from_db()
    sibling.refresh_from_db()
    match.load.refresh_from_db()
    assert match.status == Match.Status.PENDING
    assert sibling.status == Match.Status.PENDING
    assert match.load.status == Load.Status.POSTED


@pytest.mark.parametrize("reason", Match.RejectionReason.values)
def test_reject_with_each_reason(match_factory, now, reason):
    match = match_factory()
    rejected = offers.reject_offer(match.pk, now=now, reason=reason, notes="no thanks")
    assert rejected.status == Match.Status.REJECTED
    assert rejected.rejection_reason == reason
    assert rejected.notes == "no thanks"


def test_reject_with_unknown_reason(match_factory, now):
    match = match_factory()
    with pytest.raises(ValidationError) as exc_info:
        offers.reject_offer(match.pk, now=now, reason="weather")
    assert exc_info.value.errors == {"reason": ["Unknown rejection reason: weather"]}


def test_expire_match(match_factory, now):
    match = match_factory()
    expired = offers.expire_match(match.pk, now=now)
    assert expired.status == Match.Status.EXPIRED
    with pytest.raises(InvalidStateTransition):
        offers.expire_match(match.pk, now=now)


def test_cancel_open_match(match_factory, now):
    match = match_factory()
    assert offers.cancel_match(match.pk, now=now).status == Match.Status.CANCELLED


def test_cancel_accepted_match_before_pickup(accepted_shipment, now):
    match = offers.cancel_match(accepted_shipment.match_id, now=now, reason="Truck broke down")

    accepted_shipment.refresh_from_db()
    load = Load.objects.get(pk=accepted_shipment.load_id)
    assert match.status == Match.Status.CANCELLED
    assert accepted_shipment.status == Shipment.Status.EXCEPTION
    assert accepted_shipment.exception_reason == "Truck broke down"
    assert load.status == Load.Status.CANCELLED


def test_cancel_accepted_match_after_pickup(accepted_shipment, now):
    accepted_shipment.pickup(now.date())
    with pytest.raises(InvalidStateTransition, match="shipment: cannot 'cancel_match'"):
        offers.cancel_match(accepted_shipment.match_id, now=now)


def test_cancel_load_closes_active_matches(posted_load, carrier_factory, now):
    m1 = offers.create_offer(posted_load.pk, carrier_factory().pk, now=now)
    m2 = offers.create_offer(posted_load.pk, carrier_factory().pk, now=now)

    load = offers.cancel_load(posted_load.pk, now=now, reason="Shipper withdrew")

    assert load.status == Load.Status.CANCELLED
    assert load.cancellation_reason == "Shipper withdrew"
    assert set(Match.objects.filter(pk__in=[m1.pk, m2.pk]).values_list("status", flat=True)) == {
        Match.Status.CANCELLED
    }


def test_expire_posted_and_matched_loads(load_factory, carrier_factory, now):
    past = now - datetime.timedelta(minutes=5)
    posted = load_factory(expires_at=past)
    matched = load_factory()
    match = offers.create_offer(matched.pk, carrier_factory().pk, now=now)
    Load.objects.filter(pk=matched.pk).update(expires_at=past)

    assert offers.expire_load(posted.pk, now=now).status == Load.Status.EXPIRED
    closed = offers.expire_load(matched.pk, now=now)

    match.refresh_from_db()
    assert closed.status == Load.Status.CANCELLED
    assert closed.cancellation_reason == "Expired before acceptance"
    assert match.status == Match.Status.EXPIRED


def test_expire_load_before_deadline(posted_load, now):
    with pytest.raises(ConflictError, match="has not expired yet"):
        offers.expire_load(posted_load.pk, now=now)


def test_status_changes_are_published_after_commit(
    match_factory, now, django_capture_on_commit_callbacks
):
    received = []

    def receiver(sender, event, **kwargs):
        received.append(event)

    domain_event_emitted.connect(receiver)
    try:
        match = match_factory()
        with django_capture_on_commit_callbacks(execute=True):
            offers.reject_offer(match.pk, now=now, reason=Match.RejectionReason.RATE_TOO_LOW)
    finally:
        domain_event_emitted.disconnect(receiver)

    assert len(received) == 1
    assert received[0].payload["from_status"] == "pending"
    assert received[0].payload["to_status"] == "rejected"
    assert received[0].payload["rejection_reason"] == "rate_too_low"


@pytest.mark.django_db(transaction=True)
def test_concurrent_acceptance_has_one_winner(load_factory, carrier_factory, now):
    load = load_factory()
    matches = [
        offers.create_offer(load.pk, carrier_factory().pk, now=now) for _ in range(4)
    ]
    barrier = threading.Barrier(len(matches))
    outcomes = []

    def accept(match_id):
        barrier.wait()
        try:
            offers.accept_offer(match_id, now=now)
            outcomes.append("accepted")
        except (AlreadyMatched, InvalidStateTransition):
            outcomes.append("lost")
        finally:
            connection.close()

    threads = [threading.Thread(target=accept, args=(m.pk,)) for m in matches]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("accepted") == 1
    assert outcomes.count("lost") == len(matches) - 1
    assert Match.objects.filter(load=load, status=Match.Status.ACCEPTED).count() == 1
    assert Shipment.objects.filter(load=load).count() == 1
