from decimal import Decimal

import pytest

from matching import api
from matching.models import Match, TrackingEvent
from matching.services.exceptions import ServiceError, ValidationError

pytestmark = pytest.mark.django_db


def test_find_candidates(load_factory, carrier_factory, now, estimator):
    load = load_factory()
    carrier_factory.create_batch(3)

    matches = api.find_candidates(load.pk, max_candidates=2, now=now, estimator=estimator)

    assert len(matches) == 2
    assert matches[0].match_score >= matches[1].match_score


@pytest.mark.parametrize(
    "kwargs, field",
    [
        ({"max_candidates": 0}, "max_candidates"),
        ({"min_safety_rating": "gold"}, "options"),
        ({"max_deadhead_miles": -5}, "options"),
    ],
)
def test_find_candidates_rejects_bad_options(load_factory, now, kwargs, field):
    load = load_factory()
    with pytest.raises(ValidationError) as exc_info:
        api.find_candidates(load.pk, now=now, **kwargs)
    assert field in exc_info.value.errors


def test_respond_accept(match_factory, now):
    match = match_factory()

    accepted = api.respond_to_offer(match.pk, "accept", rate="2400.00", now=now)

    assert accepted.status == Match.Status.ACCEPTED
    assert accepted.rate_accepted == Decimal("2400.00")


def test_respond_reject_defaults_reason(match_factory, now):
    match = match_factory()

    rejected = api.respond_to_offer(match.pk, "reject", notes="Booked elsewhere", now=now)

    assert rejected.rejection_reason == Match.RejectionReason.OTHER
    assert rejected.notes == "Booked elsewhere"


@pytest.mark.parametrize(
    "decision, kwargs",
    [("maybe", {}), ("reject", {"reason": "bad_weather"}), ("accept", {"rate": "-1"})],
)
def test_respond_validation(match_factory, now, decision, kwargs):
    match = match_factory()
    with pytest.raises(ValidationError):
        api.respond_to_offer(match.pk, decision, now=now, **kwargs)
    match.refresh_from_db()
    assert match.status == Match.Status.PENDING


def test_every_error_has_a_user_message(match_factory, now):
    match = match_factory()
    api.respond_to_offer(match.pk, "reject", now=now)

    with pytest.raises(ServiceError) as exc_info:
        api.respond_to_offer(match.pk, "accept", now=now)

    assert exc_info.value.user_message == "This load is no longer available, please refresh."


def test_record_tracking_event(accepted_shipment, now):
    event = api.record_tracking_event(
        accepted_shipment.pk,
        {"event_type": "pickup_completed", "status": "completed", "occurred_at": now},
        now=now,
    )
    assert event.event_type == TrackingEvent.EventType.PICKUP_COMPLETED
    accepted_shipment.refresh_from_db()
    assert accepted_shipment.status == "picked_up"
