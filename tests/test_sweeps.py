import datetime
from io import StringIO

import pytest
from django.core.management import call_command

from matching.models import Carrier, Load, Match
from matching.services import offers
from matching.services.sweeps import expire_stale_loads, expire_stale_matches

pytestmark = pytest.mark.django_db


def test_expire_stale_matches(match_factory, now):
    past = now - datetime.timedelta(minutes=1)
    stale = match_factory(respond_by=past)
    fresh = match_factory(respond_by=now + datetime.timedelta(hours=2))
    answered = match_factory(respond_by=past, status=Match.Status.REJECTED)

    assert expire_stale_matches(now) == 1

    for match in (stale, fresh, answered):
        match.refresh_from_db()
    assert stale.status == Match.Status.EXPIRED
    assert stale.expired_at == now
    assert fresh.status == Match.Status.PENDING
    assert answered.status == Match.Status.REJECTED


def test_accepted_matches_never_expire(accepted_shipment, now):
    Match.objects.filter(pk=accepted_shipment.match_id).update(
        respond_by=now - datetime.timedelta(days=1)
    )
    assert expire_stale_matches(now) == 0


def test_expire_stale_loads(load_factory, carrier_factory, now):
    past = now - datetime.timedelta(minutes=1)
    posted = load_factory(expires_at=past)
    matched = load_factory()
    offers.create_offer(matched.pk, carrier_factory().pk, now=now)
    Load.objects.filter(pk=matched.pk).update(expires_at=past)
    open_load = load_factory()

    assert expire_stale_loads(now) == 2

    statuses = dict(Load.objects.values_list("pk", "status"))
    assert statuses[posted.pk] == Load.Status.EXPIRED
    assert statuses[matched.pk] == Load.Status.CANCELLED
    assert statuses[open_load.pk] == Load.Status.POSTED
    assert not Match.objects.filter(load=matched, status__in=Match.ACTIVE_STATUSES).exists()


def test_expire_matches_command(match_factory, load_factory, now):
    past = now - datetime.timedelta(minutes=5)
    match_factory(respond_by=None)
    match_factory(respond_by=past)
    load_factory(expires_at=past)

    out = StringIO()
    call_command("expire_matches", stdout=out)

    assert "Expired matches: 1" in out.getvalue()
    assert "Closed loads: 1" in out.getvalue()


def test_expire_matches_command_can_skip_loads(load_factory, now):
    load = load_factory(expires_at=now - datetime.timedelta(minutes=5))

    out = StringIO()
    call_command("expire_matches", "--skip-loads", stdout=out)

    load.refresh_from_db()
    assert "Closed loads" not in out.getvalue()
    assert load.status == Load.Status.POSTED


def test_seed_demo_command():
    out = StringIO()
    call_command(
        "seed_demo",
        "--carriers=3",
        "--vehicles-per-carrier=1",
        "--drivers-per-carrier=1",
        "--loads=2",
        "--seed=7",
        stdout=out,
    )

    assert Carrier.objects.count() == 3
    assert all(c.vehicles.count() == 1 for c in Carrier.objects.all())
    assert Load.objects.count() == 2
    assert "Seed complete." in out.getvalue()
