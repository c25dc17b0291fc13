"""Candidate search and automatic match creation for a load.

Scoring runs before any lock is taken (it may call the routing provider);
the short write phase re-checks the load under its lock and inserts the
pending matches in one transaction.
"""

import datetime

import structlog
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from matching.carriers import ModelCarrierDirectory
from matching.conf import get_setting
from matching.models import DomainEvent, Load, Match
from matching.services.costs import estimate_trip_cost, to_money
from matching.services.eligibility import filter_eligible
from matching.services.events import emit
from matching.services.exceptions import ConflictError, ObjectNotFound, PersistenceError
from matching.services.locks import load_lock
from matching.services.routing import get_estimator
from matching.services.scoring import rank_candidates

logger = structlog.get_logger(__name__)

ESTIMATE_SPEED_MPH = 55.0
TARGET_PICKUP_TIME = datetime.time(8, 0)


def get_load(load_id):
    try:
        return Load.objects.get(pk=load_id)
    except Load.DoesNotExist:
        raise ObjectNotFound("Load", load_id) from None


def active_carrier_ids(load):
    return frozenset(
        Match.objects.filter(load=load, status__in=Match.ACTIVE_STATUSES).values_list(
            "carrier_id", flat=True
        )
    )


def estimate_times(load, deadhead_miles, now):
    """(pickup ETA, delivery ETA) at a flat 55 mph.

    Pickup targets 08:00 on the pickup date but can't be earlier than the
    carrier could drive there from where it is now.
    """
    deadhead_hours = datetime.timedelta(hours=(deadhead_miles or 0) / ESTIMATE_SPEED_MPH)
    target = timezone.make_aware(
        datetime.datetime.combine(load.pickup_date, TARGET_PICKUP_TIME)
    )
    pickup_eta = max(target + deadhead_hours, now + deadhead_hours)
    delivery_eta = pickup_eta + datetime.timedelta(
        hours=load.distance_miles / ESTIMATE_SPEED_MPH
    )
    return pickup_eta, delivery_eta


def match_estimates(load, deadhead_miles, now):
    """Field values for a new Match derived from the load and deadhead."""
    cost = estimate_trip_cost(load.distance_miles, deadhead_miles, load.total_rate)
    pickup_eta, delivery_eta = estimate_times(load, deadhead_miles, now)
    return {
        "distance_to_pickup": to_money(deadhead_miles),
        "fuel_cost_estimate": to_money(cost.fuel_cost),
        "margin_estimate": to_money(cost.margin),
        "estimated_pickup_time": pickup_eta,
        "estimated_delivery_time": delivery_eta,
        "respond_by": now + datetime.timedelta(hours=get_setting("OFFER_RESPONSE_HOURS")),
    }


def find_candidates(load, *, now, directory=None, estimator=None, options=None, limit=None):
    """Eligible carriers for ``load``, best first. Writes nothing."""
    directory = directory or ModelCarrierDirectory()
    estimator = estimator or get_estimator()

    pool = directory.list_candidate_carriers(load.equipment_type, load.pickup_state)
    eligible = filter_eligible(
        load,
        pool,
        today=timezone.localdate(now),
        active_carrier_ids=active_carrier_ids(load),
        options=options,
        estimator=estimator,
    )
    ranked = rank_candidates(load, eligible, estimator=estimator, limit=limit)
    logger.info(
        "candidates_ranked",
        load_id=load.pk,
        pool=len(pool),
        eligible=len(eligible),
        returned=len(ranked),
    )
    return ranked


def create_matches_for_load(
    load_id, *, now, directory=None, estimator=None, options=None, max_candidates=None
):
    """Create up to N pending matches for the best eligible carriers.

    Returns the new matches, best first. A load that is no longer open for
    matching yields an empty list.
    """
    load = get_load(load_id)
    if not load.available_for_matching(now):
        logger.info("load_not_available_for_matching", load_id=load.pk, status=load.status)
        return []

    limit = max_candidates or get_setting("MAX_CANDIDATES")
    ranked = find_candidates(
        load, now=now, directory=directory, estimator=estimator, options=options, limit=limit
    )
    if not ranked:
        return []

    created = []
    with load_lock(load.pk):
        try:
            with transaction.atomic():
                load = Load.objects.select_for_update().get(pk=load.pk)
                if not load.available_for_matching(now):
                    return []
                taken = active_carrier_ids(load)
                for candidate in ranked:
                    if candidate.carrier.id in taken:
                        continue
                    match = Match.objects.create(
                        load=load,
                        carrier_id=candidate.carrier.id,
                        status=Match.Status.PENDING,
                        match_score=to_money(candidate.score),
                        **match_estimates(load, candidate.deadhead_miles, now),
                    )
                    emit(
                        DomainEvent.EventType.MATCH_CREATED,
                        now=now,
                        match=match,
                        load_id=load.pk,
                        carrier_id=candidate.carrier.id,
                        status=match.status,
                        match_score=match.match_score,
                    )
                    created.append(match)
        except IntegrityError as exc:
            raise ConflictError(f"Matches for load {load_id} changed concurrently.") from exc
        except DatabaseError as exc:
            raise PersistenceError(str(exc)) from exc

    logger.info("matches_created", load_id=load.pk, count=len(created))
    return created
