import datetime

import structlog
from django.db import IntegrityError, transaction
from django.utils import timezone

from matching.forms import LoadForm
from matching.models import Load
from matching.services.candidates import create_matches_for_load
from matching.services.costs import to_money
from matching.services.exceptions import ConflictError, ValidationError
from matching.services.routing import get_estimator

logger = structlog.get_logger(__name__)

REFERENCE_PREFIX = "LD"
REFERENCE_ATTEMPTS = 3


def next_reference_number(now):
    """LD-YYYYMMDD-NNNN, numbered per calendar day."""
    day_prefix = f"{REFERENCE_PREFIX}-{timezone.localdate(now):%Y%m%d}-"
    sequence = Load.objects.filter(reference_number__startswith=day_prefix).count() + 1
    return f"{day_prefix}{sequence:04d}"


def _end_of_day(day):
    return timezone.make_aware(datetime.datetime.combine(day, datetime.time.max))


def post_load(data, *, now, create_matches=False, estimator=None, directory=None):
    """
    Validate and store a new load posting.

    - route distance is estimated before the write
    - ``expires_at`` defaults to the end of the pickup date
    - with ``create_matches`` the best carriers get pending matches right away
    """
    form = LoadForm(data)
    if not form.is_valid():
        raise ValidationError.from_form(form)

    load = form.save(commit=False)
    estimator = estimator or get_estimator()
    route = estimator.estimate_route(load.pickup_coordinates, load.delivery_coordinates)
    load.estimated_distance = to_money(route.distance_miles)
    load.status = Load.Status.POSTED
    load.posted_at = now
    if load.expires_at is None:
        load.expires_at = _end_of_day(load.pickup_date)

    generate_reference = not load.reference_number
    for attempt in range(1, REFERENCE_ATTEMPTS + 1):
        if generate_reference:
            load.reference_number = next_reference_number(now)
        try:
            with transaction.atomic():
                load.save()
            break
        except IntegrityError as exc:
            if not generate_reference or attempt == REFERENCE_ATTEMPTS:
                raise ConflictError(
                    f"Reference number {load.reference_number} is already taken."
                ) from exc
            load.pk = None

    logger.info(
        "load_posted",
        load_id=load.pk,
        reference_number=load.reference_number,
        distance_miles=route.distance_miles,
        estimate_source=route.source,
    )

    if create_matches:
        create_matches_for_load(load.pk, now=now, estimator=estimator, directory=directory)
    return load
