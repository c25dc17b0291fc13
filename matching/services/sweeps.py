"""Time-based sweeps, run from the ``expire_matches`` management command."""

import structlog

from matching.models import Load, Match
from matching.services.exceptions import ConflictError, InvalidStateTransition
from matching.services.offers import expire_load, expire_match

logger = structlog.get_logger(__name__)


def expire_stale_matches(now):
    """Expire pending/offered matches whose response deadline has passed."""
    stale = Match.objects.filter(
        status__in=Match.OPEN_STATUSES, respond_by__lte=now
    ).values_list("pk", flat=True)

    expired = 0
    for match_id in list(stale):
        try:
            expire_match(match_id, now=now)
        except InvalidStateTransition as exc:
            # accepted/cancelled between the query and the lock
            logger.info("match_expiry_skipped", match_id=match_id, reason=str(exc))
            continue
        expired += 1
    return expired


def expire_stale_loads(now):
    """Close posted/matched loads whose ``expires_at`` has passed."""
    stale = Load.objects.filter(
        status__in=[Load.Status.POSTED, Load.Status.MATCHED], expires_at__lte=now
    ).values_list("pk", flat=True)

    closed = 0
    for load_id in list(stale):
        try:
            expire_load(load_id, now=now)
        except (InvalidStateTransition, ConflictError) as exc:
            logger.info("load_expiry_skipped", load_id=load_id, reason=str(exc))
            continue
        closed += 1
    return closed
