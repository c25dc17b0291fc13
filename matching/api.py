"""Synchronous entry points for callers of the matching core.

Each call returns a result or raises a ``ServiceError`` subclass from
``matching.services.exceptions``; ``error.user_message`` is safe to show.
Authorization is the caller's job.
"""

from django.utils import timezone

from matching.forms import OfferResponseForm
from matching.services import candidates, offers, tracking
from matching.services.eligibility import EligibilityOptions
from matching.services.exceptions import ValidationError


def find_candidates(
    load_id,
    *,
    max_candidates=None,
    min_safety_rating=None,
    max_deadhead_miles=None,
    now=None,
    directory=None,
    estimator=None,
):
    """Score eligible carriers for a load and open pending matches for the best.

    Returns the created matches, best first.
    """
    try:
        options = EligibilityOptions(
            min_safety_rating=min_safety_rating, max_deadhead_miles=max_deadhead_miles
        )
    except ValueError as exc:
        raise ValidationError({"options": [str(exc)]}) from exc
    if max_candidates is not None and max_candidates < 1:
        raise ValidationError({"max_candidates": ["Must be at least 1."]})

    return candidates.create_matches_for_load(
        load_id,
        now=now or timezone.now(),
        directory=directory,
        estimator=estimator,
        options=options,
        max_candidates=max_candidates,
    )


def respond_to_offer(match_id, decision, *, rate=None, reason=None, notes="", now=None):
    """Carrier answer to a match: ``accept`` or ``reject``."""
    form = OfferResponseForm(
        {"decision": decision, "rate": rate, "reason": reason or "", "notes": notes}
    )
    if not form.is_valid():
        raise ValidationError.from_form(form)
    data = form.cleaned_data
    now = now or timezone.now()

    if data["decision"] == OfferResponseForm.ACCEPT:
        return offers.accept_offer(match_id, now=now, rate=data["rate"])
    return offers.reject_offer(
        match_id, now=now, reason=data["reason"], notes=data["notes"]
    )


def record_tracking_event(shipment_id, event, *, now=None):
    return tracking.record_tracking_event(shipment_id, event, now=now or timezone.now())
