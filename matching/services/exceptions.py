"""Typed errors raised by the matching services.

Callers catch ``ServiceError`` and show ``user_message``; the remaining
attributes carry enough context to log or branch on.
"""

NO_LONGER_AVAILABLE = "This load is no longer available, please refresh."


class ServiceError(Exception):
    """Base class for every error raised by the service layer."""

    user_message = "The request could not be completed."

    def __init__(self, message=None):
        super().__init__(message or self.user_message)


class ValidationError(ServiceError):
    """Malformed input rejected before any state change."""

    def __init__(self, errors, message="Invalid input."):
        # errors: {"field": ["message", ...]}
        self.errors = {field: list(msgs) for field, msgs in dict(errors).items()}
        super().__init__(message)

    @classmethod
    def from_form(cls, form):
        return cls(
            {
                field: [e["message"] for e in errs]
                for field, errs in form.errors.get_json_data().items()
            }
        )

    @property
    def user_message(self):
        parts = []
        for field, msgs in self.errors.items():
            label = "" if field == "__all__" else f"{field}: "
            parts.append(label + " ".join(msgs))
        return "; ".join(parts) or str(self)


class ObjectNotFound(ServiceError):
    def __init__(self, kind, pk):
        self.kind = kind
        self.pk = pk
        super().__init__(f"{kind} {pk} does not exist.")

    @property
    def user_message(self):
        return str(self)


class IneligibleCarrierError(ServiceError):
    """The carrier fails one or more eligibility rules for the load."""

    def __init__(self, carrier_id, failed_rules):
        self.carrier_id = carrier_id
        self.failed_rules = list(failed_rules)
        super().__init__(
            f"Carrier {carrier_id} is not eligible: {', '.join(self.failed_rules)}"
        )

    @property
    def user_message(self):
        return "Carrier is not eligible for this load: " + ", ".join(
            rule.replace("_", " ") for rule in self.failed_rules
        )


class InvalidStateTransition(ServiceError):
    user_message = NO_LONGER_AVAILABLE

    def __init__(self, machine, current, attempted):
        self.machine = machine
        self.current = current
        self.attempted = attempted
        super().__init__(f"{machine}: cannot '{attempted}' from '{current}'.")


class ConflictError(ServiceError):
    """Lost a race against a concurrent change to the same load."""

    user_message = NO_LONGER_AVAILABLE


class AlreadyMatched(ConflictError):
    def __init__(self, load_id, accepted_match_id=None):
        self.load_id = load_id
        self.accepted_match_id = accepted_match_id
        super().__init__(f"Load {load_id} already has an accepted match.")


class EstimatorUnavailable(ServiceError):
    """Routing provider failed or timed out. Never reaches callers."""


class PersistenceError(ServiceError):
    user_message = "A storage error occurred; nothing was saved. Please retry."
