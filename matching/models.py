from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.db.models import Q

from matching.services.routing import Coordinate
from matching.state_machine import LOAD_MACHINE, MATCH_MACHINE, SHIPMENT_MACHINE


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class BaseModel(TimeStampedModel):
    is_active = models.BooleanField(default=True)

    class Meta:
        abstract = True


class EquipmentType(models.TextChoices):
    DRY_VAN = "dry_van", "Dry Van"
    REFRIGERATED = "refrigerated", "Refrigerated (Reefer)"
    FLATBED = "flatbed", "Flatbed"
    STEP_DECK = "step_deck", "Step Deck"
    LOWBOY = "lowboy", "Lowboy"
    TANKER = "tanker", "Tanker"
    CONTAINER = "container", "Container"
    CAR_CARRIER = "car_carrier", "Car Carrier"
    SPECIALIZED = "specialized", "Specialized"


# CARRIER CAPABILITY RECORDS
# Maintained by the carrier profile side of the business; the matching core
# only reads them (see matching.carriers).


class Carrier(BaseModel):
    """Trucking company or owner-operator."""

    class SafetyRating(models.TextChoices):
        SATISFACTORY = "satisfactory", "Satisfactory"
        CONDITIONAL = "conditional", "Conditional"
        UNSATISFACTORY = "unsatisfactory", "Unsatisfactory"
        NOT_RATED = "not_rated", "Not Rated"

    # Identification
    name = models.CharField(max_length=200)
    mc_number = models.CharField(
        max_length=20, unique=True, help_text="Motor Carrier Number"
    )
    dot_number = models.CharField(max_length=20, unique=True, help_text="USDOT Number")
    state = models.CharField(max_length=2, blank=True)  # home state
    is_verified = models.BooleanField(default=False)

    # Capabilities
    equipment_types = models.JSONField(
        default=list, blank=True, help_text="List of EquipmentType values"
    )
    service_areas = models.JSONField(
        default=list, blank=True, help_text='State codes served, or ["ALL"]'
    )
    hazmat_certified = models.BooleanField(default=False)

    # Compliance
    safety_rating = models.CharField(
        max_length=20, choices=SafetyRating.choices, default=SafetyRating.NOT_RATED
    )
    insurance_expiry = models.DateField(null=True, blank=True)

    # Last known position
    current_latitude = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True
    )
    current_longitude = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True
    )

    # Performance
    average_rating = models.DecimalField(
        max_digits=3, decimal_places=2, default=Decimal("0.00"), help_text="0-5 stars"
    )
    on_time_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("0.00")
    )

    def __str__(self):
        return self.name


class Vehicle(BaseModel):
    """Truck and trailer treated as one unit."""

    class VehicleStatus(models.TextChoices):
        AVAILABLE = "available", "Available (Empty)"
        ASSIGNED = "assigned", "Assigned to Load"
        OUT_OF_SERVICE = "out_of_service", "Out of Service"

    carrier = models.ForeignKey(
        Carrier, on_delete=models.CASCADE, related_name="vehicles"
    )
    unit_number = models.CharField(max_length=50, help_text="Internal fleet number")
    equipment_type = models.CharField(max_length=20, choices=EquipmentType.choices)
    capacity_weight = models.PositiveIntegerField(help_text="Max payload in lbs")
    temperature_controlled = models.BooleanField(default=False)
    current_status = models.CharField(
        max_length=20,
        choices=VehicleStatus.choices,
        default=VehicleStatus.AVAILABLE,
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["carrier", "unit_number"], name="unique_unit_per_carrier"
            )
        ]

    def __str__(self):
        return f"{self.unit_number} ({self.carrier})"

    @property
    def is_assignable(self):
        return self.is_active and self.current_status == self.VehicleStatus.AVAILABLE


class Driver(BaseModel):
    carrier = models.ForeignKey(
        Carrier, on_delete=models.CASCADE, related_name="drivers"
    )
    first_name = models.CharField(max_length=50)
    last_name = models.CharField(max_length=50)
    cdl_number = models.CharField(max_length=30, unique=True)
    hazmat_certified = models.BooleanField(default=False)
    team_driver = models.BooleanField(default=False)

    def __str__(self):
        return self.full_name

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"


# LOAD


class Load(TimeStampedModel):
    """Freight posted by a shipper, looking for a carrier."""

    machine = LOAD_MACHINE

    class Status(models.TextChoices):
        POSTED = "posted", "Posted"
        MATCHED = "matched", "Matched"
        ACCEPTED = "accepted", "Accepted"
        PICKED_UP = "picked_up", "Picked Up"
        IN_TRANSIT = "in_transit", "In Transit"
        DELIVERED = "delivered", "Delivered"
        CANCELLED = "cancelled", "Cancelled"
        EXPIRED = "expired", "Expired"

    reference_number = models.CharField(max_length=30, unique=True)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.POSTED
    )

    # Freight
    commodity = models.CharField(max_length=200, blank=True)
    equipment_type = models.CharField(max_length=20, choices=EquipmentType.choices)
    weight = models.PositiveIntegerField(null=True, blank=True, help_text="lbs")

    # Pickup
    pickup_city = models.CharField(max_length=100, blank=True)
    pickup_state = models.CharField(max_length=2)
    pickup_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    pickup_longitude = models.DecimalField(max_digits=9, decimal_places=6)
    pickup_date = models.DateField()

    # Delivery
    delivery_city = models.CharField(max_length=100, blank=True)
    delivery_state = models.CharField(max_length=2)
    delivery_latitude = models.DecimalField(max_digits=9, decimal_places=6)
    delivery_longitude = models.DecimalField(max_digits=9, decimal_places=6)
    delivery_date = models.DateField()

    # Requirements
    is_hazmat = models.BooleanField(default=False)
    temperature_controlled = models.BooleanField(default=False)
    temperature_min = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True, help_text="°F"
    )
    temperature_max = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True, help_text="°F"
    )
    is_team_driver = models.BooleanField(default=False)
    is_expedited = models.BooleanField(default=False)

    # Money
    rate = models.DecimalField(max_digits=10, decimal_places=2)
    fuel_surcharge = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    accessorial_charges = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    total_rate = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00"), editable=False
    )
    estimated_distance = models.DecimalField(
        max_digits=8, decimal_places=2, null=True, blank=True, help_text="Road miles"
    )

    # Lifecycle timestamps
    posted_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    picked_up_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    expired_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(delivery_date__gte=models.F("pickup_date")),
                name="load_delivery_after_pickup",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "expires_at"], name="load_status_expires_idx")
        ]

    def __str__(self):
        return f"{self.reference_number} ({self.pickup_state} → {self.delivery_state})"

    def save(self, *args, **kwargs):
        self.total_rate = self.rate + self.fuel_surcharge + self.accessorial_charges
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "total_rate" not in update_fields:
            kwargs["update_fields"] = [*update_fields, "total_rate"]
        super().save(*args, **kwargs)

    def clean(self):
        errors = {}
        if self.pickup_date and self.delivery_date and self.delivery_date < self.pickup_date:
            errors["delivery_date"] = "Delivery date cannot be before pickup date."
        if self.weight is not None and self.weight <= 0:
            errors["weight"] = "Weight must be positive."
        if self.temperature_controlled:
            if self.temperature_min is None or self.temperature_max is None:
                errors["temperature_min"] = "Temperature range is required."
            elif self.temperature_max <= self.temperature_min:
                errors["temperature_max"] = "Maximum must be above minimum."
        if errors:
            raise ValidationError(errors)

    # LOCATION / DISTANCE
    @property
    def pickup_coordinates(self):
        return Coordinate.from_values(self.pickup_latitude, self.pickup_longitude)

    @property
    def delivery_coordinates(self):
        return Coordinate.from_values(self.delivery_latitude, self.delivery_longitude)

    @property
    def distance_miles(self):
        return float(self.estimated_distance or 0)

    @property
    def rate_per_mile(self):
        if not self.distance_miles:
            return None
        return round(float(self.total_rate) / self.distance_miles, 2)

    # AVAILABILITY
    def is_expired(self, now):
        return self.expires_at is not None and self.expires_at <= now

    def available_for_matching(self, now):
        """Open to new matches: posted/matched, not expired, pickup not past."""
        return (
            self.status in (self.Status.POSTED, self.Status.MATCHED)
            and not self.is_expired(now)
            and self.pickup_date >= now.date()
        )

    # STATUS TRANSITIONS
    # Driven by the services in matching.services.offers / tracking; callers
    # never move a Load through these directly.
    def may(self, event):
        return self.machine.can(self.status, event)

    def _transition(self, event, **extra_fields):
        self.status = self.machine.next_state(self.status, event)
        for key, value in extra_fields.items():
            setattr(self, key, value)
        self.save()

    def match_with_carrier(self):
        self._transition("match_with_carrier")

    def accept_by_carrier(self, now):
        self._transition("accept_by_carrier", accepted_at=now)

    def pickup(self, now):
        self._transition("pickup", picked_up_at=now)

    def start_transit(self):
        self._transition("start_transit")

    def deliver(self, now):
        self._transition("deliver", delivered_at=now)

    def cancel(self, now, reason=""):
        self._transition("cancel", cancelled_at=now, cancellation_reason=reason)

    def expire(self, now):
        self._transition("expire", expired_at=now)


# MATCH


class Match(TimeStampedModel):
    """A proposed or confirmed pairing of one Load with one Carrier."""

    machine = MATCH_MACHINE

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        OFFERED = "offered", "Offered"
        ACCEPTED = "accepted", "Accepted"
        REJECTED = "rejected", "Rejected"
        EXPIRED = "expired", "Expired"
        CANCELLED = "cancelled", "Cancelled"

    OPEN_STATUSES = (Status.PENDING, Status.OFFERED)
    ACTIVE_STATUSES = (Status.PENDING, Status.OFFERED, Status.ACCEPTED)

    class RejectionReason(models.TextChoices):
        RATE_TOO_LOW = "rate_too_low", "Rate too low"
        TIMING_CONFLICT = "timing_conflict", "Timing conflict"
        EQUIPMENT_UNAVAILABLE = "equipment_unavailable", "Equipment unavailable"
        LOCATION_TOO_FAR = "location_too_far", "Location too far"
        SHIPPER_REQUIREMENTS = "shipper_requirements", "Shipper requirements"
        CARRIER_POLICY = "carrier_policy", "Carrier policy"
        OTHER = "other", "Other"

    load = models.ForeignKey(Load, on_delete=models.PROTECT, related_name="matches")
    carrier = models.ForeignKey(
        Carrier, on_delete=models.PROTECT, related_name="matches"
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )

    # Scoring and estimates
    match_score = models.DecimalField(
        max_digits=8, decimal_places=2, default=Decimal("0.00")
    )
    distance_to_pickup = models.DecimalField(
        max_digits=8, decimal_places=2, null=True, blank=True, help_text="Deadhead miles"
    )
    fuel_cost_estimate = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    margin_estimate = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    estimated_pickup_time = models.DateTimeField(null=True, blank=True)
    estimated_delivery_time = models.DateTimeField(null=True, blank=True)

    # Money
    rate_offered = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    rate_accepted = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )

    rejection_reason = models.CharField(
        max_length=30, choices=RejectionReason.choices, blank=True
    )
    notes = models.TextField(blank=True)

    # Lifecycle timestamps
    respond_by = models.DateTimeField(null=True, blank=True)
    matched_at = models.DateTimeField(null=True, blank=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    expired_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["load"],
                condition=Q(status="accepted"),
                name="one_accepted_match_per_load",
            ),
            models.UniqueConstraint(
                fields=["load", "carrier"],
                condition=Q(status__in=["pending", "offered", "accepted"]),
                name="one_active_match_per_load_carrier",
            ),
            models.CheckConstraint(
                condition=Q(match_score__gte=0), name="match_score_non_negative"
            ),
        ]
        indexes = [
            models.Index(fields=["status", "respond_by"], name="match_status_respond_idx")
        ]

    def __str__(self):
        return f"Match {self.pk}: {self.load_id} ↔ {self.carrier_id} ({self.status})"

    @property
    def is_open(self):
        return self.status in self.OPEN_STATUSES

    # STATUS TRANSITIONS
    # The cross-aggregate effects (Load move, Shipment creation, sibling
    # cancellation) live in matching.services.offers.
    def may(self, event):
        return self.machine.can(self.status, event)

    def _transition(self, event, **extra_fields):
        self.status = self.machine.next_state(self.status, event)
        for key, value in extra_fields.items():
            setattr(self, key, value)
        self.save()

    def make_offer(self, now, rate=None, respond_by=None):
        extra = {"matched_at": now, "respond_by": respond_by}
        if rate is not None:
            extra["rate_offered"] = rate
        self._transition("make_offer", **extra)

    def accept(self, now, rate=None):
        self._transition(
            "accept_offer",
            accepted_at=now,
            rate_accepted=rate or self.rate_offered or self.load.total_rate,
        )

    def reject(self, now, reason=RejectionReason.OTHER, notes=""):
        self._transition(
            "reject_offer",
            rejected_at=now,
            rejection_reason=reason,
            notes=notes or self.notes,
        )

    def expire(self, now):
        self._transition("expire", expired_at=now)

    def cancel(self, now):
        self._transition("cancel", cancelled_at=now)

    # DERIVED VALUES
    @property
    def deadhead_miles(self):
        return float(self.distance_to_pickup or 0)

    @property
    def total_miles(self):
        return self.load.distance_miles + self.deadhead_miles

    @property
    def estimated_total_cost(self):
        if self.margin_estimate is None:
            return None
        return float(self.load.total_rate) - float(self.margin_estimate)

    @property
    def profit_margin_percentage(self):
        if not self.rate_accepted or self.estimated_total_cost is None:
            return 0.0
        rate = float(self.rate_accepted)
        return round((rate - self.estimated_total_cost) / rate * 100, 2)

    @property
    def time_to_respond(self):
        """Hours between the offer and the carrier's answer."""
        answered_at = self.accepted_at or self.rejected_at
        if self.matched_at is None or answered_at is None:
            return None
        return round((answered_at - self.matched_at).total_seconds() / 3600, 2)

    @property
    def revenue_per_mile(self):
        if not self.rate_accepted or not self.total_miles:
            return 0.0
        return round(float(self.rate_accepted) / self.total_miles, 2)


# SHIPMENT


class Shipment(TimeStampedModel):
    """Physical execution of an accepted Match."""

    machine = SHIPMENT_MACHINE

    class Status(models.TextChoices):
        PENDING_PICKUP = "pending_pickup", "Pending Pickup"
        PICKED_UP = "picked_up", "Picked Up"
        IN_TRANSIT = "in_transit", "In Transit"
        DELIVERED = "delivered", "Delivered"
        EXCEPTION = "exception", "Exception"

    ACTIVE_STATUSES = (Status.PENDING_PICKUP, Status.PICKED_UP, Status.IN_TRANSIT)

    load = models.OneToOneField(
        Load, on_delete=models.PROTECT, related_name="shipment"
    )
    match = models.OneToOneField(
        Match, on_delete=models.PROTECT, related_name="shipment"
    )
    carrier = models.ForeignKey(
        Carrier, on_delete=models.PROTECT, related_name="shipments"
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING_PICKUP
    )

    scheduled_pickup_date = models.DateField()
    scheduled_delivery_date = models.DateField()
    actual_pickup_date = models.DateField(null=True, blank=True)
    actual_delivery_date = models.DateField(null=True, blank=True)
    delivered_on_time = models.BooleanField(null=True, blank=True)

    exception_reason = models.TextField(blank=True)
    exception_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(scheduled_delivery_date__gte=models.F("scheduled_pickup_date")),
                name="shipment_delivery_after_pickup",
            ),
        ]

    def __str__(self):
        return f"Shipment {self.pk} for {self.load_id} ({self.status})"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._stored_status = instance.__dict__.get("status")
        return instance

    def save(self, *args, **kwargs):
        if getattr(self, "_stored_status", None) == self.Status.DELIVERED:
            raise ValueError("Delivered shipments cannot be modified.")
        super().save(*args, **kwargs)
        self._stored_status = self.status

    def refresh_from_db(self, *args, **kwargs):
        super().refresh_from_db(*args, **kwargs)
        self._stored_status = self.status

    def clean(self):
        if self.scheduled_delivery_date < self.scheduled_pickup_date:
            raise ValidationError(
                {"scheduled_delivery_date": "Must be on or after the pickup date."}
            )

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES

    def days_in_transit(self, today):
        if self.actual_pickup_date is None:
            return None
        end = self.actual_delivery_date or today
        return (end - self.actual_pickup_date).days

    @property
    def estimated_delivery_date(self):
        """Scheduled delivery, shifted by how late or early pickup happened."""
        if self.actual_pickup_date is None:
            return self.scheduled_delivery_date
        transit = self.scheduled_delivery_date - self.scheduled_pickup_date
        return self.actual_pickup_date + transit

    # STATUS TRANSITIONS
    def may(self, event):
        return self.machine.can(self.status, event)

    def _transition(self, event, **extra_fields):
        self.status = self.machine.next_state(self.status, event)
        for key, value in extra_fields.items():
            setattr(self, key, value)
        self.save()

    def pickup(self, on_date):
        self._transition("pickup", actual_pickup_date=on_date)

    def start_transit(self):
        self._transition("start_transit")

    def deliver(self, on_date):
        self._transition(
            "deliver",
            actual_delivery_date=on_date,
            delivered_on_time=on_date <= self.scheduled_delivery_date,
        )

    def report_exception(self, now, reason=""):
        self._transition("report_exception", exception_at=now, exception_reason=reason)


# TRACKING


class TrackingEventQuerySet(models.QuerySet):
    def milestones(self):
        return self.filter(is_milestone=True)

    def alerts(self):
        return self.filter(event_type__in=TrackingEvent.ALERT_TYPES)

    def chronological(self):
        return self.order_by("occurred_at", "id")

    def reverse_chronological(self):
        return self.order_by("-occurred_at", "-id")

    def with_location(self):
        return self.filter(latitude__isnull=False, longitude__isnull=False)

    def latest_location(self):
        return self.with_location().reverse_chronological().first()

    def delete(self):
        raise ValueError("Tracking events are append-only.")


class TrackingEvent(models.Model):
    """Immutable fact about a Shipment. Rows are only ever inserted."""

    class EventType(models.TextChoices):
        PICKUP_SCHEDULED = "pickup_scheduled", "Pickup Scheduled"
        PICKUP_ARRIVED = "pickup_arrived", "Pickup Arrived"
        PICKUP_STARTED = "pickup_started", "Pickup Started"
        PICKUP_COMPLETED = "pickup_completed", "Pickup Completed"
        IN_TRANSIT = "in_transit", "In Transit"
        DELIVERY_SCHEDULED = "delivery_scheduled", "Delivery Scheduled"
        DELIVERY_ARRIVED = "delivery_arrived", "Delivery Arrived"
        DELIVERY_STARTED = "delivery_started", "Delivery Started"
        DELIVERY_COMPLETED = "delivery_completed", "Delivery Completed"
        DELAY = "delay", "Delay"
        BREAKDOWN = "breakdown", "Breakdown"
        ACCIDENT = "accident", "Accident"
        FUEL_STOP = "fuel_stop", "Fuel Stop"
        REST_BREAK = "rest_break", "Rest Break"
        BORDER_CROSSING = "border_crossing", "Border Crossing"
        INSPECTION = "inspection", "Inspection"
        TEMPERATURE_ALERT = "temperature_alert", "Temperature Alert"
        SECURITY_ALERT = "security_alert", "Security Alert"
        LOCATION_UPDATE = "location_update", "Location Update"
        STATUS_CHANGE = "status_change", "Status Change"
        EXCEPTION = "exception", "Exception"

    class EventStatus(models.TextChoices):
        SCHEDULED = "scheduled", "Scheduled"
        IN_PROGRESS = "in_progress", "In Progress"
        COMPLETED = "completed", "Completed"
        DELAYED = "delayed", "Delayed"
        CANCELLED = "cancelled", "Cancelled"
        EXCEPTION = "exception", "Exception"
        ON_HOLD = "on_hold", "On Hold"

    class Source(models.TextChoices):
        MANUAL = "manual", "Manual"
        GPS = "gps", "GPS"
        ELD = "eld", "Electronic Logging Device"
        API = "api", "API"
        MOBILE_APP = "mobile_app", "Mobile App"
        TELEMATICS = "telematics", "Telematics"
        DRIVER_INPUT = "driver_input", "Driver Input"
        AUTOMATED = "automated", "Automated"

    class Severity(models.TextChoices):
        INFO = "info", "Info"
        WARNING = "warning", "Warning"
        ERROR = "error", "Error"
        CRITICAL = "critical", "Critical"

    MILESTONE_TYPES = frozenset(
        {
            EventType.PICKUP_COMPLETED,
            EventType.IN_TRANSIT,
            EventType.DELIVERY_COMPLETED,
            EventType.BREAKDOWN,
            EventType.ACCIDENT,
            EventType.DELAY,
        }
    )
    ALERT_TYPES = frozenset(
        {
            EventType.TEMPERATURE_ALERT,
            EventType.SECURITY_ALERT,
            EventType.BREAKDOWN,
            EventType.ACCIDENT,
            EventType.DELAY,
            EventType.EXCEPTION,
        }
    )
    SEVERITY_BY_TYPE = {
        EventType.BREAKDOWN: Severity.CRITICAL,
        EventType.ACCIDENT: Severity.CRITICAL,
        EventType.DELAY: Severity.WARNING,
        EventType.TEMPERATURE_ALERT: Severity.WARNING,
        EventType.SECURITY_ALERT: Severity.WARNING,
        EventType.EXCEPTION: Severity.ERROR,
    }
    DEFAULT_DESCRIPTIONS = {
        EventType.PICKUP_SCHEDULED: "Pickup has been scheduled",
        EventType.PICKUP_ARRIVED: "Driver has arrived at pickup location",
        EventType.PICKUP_STARTED: "Pickup process has started",
        EventType.PICKUP_COMPLETED: "Pickup has been completed",
        EventType.IN_TRANSIT: "Shipment is in transit",
        EventType.DELIVERY_SCHEDULED: "Delivery has been scheduled",
        EventType.DELIVERY_ARRIVED: "Driver has arrived at delivery location",
        EventType.DELIVERY_STARTED: "Delivery process has started",
        EventType.DELIVERY_COMPLETED: "Delivery has been completed",
        EventType.DELAY: "Shipment has been delayed",
        EventType.BREAKDOWN: "Vehicle breakdown reported",
        EventType.ACCIDENT: "Accident reported",
        EventType.FUEL_STOP: "Vehicle stopped for fuel",
        EventType.REST_BREAK: "Driver taking required rest break",
        EventType.TEMPERATURE_ALERT: "Temperature monitoring alert",
        EventType.SECURITY_ALERT: "Security alert triggered",
    }

    shipment = models.ForeignKey(
        Shipment, on_delete=models.PROTECT, related_name="tracking_events"
    )
    event_type = models.CharField(max_length=30, choices=EventType.choices)
    status = models.CharField(max_length=20, choices=EventStatus.choices)
    source = models.CharField(
        max_length=20, choices=Source.choices, default=Source.MANUAL
    )
    is_milestone = models.BooleanField(default=False, editable=False)

    # Where
    location = models.CharField(max_length=200, blank=True)
    latitude = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True
    )
    longitude = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True
    )

    # Readings
    temperature = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True, help_text="°F"
    )
    humidity = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True
    )

    description = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    reported_by = models.CharField(max_length=100, blank=True)
    external_id = models.CharField(max_length=100, blank=True)
    metadata = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)

    occurred_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TrackingEventQuerySet.as_manager()

    class Meta:
        ordering = ["occurred_at", "id"]
        indexes = [
            models.Index(fields=["shipment", "occurred_at"], name="tracking_shipment_time_idx")
        ]

    def __str__(self):
        return f"{self.get_event_type_display()} @ {self.occurred_at:%Y-%m-%d %H:%M}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Tracking events are append-only.")
        self.is_milestone = self.event_type in self.MILESTONE_TYPES
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Tracking events are append-only.")

    @property
    def is_alert(self):
        return self.event_type in self.ALERT_TYPES

    @property
    def severity(self):
        return self.SEVERITY_BY_TYPE.get(self.event_type, self.Severity.INFO)

    @property
    def coordinates(self):
        return Coordinate.from_values(self.latitude, self.longitude)

    @property
    def display_location(self):
        if self.location:
            return self.location
        if self.coordinates is not None:
            return f"{self.latitude}, {self.longitude}"
        return "Unknown location"

    @property
    def default_description(self):
        return self.DEFAULT_DESCRIPTIONS.get(
            self.event_type, self.event_type.replace("_", " ").capitalize()
        )

    @property
    def display_description(self):
        base = self.description or self.default_description
        if self.event_type == self.EventType.TEMPERATURE_ALERT and self.temperature is not None:
            return f"{base} (Temperature: {self.temperature}°F)"
        if self.event_type == self.EventType.DELAY and self.metadata.get("delay_minutes"):
            return f"{base} ({int(self.metadata['delay_minutes'])} minutes)"
        return base

    @property
    def is_temperature_violation(self):
        if self.event_type != self.EventType.TEMPERATURE_ALERT:
            return False
        load = self.shipment.load
        if not load.temperature_controlled or self.temperature is None:
            return False
        if load.temperature_min is None or load.temperature_max is None:
            return False
        return not load.temperature_min <= self.temperature <= load.temperature_max


# OUTBOX


class DomainEvent(models.Model):
    """Outbound notification, written in the same transaction as the change."""

    class EventType(models.TextChoices):
        MATCH_CREATED = "match.created", "Match created"
        MATCH_STATUS_CHANGED = "match.status_changed", "Match status changed"
        SHIPMENT_MILESTONE = "shipment.milestone", "Shipment milestone"
        SHIPMENT_ALERT = "shipment.alert", "Shipment alert"

    event_type = models.CharField(max_length=40, choices=EventType.choices)
    match = models.ForeignKey(
        Match,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="domain_events",
    )
    shipment = models.ForeignKey(
        Shipment,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="domain_events",
    )
    payload = models.JSONField(default=dict, encoder=DjangoJSONEncoder)
    occurred_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        target = f"match {self.match_id}" if self.match_id else f"shipment {self.shipment_id}"
        return f"{self.event_type} ({target})"