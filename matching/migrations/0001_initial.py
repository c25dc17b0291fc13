from decimal import Decimal

import django.core.serializers.json
import django.db.models.deletion
from django.db import migrations, models

EQUIPMENT_CHOICES = [
    ("dry_van", "Dry Van"),
    ("refrigerated", "Refrigerated (Reefer)"),
    ("flatbed", "Flatbed"),
    ("step_deck", "Step Deck"),
    ("lowboy", "Lowboy"),
    ("tanker", "Tanker"),
    ("container", "Container"),
    ("car_carrier", "Car Carrier"),
    ("specialized", "Specialized"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Carrier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("is_active", models.BooleanField(default=True)),
                ("name", models.CharField(max_length=200)),
                ("mc_number", models.CharField(help_text="Motor Carrier Number", max_length=20, unique=True)),
                ("dot_number", models.CharField(help_text="USDOT Number", max_length=20, unique=True)),
                ("state", models.CharField(blank=True, max_length=2)),
                ("is_verified", models.BooleanField(default=False)),
                ("equipment_types", models.JSONField(blank=True, default=list, help_text="List of EquipmentType values")),
                ("service_areas", models.JSONField(blank=True, default=list, help_text='State codes served, or ["ALL"]')),
                ("hazmat_certified", models.BooleanField(default=False)),
                (
                    "safety_rating",
                    models.CharField(
                        choices=[
                            ("satisfactory", "Satisfactory"),
                            ("conditional", "Conditional"),
                            ("unsatisfactory", "Unsatisfactory"),
                            ("not_rated", "Not Rated"),
                        ],
                        default="not_rated",
                        max_length=20,
                    ),
                ),
                ("insurance_expiry", models.DateField(blank=True, null=True)),
                ("current_latitude", models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ("current_longitude", models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ("average_rating", models.DecimalField(decimal_places=2, default=Decimal("0.00"), help_text="0-5 stars", max_digits=3)),
                ("on_time_percentage", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="Load",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("reference_number", models.CharField(max_length=30, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("posted", "Posted"),
                            ("matched", "Matched"),
                            ("accepted", "Accepted"),
                            ("picked_up", "Picked Up"),
                            ("in_transit", "In Transit"),
                            ("delivered", "Delivered"),
                            ("cancelled", "Cancelled"),
                            ("expired", "Expired"),
                        ],
                        default="posted",
                        max_length=20,
                    ),
                ),
                ("commodity", models.CharField(blank=True, max_length=200)),
                ("equipment_type", models.CharField(choices=EQUIPMENT_CHOICES, max_length=20)),
                ("weight", models.PositiveIntegerField(blank=True, help_text="lbs", null=True)),
                ("pickup_city", models.CharField(blank=True, max_length=100)),
                ("pickup_state", models.CharField(max_length=2)),
                ("pickup_latitude", models.DecimalField(decimal_places=6, max_digits=9)),
                ("pickup_longitude", models.DecimalField(decimal_places=6, max_digits=9)),
                ("pickup_date", models.DateField()),
                ("delivery_city", models.CharField(blank=True, max_length=100)),
                ("delivery_state", models.CharField(max_length=2)),
                ("delivery_latitude", models.DecimalField(decimal_places=6, max_digits=9)),
                ("delivery_longitude", models.DecimalField(decimal_places=6, max_digits=9)),
                ("delivery_date", models.DateField()),
                ("is_hazmat", models.BooleanField(default=False)),
                ("temperature_controlled", models.BooleanField(default=False)),
                ("temperature_min", models.DecimalField(blank=True, decimal_places=2, help_text="°F", max_digits=5, null=True)),
                ("temperature_max", models.DecimalField(blank=True, decimal_places=2, help_text="°F", max_digits=5, null=True)),
                ("is_team_driver", models.BooleanField(default=False)),
                ("is_expedited", models.BooleanField(default=False)),
                ("rate", models.DecimalField(decimal_places=2, max_digits=10)),
                ("fuel_surcharge", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("accessorial_charges", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("total_rate", models.DecimalField(decimal_places=2, default=Decimal("0.00"), editable=False, max_digits=10)),
                ("estimated_distance", models.DecimalField(blank=True, decimal_places=2, help_text="Road miles", max_digits=8, null=True)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                ("accepted_at", models.DateTimeField(blank=True, null=True)),
                ("picked_up_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("expired_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.TextField(blank=True)),
            ],
            options={
                "indexes": [models.Index(fields=["status", "expires_at"], name="load_status_expires_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("delivery_date__gte", models.F("pickup_date"))),
                        name="load_delivery_after_pickup",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Driver",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("is_active", models.BooleanField(default=True)),
                ("first_name", models.CharField(max_length=50)),
                ("last_name", models.CharField(max_length=50)),
                ("cdl_number", models.CharField(max_length=30, unique=True)),
                ("hazmat_certified", models.BooleanField(default=False)),
                ("team_driver", models.BooleanField(default=False)),
                (
                    "carrier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="drivers",
                        to="matching.carrier",
                    ),
                ),
            ],
            options={
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="Vehicle",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("is_active", models.BooleanField(default=True)),
                ("unit_number", models.CharField(help_text="Internal fleet number", max_length=50)),
                ("equipment_type", models.CharField(choices=EQUIPMENT_CHOICES, max_length=20)),
                ("capacity_weight", models.PositiveIntegerField(help_text="Max payload in lbs")),
                ("temperature_controlled", models.BooleanField(default=False)),
                (
                    "current_status",
                    models.CharField(
                        choices=[
                            ("available", "Available (Empty)"),
                            ("assigned", "Assigned to Load"),
                            ("out_of_service", "Out of Service"),
                        ],
                        default="available",
                        max_length=20,
                    ),
                ),
                (
                    "carrier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="vehicles",
                        to="matching.carrier",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("carrier", "unit_number"), name="unique_unit_per_carrier")
                ],
            },
        ),
        migrations.CreateModel(
            name="Match",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("offered", "Offered"),
                            ("accepted", "Accepted"),
                            ("rejected", "Rejected"),
                            ("expired", "Expired"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("match_score", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=8)),
                ("distance_to_pickup", models.DecimalField(blank=True, decimal_places=2, help_text="Deadhead miles", max_digits=8, null=True)),
                ("fuel_cost_estimate", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("margin_estimate", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("estimated_pickup_time", models.DateTimeField(blank=True, null=True)),
                ("estimated_delivery_time", models.DateTimeField(blank=True, null=True)),
                ("rate_offered", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("rate_accepted", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                (
                    "rejection_reason",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("rate_too_low", "Rate too low"),
                            ("timing_conflict", "Timing conflict"),
                            ("equipment_unavailable", "Equipment unavailable"),
                            ("location_too_far", "Location too far"),
                            ("shipper_requirements", "Shipper requirements"),
                            ("carrier_policy", "Carrier policy"),
                            ("other", "Other"),
                        ],
                        max_length=30,
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                ("respond_by", models.DateTimeField(blank=True, null=True)),
                ("matched_at", models.DateTimeField(blank=True, null=True)),
                ("accepted_at", models.DateTimeField(blank=True, null=True)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("expired_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "carrier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="matches",
                        to="matching.carrier",
                    ),
                ),
                (
                    "load",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="matches",
                        to="matching.load",
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["status", "respond_by"], name="match_status_respond_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "accepted")),
                        fields=("load",),
                        name="one_accepted_match_per_load",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ["pending", "offered", "accepted"])),
                        fields=("load", "carrier"),
                        name="one_active_match_per_load_carrier",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("match_score__gte", 0)),
                        name="match_score_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Shipment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending_pickup", "Pending Pickup"),
                            ("picked_up", "Picked Up"),
                            ("in_transit", "In Transit"),
                            ("delivered", "Delivered"),
                            ("exception", "Exception"),
                        ],
                        default="pending_pickup",
                        max_length=20,
                    ),
                ),
                ("scheduled_pickup_date", models.DateField()),
                ("scheduled_delivery_date", models.DateField()),
                ("actual_pickup_date", models.DateField(blank=True, null=True)),
                ("actual_delivery_date", models.DateField(blank=True, null=True)),
                ("delivered_on_time", models.BooleanField(blank=True, null=True)),
                ("exception_reason", models.TextField(blank=True)),
                ("exception_at", models.DateTimeField(blank=True, null=True)),
                (
                    "carrier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="shipments",
                        to="matching.carrier",
                    ),
                ),
                (
                    "load",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="shipment",
                        to="matching.load",
                    ),
                ),
                (
                    "match",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="shipment",
                        to="matching.match",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("scheduled_delivery_date__gte", models.F("scheduled_pickup_date"))),
                        name="shipment_delivery_after_pickup",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="TrackingEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("pickup_scheduled", "Pickup Scheduled"),
                            ("pickup_arrived", "Pickup Arrived"),
                            ("pickup_started", "Pickup Started"),
                            ("pickup_completed", "Pickup Completed"),
                            ("in_transit", "In Transit"),
                            ("delivery_scheduled", "Delivery Scheduled"),
                            ("delivery_arrived", "Delivery Arrived"),
                            ("delivery_started", "Delivery Started"),
                            ("delivery_completed", "Delivery Completed"),
                            ("delay", "Delay"),
                            ("breakdown", "Breakdown"),
                            ("accident", "Accident"),
                            ("fuel_stop", "Fuel Stop"),
                            ("rest_break", "Rest Break"),
                            ("border_crossing", "Border Crossing"),
                            ("inspection", "Inspection"),
                            ("temperature_alert", "Temperature Alert"),
                            ("security_alert", "Security Alert"),
                            ("location_update", "Location Update"),
                            ("status_change", "Status Change"),
                            ("exception", "Exception"),
                        ],
                        max_length=30,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("scheduled", "Scheduled"),
                            ("in_progress", "In Progress"),
                            ("completed", "Completed"),
                            ("delayed", "Delayed"),
                            ("cancelled", "Cancelled"),
                            ("exception", "Exception"),
                            ("on_hold", "On Hold"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("manual", "Manual"),
                            ("gps", "GPS"),
                            ("eld", "Electronic Logging Device"),
                            ("api", "API"),
                            ("mobile_app", "Mobile App"),
                            ("telematics", "Telematics"),
                            ("driver_input", "Driver Input"),
                            ("automated", "Automated"),
                        ],
                        default="manual",
                        max_length=20,
                    ),
                ),
                ("is_milestone", models.BooleanField(default=False, editable=False)),
                ("location", models.CharField(blank=True, max_length=200)),
                ("latitude", models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ("longitude", models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ("temperature", models.DecimalField(blank=True, decimal_places=2, help_text="°F", max_digits=5, null=True)),
                ("humidity", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("description", models.TextField(blank=True)),
                ("notes", models.TextField(blank=True)),
                ("reported_by", models.CharField(blank=True, max_length=100)),
                ("external_id", models.CharField(blank=True, max_length=100)),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                    ),
                ),
                ("occurred_at", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "shipment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="tracking_events",
                        to="matching.shipment",
                    ),
                ),
            ],
            options={
                "ordering": ["occurred_at", "id"],
                "indexes": [models.Index(fields=["shipment", "occurred_at"], name="tracking_shipment_time_idx")],
            },
        ),
        migrations.CreateModel(
            name="DomainEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("match.created", "Match created"),
                            ("match.status_changed", "Match status changed"),
                            ("shipment.milestone", "Shipment milestone"),
                            ("shipment.alert", "Shipment alert"),
                        ],
                        max_length=40,
                    ),
                ),
                (
                    "payload",
                    models.JSONField(
                        default=dict,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                    ),
                ),
                ("occurred_at", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "match",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="domain_events",
                        to="matching.match",
                    ),
                ),
                (
                    "shipment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="domain_events",
                        to="matching.shipment",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
            },
        ),
    ]
