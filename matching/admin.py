from django.contrib import admin

from .models import Carrier, DomainEvent, Driver, Load, Match, Shipment, TrackingEvent, Vehicle


class VehicleInline(admin.TabularInline):
    model = Vehicle
    extra = 0


class DriverInline(admin.TabularInline):
    model = Driver
    extra = 0


@admin.register(Carrier)
class CarrierAdmin(admin.ModelAdmin):
    list_display = ("name", "mc_number", "is_verified", "safety_rating", "insurance_expiry")
    list_filter = ("is_verified", "safety_rating", "is_active")
    search_fields = ("name", "mc_number", "dot_number")
    inlines = [VehicleInline, DriverInline]


class ReadOnlyAdmin(admin.ModelAdmin):
    """Lifecycle records only change through matching.services."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Load)
class LoadAdmin(ReadOnlyAdmin):
    list_display = (
        "reference_number",
        "status",
        "equipment_type",
        "pickup_state",
        "delivery_state",
        "pickup_date",
        "total_rate",
    )
    list_filter = ("status", "equipment_type")
    search_fields = ("reference_number",)


@admin.register(Match)
class MatchAdmin(ReadOnlyAdmin):
    list_display = ("id", "load", "carrier", "status", "match_score", "respond_by")
    list_filter = ("status", "rejection_reason")


@admin.register(Shipment)
class ShipmentAdmin(ReadOnlyAdmin):
    list_display = ("id", "load", "carrier", "status", "delivered_on_time")
    list_filter = ("status",)


@admin.register(TrackingEvent)
class TrackingEventAdmin(ReadOnlyAdmin):
    list_display = ("shipment", "event_type", "status", "source", "occurred_at")
    list_filter = ("event_type", "source", "is_milestone")


@admin.register(DomainEvent)
class DomainEventAdmin(ReadOnlyAdmin):
    list_display = ("id", "event_type", "match", "shipment", "occurred_at")
    list_filter = ("event_type",)
