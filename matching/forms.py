from decimal import Decimal

from django import forms

from .models import Load, Match, TrackingEvent

MAX_LOAD_WEIGHT_LBS = 80000


def _latitude(required=True):
    return forms.DecimalField(
        required=required, min_value=-90, max_value=90, max_digits=9, decimal_places=6
    )


def _longitude(required=True):
    return forms.DecimalField(
        required=required, min_value=-180, max_value=180, max_digits=9, decimal_places=6
    )


class LoadForm(forms.ModelForm):
    """
    Validates a shipper's load posting before anything is written.

    Reference number, status, totals and lifecycle timestamps are set by
    matching.services.loads.post_load, not by the caller.
    """

    pickup_latitude = _latitude()
    pickup_longitude = _longitude()
    delivery_latitude = _latitude()
    delivery_longitude = _longitude()
    weight = forms.IntegerField(
        required=False, min_value=1, max_value=MAX_LOAD_WEIGHT_LBS
    )
    rate = forms.DecimalField(
        min_value=Decimal("0.01"), max_digits=10, decimal_places=2
    )

    class Meta:
        model = Load
        fields = [
            "reference_number",
            "commodity",
            "equipment_type",
            "weight",
            # pickup
            "pickup_city",
            "pickup_state",
            "pickup_latitude",
            "pickup_longitude",
            "pickup_date",
            # delivery
            "delivery_city",
            "delivery_state",
            "delivery_latitude",
            "delivery_longitude",
            "delivery_date",
            # requirements
            "is_hazmat",
            "temperature_controlled",
            "temperature_min",
            "temperature_max",
            "is_team_driver",
            "is_expedited",
            # financials
            "rate",
            "fuel_surcharge",
            "accessorial_charges",
            "expires_at",
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["reference_number"].required = False
        self.fields["fuel_surcharge"].required = False
        self.fields["accessorial_charges"].required = False

    def clean_pickup_state(self):
        return self.cleaned_data["pickup_state"].upper()

    def clean_delivery_state(self):
        return self.cleaned_data["delivery_state"].upper()

    def clean_fuel_surcharge(self):
        return self.cleaned_data.get("fuel_surcharge") or Decimal("0.00")

    def clean_accessorial_charges(self):
        return self.cleaned_data.get("accessorial_charges") or Decimal("0.00")


class TrackingEventForm(forms.ModelForm):
    latitude = _latitude(required=False)
    longitude = _longitude(required=False)

    class Meta:
        model = TrackingEvent
        fields = [
            "event_type",
            "status",
            "source",
            "occurred_at",
            "location",
            "latitude",
            "longitude",
            "temperature",
            "humidity",
            "description",
            "notes",
            "reported_by",
            "external_id",
            "metadata",
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["source"].required = False
        self.fields["metadata"].required = False

    def clean_source(self):
        return self.cleaned_data.get("source") or TrackingEvent.Source.MANUAL

    def clean_metadata(self):
        return self.cleaned_data.get("metadata") or {}

    def clean(self):
        cleaned_data = super().clean()
        has_lat = cleaned_data.get("latitude") is not None
        has_lng = cleaned_data.get("longitude") is not None
        if has_lat != has_lng:
            raise forms.ValidationError(
                "Latitude and longitude must be given together."
            )
        return cleaned_data


class OfferResponseForm(forms.Form):
    ACCEPT = "accept"
    REJECT = "reject"

    decision = forms.ChoiceField(choices=[(ACCEPT, "Accept"), (REJECT, "Reject")])
    rate = forms.DecimalField(
        required=False, min_value=Decimal("0.01"), max_digits=10, decimal_places=2
    )
    reason = forms.ChoiceField(
        required=False, choices=Match.RejectionReason.choices
    )
    notes = forms.CharField(required=False)

    def clean(self):
        cleaned_data = super().clean()
        if cleaned_data.get("decision") == self.REJECT and not cleaned_data.get("reason"):
            cleaned_data["reason"] = Match.RejectionReason.OTHER
        return cleaned_data
