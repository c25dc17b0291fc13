from django.conf import settings

DEFAULTS = {
    "MAX_CANDIDATES": 10,
    "FUEL_PRICE_PER_GALLON": 4.50,
    "MILES_PER_GALLON": 6.5,
    "DRIVER_COST_PER_MILE": 0.50,
    "MAINTENANCE_COST_PER_MILE": 0.15,
    "INSURANCE_RATE": 0.02,
    "OFFER_RESPONSE_HOURS": 24,
    "ROUTING_PROVIDER_URL": "",
    "ROUTING_PROVIDER_TIMEOUT_SECONDS": 2.0,
    "SCORING_MAX_WORKERS": 4,
    "LOG_LEVEL": "INFO",
}


def get_setting(name):
    """Look up ``settings.MATCHING[name]``, falling back to DEFAULTS."""
    if name not in DEFAULTS:
        raise KeyError(f"Unknown matching setting: {name}")
    return getattr(settings, "MATCHING", {}).get(name, DEFAULTS[name])
