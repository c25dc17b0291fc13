from .base import *  # noqa: F401,F403

# File-backed SQLite so threads in concurrency tests get real, separate
# connections to the same database.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "test_freight_match.sqlite3",  # noqa: F405
        "TEST": {"NAME": BASE_DIR / "test_freight_match.sqlite3"},  # noqa: F405
        "OPTIONS": {"timeout": 20},
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

MATCHING = {
    **MATCHING,  # noqa: F405
    "ROUTING_PROVIDER_URL": "",
    "OFFER_RESPONSE_HOURS": 24,
    "MAX_CANDIDATES": 10,
    "LOG_LEVEL": "WARNING",
}
