import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()  # take environment variables from .env.

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv("SECRET_KEY", "django-insecure-change-this")
# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv("DEBUG", "True") == "True"

ALLOWED_HOSTS = [h for h in os.getenv("ALLOWED_HOSTS", "").split(",") if h]


# Application definition

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # My apps
    "matching.apps.MatchingConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"


# Database
# https://docs.djangoproject.com/en/6.0/ref/settings/#databases

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.getenv("DB_NAME", "freight_match"),
        "USER": os.getenv("DB_USER", "postgres"),
        "PASSWORD": os.getenv("DB_PASSWORD", "postgres"),
        "HOST": os.getenv("DB_HOST", "localhost"),
        "PORT": os.getenv("DB_PORT", "5432"),
        "ATOMIC_REQUESTS": True,
        "CONN_MAX_AGE": 600,
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# Internationalization
# https://docs.djangoproject.com/en/6.0/topics/i18n/

LANGUAGE_CODE = "en-us"

TIME_ZONE = "UTC"

USE_I18N = True

USE_TZ = True


# Static files (CSS, JavaScript, Images)
STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"


# MATCHING CORE
# Read through matching.conf.get_setting(); missing keys fall back to the
# defaults declared there.
MATCHING = {
    "MAX_CANDIDATES": int(os.getenv("MATCHING_MAX_CANDIDATES", "10")),
    "FUEL_PRICE_PER_GALLON": float(os.getenv("MATCHING_FUEL_PRICE_PER_GALLON", "4.50")),
    "MILES_PER_GALLON": float(os.getenv("MATCHING_MILES_PER_GALLON", "6.5")),
    "DRIVER_COST_PER_MILE": float(os.getenv("MATCHING_DRIVER_COST_PER_MILE", "0.50")),
    "MAINTENANCE_COST_PER_MILE": float(
        os.getenv("MATCHING_MAINTENANCE_COST_PER_MILE", "0.15")
    ),
    "INSURANCE_RATE": float(os.getenv("MATCHING_INSURANCE_RATE", "0.02")),
    "OFFER_RESPONSE_HOURS": int(os.getenv("MATCHING_OFFER_RESPONSE_HOURS", "24")),
    "ROUTING_PROVIDER_URL": os.getenv("ROUTING_PROVIDER_URL", ""),
    "ROUTING_PROVIDER_TIMEOUT_SECONDS": float(
        os.getenv("ROUTING_PROVIDER_TIMEOUT_SECONDS", "2.0")
    ),
    "SCORING_MAX_WORKERS": int(os.getenv("MATCHING_SCORING_MAX_WORKERS", "4")),
    "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
}
