from django.apps import AppConfig


class MatchingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "matching"

    def ready(self):
        from config.logging import configure_logging
        from matching.conf import get_setting

        configure_logging(get_setting("LOG_LEVEL"))
