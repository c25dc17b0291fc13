"""Expire unanswered matches and loads past their posting deadline.

Meant to run from cron every few minutes.
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from matching.services.sweeps import expire_stale_loads, expire_stale_matches


class Command(BaseCommand):
    help = "Expire pending/offered matches past their response deadline and stale loads"

    def add_arguments(self, parser):
        parser.add_argument(
            "--skip-loads", action="store_true", help="Only sweep matches"
        )

    def handle(self, *args, **options):
        now = timezone.now()
        matches = expire_stale_matches(now)
        self.stdout.write(self.style.SUCCESS(f"Expired matches: {matches}"))

        if not options["skip_loads"]:
            loads = expire_stale_loads(now)
            self.stdout.write(self.style.SUCCESS(f"Closed loads: {loads}"))
