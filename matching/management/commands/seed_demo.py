"""Seed demo carriers, vehicles, drivers and posted loads."""

import random

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from factory import random as factory_random
from faker import Faker

from matching import factories
from matching.models import EquipmentType
from matching.services.candidates import create_matches_for_load
from matching.services.costs import to_money
from matching.services.routing import Coordinate, get_estimator

# (city, state, lat, lng)
DEMO_CITIES = [
    ("Atlanta", "GA", "33.748997", "-84.387985"),
    ("Jacksonville", "FL", "30.332184", "-81.655647"),
    ("Charlotte", "NC", "35.227087", "-80.843127"),
    ("Nashville", "TN", "36.162664", "-86.781602"),
    ("Birmingham", "AL", "33.518589", "-86.810356"),
    ("Savannah", "GA", "32.080898", "-81.091203"),
]


class Command(BaseCommand):
    help = "Seed demo carriers with vehicles and drivers, plus posted loads"

    def add_arguments(self, parser):
        parser.add_argument("--carriers", type=int, default=8)
        parser.add_argument("--vehicles-per-carrier", type=int, default=2)
        parser.add_argument("--drivers-per-carrier", type=int, default=2)
        parser.add_argument("--loads", type=int, default=5)
        parser.add_argument(
            "--match", action="store_true", help="Create pending matches for each load"
        )
        parser.add_argument(
            "--seed", type=int, default=None, help="Seed for Faker/random"
        )

    def handle(self, *args, **options):
        seed = options.get("seed")
        if seed is not None:
            random.seed(seed)
            factory_random.reseed_random(seed)
            Faker.seed(seed)
            self.stdout.write(self.style.NOTICE(f"Seeding randomness with seed={seed}"))

        states = sorted({c[1] for c in DEMO_CITIES})
        with transaction.atomic():
            self.stdout.write("Creating carriers with vehicles and drivers...")
            for _ in range(options["carriers"]):
                city = random.choice(DEMO_CITIES)
                equipment = random.sample(
                    [EquipmentType.DRY_VAN, EquipmentType.REFRIGERATED, EquipmentType.FLATBED],
                    k=random.randint(1, 2),
                )
                carrier = factories.CarrierFactory(
                    state=city[1],
                    equipment_types=equipment,
                    service_areas=random.sample(states, k=random.randint(2, len(states))),
                    current_latitude=city[2],
                    current_longitude=city[3],
                    average_rating=f"{random.uniform(3.0, 5.0):.2f}",
                    on_time_percentage=f"{random.uniform(80, 99):.2f}",
                    vehicle=None,
                )
                for _ in range(options["vehicles_per_carrier"]):
                    factories.VehicleFactory(
                        carrier=carrier,
                        equipment_type=random.choice(equipment),
                        temperature_controlled=EquipmentType.REFRIGERATED in equipment,
                    )
                factories.DriverFactory.create_batch(
                    options["drivers_per_carrier"], carrier=carrier
                )

            self.stdout.write("Creating loads...")
            estimator = get_estimator()
            loads = []
            for _ in range(options["loads"]):
                origin, destination = random.sample(DEMO_CITIES, k=2)
                route = estimator.estimate_route(
                    Coordinate.from_values(origin[2], origin[3]),
                    Coordinate.from_values(destination[2], destination[3]),
                )
                loads.append(
                    factories.LoadFactory(
                        pickup_city=origin[0],
                        pickup_state=origin[1],
                        pickup_latitude=origin[2],
                        pickup_longitude=origin[3],
                        delivery_city=destination[0],
                        delivery_state=destination[1],
                        delivery_latitude=destination[2],
                        delivery_longitude=destination[3],
                        estimated_distance=to_money(route.distance_miles),
                    )
                )

        matches = 0
        if options["match"]:
            now = timezone.now()
            for load in loads:
                matches += len(create_matches_for_load(load.pk, now=now))

        self.stdout.write(self.style.SUCCESS("Seed complete."))
        self.stdout.write(
            self.style.SUCCESS(
                f"Carriers: {options['carriers']}, Loads: {len(loads)}, Matches: {matches}"
            )
        )
