"""Read-only carrier capability records and the directory that serves them.

The matching core never touches Carrier/Vehicle/Driver rows directly;
it works on these frozen snapshots, which makes eligibility and scoring
safe to run across threads.
"""

import datetime
from dataclasses import dataclass, field
from typing import Optional, Protocol

from matching.models import Carrier
from matching.services.exceptions import ObjectNotFound
from matching.services.routing import Coordinate

ALL_AREAS = "ALL"


@dataclass(frozen=True)
class VehicleCapability:
    id: int
    equipment_type: str
    capacity_weight: int
    temperature_controlled: bool = False
    assignable: bool = True


@dataclass(frozen=True)
class CarrierCapability:
    id: int
    name: str
    is_active: bool
    is_verified: bool
    equipment_types: frozenset
    service_areas: frozenset
    safety_rating: str
    insurance_expiry: Optional[datetime.date]
    hazmat_certified: bool
    has_hazmat_driver: bool = False
    has_team_driver: bool = False
    location: Optional[Coordinate] = None
    average_rating: float = 0.0
    on_time_percentage: float = 0.0
    vehicles: tuple = field(default_factory=tuple)

    @classmethod
    def from_model(cls, carrier: Carrier) -> "CarrierCapability":
        drivers = [d for d in carrier.drivers.all() if d.is_active]
        return cls(
            id=carrier.pk,
            name=carrier.name,
            is_active=carrier.is_active,
            is_verified=carrier.is_verified,
            equipment_types=frozenset(carrier.equipment_types or ()),
            service_areas=frozenset(s.upper() for s in carrier.service_areas or ()),
            safety_rating=carrier.safety_rating,
            insurance_expiry=carrier.insurance_expiry,
            hazmat_certified=carrier.hazmat_certified,
            has_hazmat_driver=any(d.hazmat_certified for d in drivers),
            has_team_driver=any(d.team_driver for d in drivers),
            location=Coordinate.from_values(
                carrier.current_latitude, carrier.current_longitude
            ),
            average_rating=float(carrier.average_rating),
            on_time_percentage=float(carrier.on_time_percentage),
            vehicles=tuple(
                VehicleCapability(
                    id=v.pk,
                    equipment_type=v.equipment_type,
                    capacity_weight=v.capacity_weight,
                    temperature_controlled=v.temperature_controlled,
                    assignable=v.is_assignable,
                )
                for v in carrier.vehicles.all()
            ),
        )

    def handles_equipment(self, equipment_type):
        return equipment_type in self.equipment_types

    def serves_state(self, state):
        return ALL_AREAS in self.service_areas or (state or "").upper() in self.service_areas

    def assignable_vehicles(self):
        return [v for v in self.vehicles if v.assignable]


class CarrierDirectory(Protocol):
    def list_candidate_carriers(self, equipment_type, state) -> list: ...

    def get_carrier(self, carrier_id) -> CarrierCapability: ...


class ModelCarrierDirectory:
    """Carrier Directory over the local Carrier/Vehicle/Driver tables."""

    def _queryset(self):
        return Carrier.objects.filter(is_active=True).prefetch_related(
            "vehicles", "drivers"
        )

    def list_candidate_carriers(self, equipment_type, state):
        # JSON list filtering happens in Python so SQLite and Postgres agree.
        capabilities = (CarrierCapability.from_model(c) for c in self._queryset())
        return [
            c
            for c in capabilities
            if c.handles_equipment(equipment_type) and c.serves_state(state)
        ]

    def get_carrier(self, carrier_id):
        try:
            carrier = Carrier.objects.prefetch_related("vehicles", "drivers").get(
                pk=carrier_id
            )
        except Carrier.DoesNotExist:
            raise ObjectNotFound("Carrier", carrier_id) from None
        return CarrierCapability.from_model(carrier)
