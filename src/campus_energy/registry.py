"""
Building Registry
=================
Static catalog of the campus buildings the simulator reports on.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Final, List, Optional


class BuildingType(str, Enum):
    ACADEMIC        = "academic"
    RESIDENTIAL     = "residential"
    LABORATORY      = "laboratory"
    ADMINISTRATIVE  = "administrative"


@dataclass(frozen=True)
class BuildingProfile:
    id: str
    name: str
    type: str                   # BuildingType value; other strings fall back to defaults
    capacity: int               # people
    floors: int
    base_load: float            # kW always drawn
    peak_multiplier: float      # weekday daytime factor

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("building id must not be empty")
        if self.capacity <= 0:
            raise ValueError(f"{self.id}: capacity must be positive")
        if self.floors <= 0:
            raise ValueError(f"{self.id}: floors must be positive")
        if self.base_load <= 0:
            raise ValueError(f"{self.id}: base_load must be positive")
        if self.peak_multiplier < 1:
            raise ValueError(f"{self.id}: peak_multiplier must be >= 1")

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "type": self.type}


BUILDINGS: Final[List[BuildingProfile]] = [
    BuildingProfile("academic-01",    "Rowe Building",                      BuildingType.ACADEMIC.value,       2500, 5, 75.0,  3.5),
    BuildingProfile("academic-02",    "Goldberg Computer Science Building", BuildingType.ACADEMIC.value,       1800, 4, 120.0, 2.8),
    BuildingProfile("residential-01", "Howe Hall",                          BuildingType.RESIDENTIAL.value,    350,  6, 45.0,  2.2),
    BuildingProfile("lab-01",         "Chemistry Research Center",          BuildingType.LABORATORY.value,     120,  3, 200.0, 1.8),
    BuildingProfile("admin-01",       "Student Union Building",             BuildingType.ADMINISTRATIVE.value, 800,  3, 60.0,  2.5),
]

_BY_ID: Final[Dict[str, BuildingProfile]] = {b.id: b for b in BUILDINGS}


def get_building(building_id: str) -> Optional[BuildingProfile]:
    return _BY_ID.get(building_id)
