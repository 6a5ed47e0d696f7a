"""
Bucket reconstruction for charts
================================
Summaries need one value per hour or day, but only recent readings are
queried. A ``BackfillStrategy`` fills those buckets. ``SyntheticBackfill``
draws a plausible curve from load factors and noise; its output is not
measured history and must not be reported as such.
"""

import random
from abc import ABC, abstractmethod
from datetime import date
from typing import Final, Optional, Sequence

from campus_energy.models import Reading
from campus_energy.occupancy import day_of_week, is_weekend
from campus_energy.registry import BuildingType

WEEKDAY_DAILY_KWH: Final[float] = 2200.0
WEEKEND_DAILY_KWH: Final[float] = 1200.0
BUCKET_NOISE:      Final[tuple] = (0.9, 1.1)


def hour_band_factor(hour: int) -> float:
    """Campus-wide load shape used to spread energy across a day."""
    if hour < 8:
        return 0.6
    if hour < 12:
        return 1.2
    if hour < 17:
        return 1.5
    if hour < 22:
        return 0.9
    return 0.5


def building_type_factor(building_type: str, hour: int) -> float:
    if building_type == BuildingType.ACADEMIC.value:
        return 1.3 if 8 <= hour <= 17 else 0.5
    if building_type == BuildingType.RESIDENTIAL.value:
        return 1.4 if hour >= 17 or hour <= 8 else 0.7
    return 1.0


class BackfillStrategy(ABC):
    """Produces bucket values when no per-bucket history is available."""

    @abstractmethod
    def hourly_energy(self, latest: Sequence[Reading], hour: int) -> float:
        ...

    @abstractmethod
    def daily_energy(self, day: date) -> float:
        ...


class SyntheticBackfill(BackfillStrategy):
    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def _noise(self) -> float:
        return self._rng.uniform(*BUCKET_NOISE)

    def hourly_energy(self, latest: Sequence[Reading], hour: int) -> float:
        total = 0.0
        for reading in latest:
            factor = hour_band_factor(hour) * building_type_factor(reading.building_type, hour)
            total += reading.energy_kwh * factor * self._noise()
        return total

    def daily_energy(self, day: date) -> float:
        base = WEEKEND_DAILY_KWH if is_weekend(day_of_week(day)) else WEEKDAY_DAILY_KWH
        return base * self._noise()
