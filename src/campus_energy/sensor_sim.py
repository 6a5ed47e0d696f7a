"""
Campus Energy Simulator
=======================
Synthetic building readings driven by occupancy schedules, time-of-day
load factors and building size, with bounded uniform noise.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import Final, Iterable, List, Optional

from campus_energy.models import Reading, parse_timestamp
from campus_energy.occupancy import day_of_week, is_weekend, occupancy_fraction
from campus_energy.registry import BuildingProfile

ENERGY_RATE:        Final[float] = 0.12   # currency per kWh
KWH_PER_OCCUPANT:   Final[float] = 0.1
BASE_TEMP_RANGE:    Final[tuple] = (68.0, 74.0)
OCCUPANCY_TEMP_F:   Final[float] = 2.0
NOISE_RANGE:        Final[tuple] = (0.95, 1.05)


# ──────────────────────────────────────────────
# Load factors
# ──────────────────────────────────────────────
def time_of_day_multiplier(hour: int, weekend: bool, peak_multiplier: float) -> float:
    if 8 <= hour <= 17:
        return 1.2 if weekend else peak_multiplier
    if 18 <= hour <= 22:
        return 1.1 if weekend else 1.5
    return 1.0


def floor_factor(floors: int) -> float:
    return 0.8 + floors * 0.05


def cost_for(energy_kwh: float) -> float:
    return round(energy_kwh * ENERGY_RATE, 2)


def expected_energy(building: BuildingProfile, instant: datetime) -> float:
    """Energy for ``instant`` before noise and rounding."""
    instant = parse_timestamp(instant)
    dow = day_of_week(instant)
    fraction = occupancy_fraction(instant.hour, dow, building.type)
    energy = building.base_load + building.capacity * fraction * KWH_PER_OCCUPANT
    energy *= time_of_day_multiplier(instant.hour, is_weekend(dow), building.peak_multiplier)
    return energy * floor_factor(building.floors)


def ttl_for(instant: datetime, retention_days: int) -> int:
    return int((parse_timestamp(instant) + timedelta(days=retention_days)).timestamp())


# ──────────────────────────────────────────────
# Reading generator
# ──────────────────────────────────────────────
def simulate_reading(
    building: BuildingProfile,
    instant: datetime,
    rng: Optional[random.Random] = None,
    ttl: Optional[int] = None,
) -> Reading:
    rng = rng or random.Random()
    instant = parse_timestamp(instant)
    dow = day_of_week(instant)
    fraction = occupancy_fraction(instant.hour, dow, building.type)

    base_temp = rng.uniform(*BASE_TEMP_RANGE)
    temperature = round(base_temp + fraction * OCCUPANCY_TEMP_F, 1)
    occupancy = round(building.capacity * fraction)

    energy = expected_energy(building, instant) * rng.uniform(*NOISE_RANGE)
    energy_kwh = max(0.0, round(energy, 2))

    return Reading(
        building_id=building.id,
        timestamp=instant,
        building_name=building.name,
        building_type=building.type,
        energy_kwh=energy_kwh,
        temperature=temperature,
        occupancy=occupancy,
        cost=cost_for(energy_kwh),
        ttl=ttl,
    )


def simulate_campus(
    buildings: Iterable[BuildingProfile],
    instant: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> List[Reading]:
    """One reading per building for the same tick."""
    instant = instant or datetime.now(timezone.utc)
    rng = rng or random.Random()
    return [simulate_reading(b, instant, rng) for b in buildings]
