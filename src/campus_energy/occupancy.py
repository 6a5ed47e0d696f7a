"""Occupancy schedules per building type.

Every schedule is a list of ``(upper_hour_exclusive, fraction)`` bands
followed by the fraction used from the last band edge until midnight.
"""

from datetime import date
from typing import Dict, Final, List, Tuple

from campus_energy.registry import BuildingType

Schedule = Tuple[List[Tuple[int, float]], float]

DEFAULT_OCCUPANCY: Final[float] = 0.2

WEEKDAY_SCHEDULES: Final[Dict[str, Schedule]] = {
    BuildingType.ACADEMIC.value:       ([(7, 0.05), (9, 0.3), (16, 0.85), (20, 0.4)], 0.1),
    BuildingType.RESIDENTIAL.value:    ([(7, 0.8),  (9, 0.5), (16, 0.2),  (20, 0.6)], 0.75),
    BuildingType.LABORATORY.value:     ([(7, 0.1),  (9, 0.4), (18, 0.7),  (22, 0.3)], 0.1),
    BuildingType.ADMINISTRATIVE.value: ([(7, 0.05), (9, 0.5), (17, 0.9),  (19, 0.3)], 0.05),
}

WEEKEND_SCHEDULES: Final[Dict[str, Schedule]] = {
    BuildingType.RESIDENTIAL.value: ([(8, 0.7),  (12, 0.4), (17, 0.3), (22, 0.5)], 0.6),
    BuildingType.LABORATORY.value:  ([(8, 0.05), (18, 0.2)], 0.05),
}

# Weekend schedule for every other type, unknown ones included.
WEEKEND_DEFAULT: Final[Schedule] = ([(8, 0.0), (18, 0.1)], 0.0)


def is_weekend(dow: int) -> bool:
    return dow in (0, 6)


def day_of_week(instant: date) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (instant.weekday() + 1) % 7


def _lookup(schedule: Schedule, hour: int) -> float:
    bands, late = schedule
    for upper, fraction in bands:
        if hour < upper:
            return fraction
    return late


def occupancy_fraction(hour: int, dow: int, building_type: str) -> float:
    """Modeled share of capacity in use for an hour of a given weekday."""
    if not 0 <= hour <= 23:
        raise ValueError(f"hour out of range: {hour}")
    if not 0 <= dow <= 6:
        raise ValueError(f"day of week out of range: {dow}")

    if is_weekend(dow):
        return _lookup(WEEKEND_SCHEDULES.get(building_type, WEEKEND_DEFAULT), hour)

    schedule = WEEKDAY_SCHEDULES.get(building_type)
    if schedule is None:
        return DEFAULT_OCCUPANCY
    return _lookup(schedule, hour)
