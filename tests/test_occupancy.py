from datetime import date

import pytest

from campus_energy.occupancy import DEFAULT_OCCUPANCY, day_of_week, is_weekend, occupancy_fraction
from campus_energy.registry import BuildingType

TYPES = [t.value for t in BuildingType]


def test_fraction_in_unit_interval_everywhere():
    for building_type in TYPES + ["gymnasium"]:
        for dow in range(7):
            for hour in range(24):
                value = occupancy_fraction(hour, dow, building_type)
                assert 0.0 <= value <= 1.0
                assert value == occupancy_fraction(hour, dow, building_type)


@pytest.mark.parametrize("hour,expected", [
    (0, 0.05), (6, 0.05), (7, 0.3), (8, 0.3), (9, 0.85), (15, 0.85),
    (16, 0.4), (19, 0.4), (20, 0.1), (23, 0.1),
])
def test_academic_weekday_band_edges(hour, expected):
    assert occupancy_fraction(hour, 2, "academic") == expected


@pytest.mark.parametrize("building_type,hour,expected", [
    ("residential", 6, 0.8), ("residential", 12, 0.2), ("residential", 21, 0.75),
    ("laboratory", 10, 0.7), ("laboratory", 17, 0.7), ("laboratory", 18, 0.3), ("laboratory", 22, 0.1),
    ("administrative", 8, 0.5), ("administrative", 16, 0.9), ("administrative", 17, 0.3),
    ("administrative", 19, 0.05),
])
def test_weekday_schedules(building_type, hour, expected):
    assert occupancy_fraction(hour, 1, building_type) == expected


@pytest.mark.parametrize("building_type,hour,expected", [
    ("residential", 3, 0.7), ("residential", 11, 0.4), ("residential", 16, 0.3),
    ("residential", 21, 0.5), ("residential", 22, 0.6),
    ("laboratory", 7, 0.05), ("laboratory", 8, 0.2), ("laboratory", 18, 0.05),
    ("academic", 7, 0.0), ("academic", 10, 0.1), ("academic", 18, 0.0),
    ("administrative", 12, 0.1),
])
def test_weekend_schedules(building_type, hour, expected):
    assert occupancy_fraction(hour, 0, building_type) == expected
    assert occupancy_fraction(hour, 6, building_type) == expected


def test_unknown_type_uses_default_on_weekdays():
    assert occupancy_fraction(12, 3, "gymnasium") == DEFAULT_OCCUPANCY
    assert occupancy_fraction(12, 6, "gymnasium") == 0.1


@pytest.mark.parametrize("hour,dow", [(-1, 1), (24, 1), (10, 7), (10, -1)])
def test_out_of_range_inputs_rejected(hour, dow):
    with pytest.raises(ValueError):
        occupancy_fraction(hour, dow, "academic")


def test_day_of_week_starts_on_sunday():
    assert day_of_week(date(2025, 3, 1)) == 6   # Saturday
    assert day_of_week(date(2025, 3, 2)) == 0   # Sunday
    assert day_of_week(date(2025, 3, 3)) == 1   # Monday
    assert is_weekend(0) and is_weekend(6) and not is_weekend(3)
