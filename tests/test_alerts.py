from datetime import datetime, timezone

import pytest

from campus_energy.alerts import (
    ALERT_TYPE,
    build_alert_payload,
    check_reading,
    energy_threshold,
    evaluate_reading,
)

from conftest import make_reading


def test_residential_threshold_is_exclusive():
    assert evaluate_reading(make_reading("residential-01", energy=150.0, building_type="residential")) == []
    messages = evaluate_reading(make_reading("residential-01", energy=150.01, building_type="residential"))
    assert messages == ["High energy consumption: 150.01 kWh (threshold: 150 kWh)"]


@pytest.mark.parametrize("temperature,expected", [
    (65.0, []),
    (64.9, ["Low temperature: 64.9°F (minimum: 65°F)"]),
    (78.0, []),
    (78.1, ["High temperature: 78.1°F (maximum: 78°F)"]),
])
def test_temperature_band(temperature, expected):
    assert evaluate_reading(make_reading(energy=10.0, temperature=temperature)) == expected


def test_energy_and_temperature_reported_together():
    reading = make_reading("academic-01", energy=250.5, temperature=80.2, building_type="academic")
    assert evaluate_reading(reading) == [
        "High energy consumption: 250.5 kWh (threshold: 200 kWh)",
        "High temperature: 80.2°F (maximum: 78°F)",
    ]


def test_unknown_type_falls_back_to_default_threshold():
    assert energy_threshold("gymnasium") == 200
    assert energy_threshold(None) == 200
    assert evaluate_reading(make_reading(energy=199.0, building_type="gymnasium")) == []


def test_explicit_type_overrides_reading_type():
    reading = make_reading(energy=250.0, building_type="laboratory")
    assert evaluate_reading(reading) == []
    assert len(evaluate_reading(reading, building_type="academic")) == 1


def test_check_reading_returns_event_only_on_violation():
    assert check_reading(make_reading(energy=10.0)) is None
    event = check_reading(make_reading(energy=301.0))
    assert event.building_id == "lab-01"
    assert event.to_dict()["timestamp"] == "2025-03-03T10:00:00Z"


def test_alert_payload_shape():
    reading = make_reading(energy=301.0, temperature=70.0, occupancy=84)
    event = check_reading(reading)
    now = datetime(2025, 3, 3, 10, 1, tzinfo=timezone.utc)

    payload = build_alert_payload(event, reading, "https://dash.example", now)

    assert payload["alert_type"] == ALERT_TYPE
    assert payload["timestamp"] == "2025-03-03T10:01:00Z"
    assert payload["building"] == {"id": "lab-01", "name": "Chemistry Research Center", "type": "laboratory"}
    assert payload["reading"]["energy_kwh"] == 301.0
    assert payload["reading"]["timestamp"] == "2025-03-03T10:00:00Z"
    assert payload["alerts"] == event.alerts
    assert payload["dashboard_link"] == "https://dash.example"
