from datetime import datetime, timedelta, timezone

from campus_energy.models import Reading, format_timestamp, parse_timestamp
from campus_energy.side_effects import SideEffectFailures, best_effort


def test_reading_dict_round_trip():
    data = {
        "building_id": "admin-01",
        "timestamp": "2025-03-04T10:00:00Z",
        "building_name": "Student Union Building",
        "building_type": "administrative",
        "energy_kwh": 141.7,
        "temperature": 71.2,
        "occupancy": 720,
        "cost": 17.0,
    }
    reading = Reading.from_dict(data)
    assert reading.timestamp == datetime(2025, 3, 4, 10, tzinfo=timezone.utc)
    assert reading.to_dict() == data


def test_ttl_only_serialized_when_set():
    data = Reading.from_dict({
        "building_id": "lab-01", "timestamp": "2025-03-04T10:00:00Z",
        "energy_kwh": 1, "temperature": 70, "occupancy": 1, "cost": 0.12, "ttl": 1743674400,
    }).to_dict()
    assert data["ttl"] == 1743674400


def test_parse_timestamp_normalizes_to_utc_seconds():
    assert parse_timestamp("2025-03-04T10:00:00.123456Z") == datetime(2025, 3, 4, 10, tzinfo=timezone.utc)
    assert parse_timestamp(datetime(2025, 3, 4, 10)) == datetime(2025, 3, 4, 10, tzinfo=timezone.utc)
    offset = datetime(2025, 3, 4, 12, tzinfo=timezone(timedelta(hours=2)))
    assert format_timestamp(parse_timestamp(offset)) == "2025-03-04T10:00:00Z"


def test_best_effort_swallows_and_records():
    failures = SideEffectFailures(maxlen=2)

    def boom():
        raise RuntimeError("nope")

    assert best_effort("ok", lambda x: x * 2, 21, failures=failures) == 42
    for _ in range(3):
        assert best_effort("boom", boom, failures=failures) is None

    assert len(failures) == 2
    assert failures.entries()[0]["error"] == "RuntimeError: nope"
    assert failures.entries()[0]["label"] == "boom"
