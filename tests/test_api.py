from datetime import date, datetime, timezone

import pytest
from fastapi.testclient import TestClient

from campus_energy.api import app, get_archive, get_backfill, get_clock, get_store
from campus_energy.archiver import archive_day, building_key
from campus_energy.backfill import BackfillStrategy

from conftest import FakeArchive, FakeStore, day_of_readings, make_reading

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
DAY = date(2025, 3, 9)


class FlatBackfill(BackfillStrategy):
    def hourly_energy(self, latest, hour):
        return 50.0

    def daily_energy(self, day):
        return 1000.0


@pytest.fixture
def fake_store():
    return FakeStore([
        make_reading("lab-01", "2025-03-10T11:55:00Z", energy=210.0),
        make_reading("lab-01", "2025-03-10T11:50:00Z", energy=200.0),
        make_reading("admin-01", "2025-03-10T11:55:00Z", energy=90.0, building_type="administrative"),
    ] + day_of_readings(DAY, "lab-01", "laboratory", [100.0, 110.0]))


@pytest.fixture
def fake_archive():
    return FakeArchive()


@pytest.fixture
def client(fake_store, fake_archive):
    app.dependency_overrides[get_store] = lambda: fake_store
    app.dependency_overrides[get_archive] = lambda: fake_archive
    app.dependency_overrides[get_backfill] = lambda: FlatBackfill()
    app.dependency_overrides[get_clock] = lambda: (lambda: NOW)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "version": "1.0.0"}


def test_current(client):
    res = client.get("/api", params={"action": "current"})

    assert res.status_code == 200
    body = res.json()
    assert body["timestamp"] == "2025-03-10T12:00:00Z"
    assert body["summary"]["building_count"] == 2
    assert body["summary"]["total_energy_kwh"] == 300.0


def test_default_action_is_current(client):
    assert client.get("/api").json()["summary"]["building_count"] == 2


def test_invalid_action(client):
    res = client.get("/api", params={"action": "delete"})
    assert res.status_code == 400
    assert res.json() == {"message": "Invalid action specified"}


def test_building_requires_id(client):
    res = client.get("/api", params={"action": "building"})
    assert res.status_code == 400
    assert "building_id" in res.json()["message"]


def test_building_id_is_read_from_camel_case_param(client):
    assert client.get("/api", params={"action": "building", "buildingId": "lab-01"}).status_code == 200
    assert client.get("/api", params={"action": "building", "building_id": "lab-01"}).status_code == 400


def test_building_detail(client):
    res = client.get("/api", params={"action": "building", "buildingId": "lab-01"})

    assert res.status_code == 200
    body = res.json()
    assert body["latest"]["energy_kwh"] == 210.0
    assert len(body["readings"]) == 4


def test_unknown_building_has_no_data(client):
    res = client.get("/api", params={"action": "building", "buildingId": "nope-01"})
    assert res.status_code == 200
    assert res.json() == {"message": "No data found for specified building"}


@pytest.mark.parametrize("params", [{}, {"date": "09/03/2025"}])
def test_historical_requires_valid_date(client, params):
    res = client.get("/api", params={"action": "historical", **params})
    assert res.status_code == 400


def test_historical_falls_back_to_store(client):
    res = client.get("/api", params={"action": "historical", "date": "2025-03-09"})

    body = res.json()
    assert body["source"] == "store"
    assert [r["energy_kwh"] for r in body["readings"]] == [100.0, 110.0]


def test_historical_reads_archive(client, fake_store, fake_archive):
    archive_day(DAY, fake_store, fake_archive, building_ids=["lab-01"], now=NOW, delay=0)
    fake_store.readings.clear()

    res = client.get("/api", params={"action": "historical", "date": "2025-03-09", "buildingId": "lab-01"})

    body = res.json()
    assert body["source"] == "archive"
    assert body["readings"] == fake_archive.get(building_key(DAY, "lab-01"))["readings"]


def test_historical_other_building_not_archived(client, fake_store, fake_archive):
    archive_day(DAY, fake_store, fake_archive, building_ids=["lab-01"], now=NOW, delay=0)

    body = client.get("/api", params={"action": "historical", "date": "2025-03-09",
                                      "buildingId": "admin-01"}).json()
    assert body["source"] == "store"
    assert body["readings"] == []


@pytest.mark.parametrize("period,bucket_key,count", [("day", "hourly_data", 13), ("week", "daily_data", 7),
                                                     ("month", "daily_data", 10)])
def test_summary_periods(client, period, bucket_key, count):
    body = client.get("/api", params={"action": "summary", "period": period}).json()

    assert body["period"] == period
    assert len(body["summary"][bucket_key]) == count
    assert body["current"]["building_count"] == 2


def test_summary_invalid_period(client):
    body = client.get("/api", params={"action": "summary", "period": "decade"}).json()
    assert body["summary"] == {"message": "Invalid period specified"}


def test_store_failure_is_500(client, fake_store):
    fake_store.broken = True

    res = client.get("/api", params={"action": "current"})

    assert res.status_code == 500
    assert res.json() == {"message": "Error processing request", "error": "store unavailable"}
