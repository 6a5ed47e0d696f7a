import random
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from campus_energy.influx_store import day_bounds
from campus_energy.models import Reading, parse_timestamp
from campus_energy.notifier import PublishError


def make_reading(
    building_id: str = "lab-01",
    ts="2025-03-03T10:00:00Z",
    energy: float = 100.0,
    temperature: float = 70.0,
    occupancy: int = 10,
    building_type: str = "laboratory",
    building_name: str = "Chemistry Research Center",
    cost: Optional[float] = None,
) -> Reading:
    return Reading(
        building_id=building_id,
        timestamp=parse_timestamp(ts),
        building_name=building_name,
        building_type=building_type,
        energy_kwh=energy,
        temperature=temperature,
        occupancy=occupancy,
        cost=round(energy * 0.12, 2) if cost is None else cost,
    )


class MidpointRandom(random.Random):
    """uniform() always returns the middle of the range: no noise."""

    def uniform(self, a, b):
        return (a + b) / 2


class FakeStore:
    def __init__(self, readings: Optional[List[Reading]] = None) -> None:
        self.readings: List[Reading] = list(readings or [])
        self.fail_writes = set()
        self.fail_queries = set()
        self.transient_failures: Dict[str, int] = {}
        self.broken = False

    def _check(self, building_id: Optional[str]) -> None:
        if self.broken:
            raise ConnectionError("store unavailable")
        if building_id in self.fail_queries:
            raise TimeoutError(f"query timeout for {building_id}")
        if self.transient_failures.get(building_id, 0) > 0:
            self.transient_failures[building_id] -= 1
            raise TimeoutError(f"throttled {building_id}")

    def write(self, reading: Reading) -> None:
        if reading.building_id in self.fail_writes:
            raise ConnectionError(f"write failed for {reading.building_id}")
        self.readings.append(reading)

    def write_many(self, readings: List[Reading]) -> None:
        for r in readings:
            self.write(r)

    def recent(self, limit: int = 50) -> List[Reading]:
        self._check(None)
        return sorted(self.readings, key=lambda r: r.timestamp, reverse=True)[:limit]

    def building_recent(self, building_id: str, limit: int = 12) -> List[Reading]:
        self._check(building_id)
        mine = [r for r in self.readings if r.building_id == building_id]
        return sorted(mine, key=lambda r: r.timestamp, reverse=True)[:limit]

    def between(self, start: datetime, stop: datetime, building_id: Optional[str] = None) -> List[Reading]:
        self._check(building_id)
        found = [
            r for r in self.readings
            if start <= r.timestamp < stop and (building_id is None or r.building_id == building_id)
        ]
        return sorted(found, key=lambda r: r.timestamp)

    def for_day(self, day: date, building_id: Optional[str] = None) -> List[Reading]:
        start, stop = day_bounds(day)
        return self.between(start, stop, building_id)

    def building_ids(self) -> List[str]:
        self._check(None)
        return sorted({r.building_id for r in self.readings})


class FakeArchive:
    def __init__(self) -> None:
        self.objects: Dict[str, dict] = {}

    def put(self, key: str, body: dict) -> bool:
        if key in self.objects:
            return False
        self.objects[key] = body
        return True

    def get(self, key: str) -> Optional[dict]:
        return self.objects.get(key)

    def list(self, prefix: str) -> List[str]:
        return sorted(k for k in self.objects if k.startswith(prefix))


class FakePublisher:
    def __init__(self, fail: bool = False) -> None:
        self.messages = []
        self.fail = fail

    def publish(self, topic: str, payload: dict, retain: bool = False) -> None:
        if self.fail:
            raise PublishError(f"publish to {topic} failed (rc=4)")
        self.messages.append((topic, payload))


class FakeHistory:
    def __init__(self, fail: bool = False) -> None:
        self.records = []
        self.fail = fail

    def record(self, payload: dict) -> None:
        if self.fail:
            raise ConnectionError("postgres down")
        self.records.append(payload)


class FakeMetrics:
    def __init__(self, fail: bool = False) -> None:
        self.calls = []
        self.fail = fail

    def reading_metrics(self, reading: Reading) -> None:
        if self.fail:
            raise ConnectionError("metrics endpoint down")
        self.calls.append(("reading", reading.building_id))

    def alert_metric(self, building_id: str, building_type: str) -> None:
        if self.fail:
            raise ConnectionError("metrics endpoint down")
        self.calls.append(("alert", building_id))


def day_of_readings(day: date, building_id: str, building_type: str, energies: List[float]) -> List[Reading]:
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return [
        make_reading(building_id, start + timedelta(hours=i), energy=e, building_type=building_type,
                     building_name=building_id.title(), temperature=70.0 + i, occupancy=10 * (i + 1))
        for i, e in enumerate(energies)
    ]


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def archive():
    return FakeArchive()


@pytest.fixture
def publisher():
    return FakePublisher()
