"""
Reading store on InfluxDB
=========================
Measurement ``energy_reading``: tags ``building_id``, ``building_type``,
``building_name``; fields ``energy_kwh``, ``temperature``, ``occupancy``,
``cost``, ``ttl``. Bucket retention does the actual expiry; ``ttl`` travels
with the reading as a marker.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Final, List, Optional

from influxdb_client import InfluxDBClient, Point, WritePrecision
from influxdb_client.client.write_api import SYNCHRONOUS

from campus_energy import config
from campus_energy.models import Reading, format_timestamp, parse_timestamp

log = logging.getLogger(__name__)

MEASUREMENT: Final[str] = "energy_reading"
CURRENT_SCAN_LIMIT: Final[int] = 20    # enough to hold the latest tick of every building


def _flux_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def reading_to_point(reading: Reading) -> Point:
    point = (
        Point(MEASUREMENT)
        .tag("building_id", reading.building_id)
        .tag("building_type", reading.building_type)
        .tag("building_name", reading.building_name)
        .field("energy_kwh", float(reading.energy_kwh))
        .field("temperature", float(reading.temperature))
        .field("occupancy", int(reading.occupancy))
        .field("cost", float(reading.cost))
        .time(reading.timestamp, WritePrecision.S)
    )
    if reading.ttl is not None:
        point = point.field("ttl", int(reading.ttl))
    return point


def record_to_reading(record) -> Reading:
    """Build a Reading from a pivoted Flux record."""
    values = record.values
    ttl = values.get("ttl")
    return Reading(
        building_id=values["building_id"],
        timestamp=parse_timestamp(record.get_time()),
        building_name=values.get("building_name") or "",
        building_type=values.get("building_type") or "",
        energy_kwh=float(values.get("energy_kwh") or 0.0),
        temperature=float(values.get("temperature") or 0.0),
        occupancy=int(values.get("occupancy") or 0),
        cost=float(values.get("cost") or 0.0),
        ttl=int(ttl) if ttl is not None else None,
    )


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time(0, 0), tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


class ReadingStore:
    def __init__(self, client: InfluxDBClient, bucket: str, org: str,
                 lookback_days: int = config.RETENTION_DAYS) -> None:
        self._client = client
        self._bucket = bucket
        self._org = org
        self._lookback = f"-{lookback_days}d"
        self._write_api = client.write_api(write_options=SYNCHRONOUS)
        self._query_api = client.query_api()

    @classmethod
    def from_env(cls) -> "ReadingStore":
        client = InfluxDBClient(url=config.INFLUX_URL, token=config.INFLUX_TOKEN, org=config.INFLUX_ORG)
        return cls(client, config.INFLUX_BUCKET, config.INFLUX_ORG)

    @property
    def client(self) -> InfluxDBClient:
        return self._client

    def close(self) -> None:
        self._client.close()

    # ── writes ──────────────────────────────────
    def write(self, reading: Reading) -> None:
        self._write_api.write(bucket=self._bucket, org=self._org, record=reading_to_point(reading))

    def write_many(self, readings: List[Reading]) -> None:
        points = [reading_to_point(r) for r in readings]
        self._write_api.write(bucket=self._bucket, org=self._org, record=points)

    # ── queries ─────────────────────────────────
    def _pivoted(self, start: str, stop: Optional[str] = None, building_id: Optional[str] = None) -> str:
        window = f"start: {start}" + (f", stop: {stop}" if stop else "")
        flux = f'''
        from(bucket: {_flux_string(self._bucket)})
            |> range({window})
            |> filter(fn: (r) => r["_measurement"] == "{MEASUREMENT}")'''
        if building_id:
            flux += f'''
            |> filter(fn: (r) => r["building_id"] == {_flux_string(building_id)})'''
        flux += '''
            |> pivot(rowKey: ["_time"], columnKey: ["_field"], valueColumn: "_value")
            |> group()'''
        return flux

    def _run(self, flux: str) -> List[Reading]:
        tables = self._query_api.query(flux, org=self._org)
        return [record_to_reading(rec) for table in tables for rec in table.records]

    def recent(self, limit: int = 50) -> List[Reading]:
        """Most recent readings across all buildings, newest first."""
        flux = self._pivoted(self._lookback) + f'''
            |> sort(columns: ["_time"], desc: true)
            |> limit(n: {int(limit)})'''
        return self._run(flux)

    def building_recent(self, building_id: str, limit: int = 12) -> List[Reading]:
        flux = self._pivoted(self._lookback, building_id=building_id) + f'''
            |> sort(columns: ["_time"], desc: true)
            |> limit(n: {int(limit)})'''
        return self._run(flux)

    def between(self, start: datetime, stop: datetime, building_id: Optional[str] = None) -> List[Reading]:
        """Readings in ``[start, stop)``, oldest first."""
        flux = self._pivoted(format_timestamp(start), format_timestamp(stop), building_id) + '''
            |> sort(columns: ["_time"])'''
        return self._run(flux)

    def for_day(self, day: date, building_id: Optional[str] = None) -> List[Reading]:
        start, stop = day_bounds(day)
        return self.between(start, stop, building_id)

    def building_ids(self) -> List[str]:
        flux = f'''
        import "influxdata/influxdb/schema"
        schema.tagValues(bucket: {_flux_string(self._bucket)}, tag: "building_id", start: {self._lookback})'''
        tables = self._query_api.query(flux, org=self._org)
        return sorted({rec.get_value() for table in tables for rec in table.records})
