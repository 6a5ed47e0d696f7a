"""Operational metrics written to InfluxDB (measurement ``campus_metrics``).

Emission raises on failure; callers wrap it with ``best_effort``.
"""

from datetime import datetime, timezone
from typing import Final, Optional

from influxdb_client import InfluxDBClient, Point, WritePrecision
from influxdb_client.client.write_api import SYNCHRONOUS

from campus_energy import config
from campus_energy.models import Reading

MEASUREMENT: Final[str] = "campus_metrics"


def metric_point(name: str, value: float, building_id: str,
                 building_type: Optional[str] = None,
                 ts: Optional[datetime] = None) -> Point:
    point = Point(MEASUREMENT).tag("metric", name).tag("building_id", building_id)
    if building_type:
        point = point.tag("building_type", building_type)
    return point.field("value", float(value)).time(ts or datetime.now(timezone.utc), WritePrecision.S)


class MetricsEmitter:
    def __init__(self, write_api, bucket: str, org: str) -> None:
        self._write_api = write_api
        self._bucket = bucket
        self._org = org

    @classmethod
    def from_client(cls, client: InfluxDBClient) -> "MetricsEmitter":
        return cls(client.write_api(write_options=SYNCHRONOUS), config.INFLUX_BUCKET, config.INFLUX_ORG)

    def _write(self, *points: Point) -> None:
        self._write_api.write(bucket=self._bucket, org=self._org, record=list(points))

    def reading_metrics(self, reading: Reading) -> None:
        self._write(
            metric_point("EnergyConsumption", reading.energy_kwh, reading.building_id, reading.building_type, reading.timestamp),
            metric_point("Temperature", reading.temperature, reading.building_id, ts=reading.timestamp),
            metric_point("Occupancy", reading.occupancy, reading.building_id, ts=reading.timestamp),
        )

    def alert_metric(self, building_id: str, building_type: str) -> None:
        self._write(metric_point("EnergyAlerts", 1, building_id, building_type))
