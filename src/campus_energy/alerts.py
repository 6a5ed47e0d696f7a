"""Threshold checks on single readings."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Final, List, Optional

from campus_energy.models import Reading, format_timestamp
from campus_energy.registry import BuildingType

ALERT_TYPE: Final[str] = "EnergyConsumptionAlert"

ENERGY_THRESHOLDS: Final[Dict[str, float]] = {
    BuildingType.ACADEMIC.value:       200,
    BuildingType.RESIDENTIAL.value:    150,
    BuildingType.LABORATORY.value:     300,
    BuildingType.ADMINISTRATIVE.value: 180,
}
DEFAULT_ENERGY_THRESHOLD: Final[float] = ENERGY_THRESHOLDS[BuildingType.ACADEMIC.value]

TEMP_MIN_F: Final[float] = 65
TEMP_MAX_F: Final[float] = 78


@dataclass
class AlertEvent:
    building_id: str
    timestamp: datetime
    alerts: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "building_id": self.building_id,
            "timestamp": format_timestamp(self.timestamp),
            "alerts": list(self.alerts),
        }


def _fmt(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else str(value)


def energy_threshold(building_type: Optional[str]) -> float:
    return ENERGY_THRESHOLDS.get(building_type or "", DEFAULT_ENERGY_THRESHOLD)


def evaluate_reading(reading: Reading, building_type: Optional[str] = None) -> List[str]:
    """Violation messages for a reading; an empty list means no alert."""
    messages: List[str] = []

    threshold = energy_threshold(building_type or reading.building_type)
    if reading.energy_kwh > threshold:
        messages.append(
            f"High energy consumption: {_fmt(reading.energy_kwh)} kWh (threshold: {_fmt(threshold)} kWh)"
        )

    if reading.temperature < TEMP_MIN_F:
        messages.append(f"Low temperature: {_fmt(reading.temperature)}°F (minimum: {_fmt(TEMP_MIN_F)}°F)")
    elif reading.temperature > TEMP_MAX_F:
        messages.append(f"High temperature: {_fmt(reading.temperature)}°F (maximum: {_fmt(TEMP_MAX_F)}°F)")

    return messages


def check_reading(reading: Reading) -> Optional[AlertEvent]:
    messages = evaluate_reading(reading)
    if not messages:
        return None
    return AlertEvent(building_id=reading.building_id, timestamp=reading.timestamp, alerts=messages)


def build_alert_payload(
    event: AlertEvent,
    reading: Reading,
    dashboard_url: str,
    now: Optional[datetime] = None,
) -> dict:
    """Message body forwarded to the alert topic."""
    now = now or datetime.now(timezone.utc)
    return {
        "alert_type": ALERT_TYPE,
        "timestamp": format_timestamp(now),
        "building": {
            "id": reading.building_id,
            "name": reading.building_name,
            "type": reading.building_type,
        },
        "reading": {
            "timestamp": format_timestamp(reading.timestamp),
            "energy_kwh": reading.energy_kwh,
            "temperature": reading.temperature,
            "occupancy": reading.occupancy,
            "cost": reading.cost,
        },
        "alerts": list(event.alerts),
        "dashboard_link": dashboard_url,
    }
