from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_timestamp(instant: datetime) -> str:
    """ISO-8601 in UTC with second precision, e.g. ``2025-03-04T10:00:00Z``."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value) -> datetime:
    """Accepts datetimes and ISO strings (``Z`` suffix or offset); naive means UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).replace(microsecond=0)


@dataclass(frozen=True)
class Reading:
    building_id: str
    timestamp: datetime
    building_name: str
    building_type: str
    energy_kwh: float
    temperature: float          # °F
    occupancy: int              # people
    cost: float
    ttl: Optional[int] = None   # unix seconds; expiry marker for the store

    def to_dict(self) -> dict:
        data = {
            "building_id": self.building_id,
            "timestamp": format_timestamp(self.timestamp),
            "building_name": self.building_name,
            "building_type": self.building_type,
            "energy_kwh": self.energy_kwh,
            "temperature": self.temperature,
            "occupancy": self.occupancy,
            "cost": self.cost,
        }
        if self.ttl is not None:
            data["ttl"] = self.ttl
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Reading":
        ttl = data.get("ttl")
        return cls(
            building_id=str(data["building_id"]),
            timestamp=parse_timestamp(data["timestamp"]),
            building_name=str(data.get("building_name", "")),
            building_type=str(data.get("building_type", "")),
            energy_kwh=float(data["energy_kwh"]),
            temperature=float(data["temperature"]),
            occupancy=int(data["occupancy"]),
            cost=float(data["cost"]),
            ttl=int(ttl) if ttl is not None else None,
        )
