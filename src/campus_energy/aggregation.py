"""
Aggregation Engine
==================
Pure reductions over reading snapshots: current totals, per-building
windows and archive metrics, hourly/daily/monthly buckets and the daily
archive roll-up. Nothing here fetches data or keeps state between calls.
"""

import calendar
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Final, Iterable, List, Optional, Sequence

from campus_energy.backfill import BackfillStrategy, hour_band_factor
from campus_energy.errors import ValidationError
from campus_energy.models import Reading, format_timestamp
from campus_energy.occupancy import day_of_week
from campus_energy.sensor_sim import ENERGY_RATE

WINDOW_SIZE: Final[int] = 12       # one hour of 5-minute ticks
DAY_NAMES:   Final[List[str]] = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
NO_BUILDING_DATA: Final[str] = "No data found for specified building"


def _r2(value: float) -> float:
    return round(value, 2)


def _bucket(energy: float) -> dict:
    return {"energy_kwh": _r2(energy), "cost": _r2(energy * ENERGY_RATE)}


def _totals(buckets: Sequence[dict]) -> dict:
    return {
        "energy_kwh": _r2(sum(b["energy_kwh"] for b in buckets)),
        "cost": _r2(sum(b["cost"] for b in buckets)),
    }


# ──────────────────────────────────────────────
# Snapshots
# ──────────────────────────────────────────────
def latest_per_building(readings: Iterable[Reading]) -> Dict[str, Reading]:
    """Newest reading per building; on equal timestamps the first one seen stays."""
    latest: Dict[str, Reading] = {}
    for reading in readings:
        current = latest.get(reading.building_id)
        if current is None or reading.timestamp > current.timestamp:
            latest[reading.building_id] = reading
    return latest


def current_summary(readings: Iterable[Reading], now: Optional[datetime] = None) -> dict:
    now = now or datetime.now(timezone.utc)
    latest = list(latest_per_building(readings).values())
    return {
        "timestamp": format_timestamp(now),
        "readings": [r.to_dict() for r in latest],
        "summary": {
            "building_count": len(latest),
            "total_energy_kwh": _r2(sum(r.energy_kwh for r in latest)),
            "total_cost": _r2(sum(r.cost for r in latest)),
        },
    }


def building_window_summary(
    building_id: Optional[str],
    readings: Sequence[Reading],
    now: Optional[datetime] = None,
) -> dict:
    """Latest reading plus averages over a recent window of one building."""
    if not building_id:
        raise ValidationError("building_id parameter is required")
    if not readings:
        return {"message": NO_BUILDING_DATA}

    now = now or datetime.now(timezone.utc)
    window = sorted(readings, key=lambda r: r.timestamp, reverse=True)
    latest = window[0]
    count = len(window)

    return {
        "building_id": building_id,
        "building_name": latest.building_name,
        "building_type": latest.building_type,
        "timestamp": format_timestamp(now),
        "latest": latest.to_dict(),
        "hourly_average": {
            "energy_kwh": _r2(sum(r.energy_kwh for r in window) / count),
            "occupancy": round(sum(r.occupancy for r in window) / count),
            "temperature": round(sum(r.temperature for r in window) / count, 1),
        },
        "readings": [r.to_dict() for r in window],
    }


def building_metrics(readings: Sequence[Reading]) -> Optional[dict]:
    """Statistics archived for one building-day."""
    if not readings:
        return None

    latest = max(readings, key=lambda r: r.timestamp)
    count = len(readings)
    energies = [r.energy_kwh for r in readings]
    total_energy = sum(energies)

    return {
        "building_name": latest.building_name,
        "building_type": latest.building_type,
        "reading_count": count,
        "total_energy_kwh": _r2(total_energy),
        "total_cost": _r2(sum(r.cost for r in readings)),
        "avg_energy_kwh": _r2(total_energy / count),
        "min_energy_kwh": _r2(min(energies)),
        "max_energy_kwh": _r2(max(energies)),
        "average_temperature": round(sum(r.temperature for r in readings) / count, 1),
        "average_occupancy": round(sum(r.occupancy for r in readings) / count),
    }


def average_metric(building_results: Iterable[dict], metric_name: str) -> float:
    """Mean of ``metrics[metric_name]`` over the buildings that report it."""
    values = []
    for result in building_results:
        metrics = result.get("metrics") or {}
        value = metrics.get(metric_name)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            values.append(value)
    if not values:
        return 0
    return sum(values) / len(values)


# ──────────────────────────────────────────────
# Bucketed summaries
# ──────────────────────────────────────────────
def daily_summary(latest: Sequence[Reading], now: datetime, backfill: BackfillStrategy) -> dict:
    hourly_data = []
    for hour in range(now.hour + 1):
        bucket = _bucket(backfill.hourly_energy(latest, hour))
        hourly_data.append({"hour": f"{hour:02d}:00", **bucket})

    return {
        "date": now.date().isoformat(),
        "hourly_data": hourly_data,
        "totals": _totals(hourly_data),
    }


def weekly_summary(now: datetime, backfill: BackfillStrategy) -> dict:
    daily_data = []
    for offset in range(6, -1, -1):
        day = now.date() - timedelta(days=offset)
        bucket = _bucket(backfill.daily_energy(day))
        daily_data.append({"date": day.isoformat(), "day": DAY_NAMES[day_of_week(day)], **bucket})

    return {
        "start_date": daily_data[0]["date"],
        "end_date": daily_data[-1]["date"],
        "daily_data": daily_data,
        "totals": _totals(daily_data),
    }


def project_month(total_energy: float, days_elapsed: int, days_in_month: int) -> dict:
    """Linear month-end projection from the running daily average."""
    if days_elapsed <= 0:
        raise ValueError("days_elapsed must be positive")
    projected = total_energy / days_elapsed * days_in_month
    return {"energy_kwh": _r2(projected), "cost": _r2(projected * ENERGY_RATE)}


def monthly_summary(now: datetime, backfill: BackfillStrategy) -> dict:
    days_in_month = calendar.monthrange(now.year, now.month)[1]
    days_elapsed = min(now.day, days_in_month)

    daily_data = []
    for day_num in range(1, days_elapsed + 1):
        day = date(now.year, now.month, day_num)
        bucket = _bucket(backfill.daily_energy(day))
        daily_data.append({"date": day.isoformat(), "day": day_num, **bucket})

    totals = _totals(daily_data)
    return {
        "year": now.year,
        "month": now.month,
        "daily_data": daily_data,
        "totals": totals,
        "projected": project_month(totals["energy_kwh"], days_elapsed, days_in_month),
    }


def summary_for_period(
    period: str,
    readings: Iterable[Reading],
    now: datetime,
    backfill: BackfillStrategy,
) -> dict:
    """Dashboard summary: current totals plus the bucket series for ``period``."""
    current = current_summary(readings, now)
    latest = [Reading.from_dict(r) for r in current["readings"]]

    if period == "day":
        summary = daily_summary(latest, now, backfill)
    elif period == "week":
        summary = weekly_summary(now, backfill)
    elif period == "month":
        summary = monthly_summary(now, backfill)
    else:
        summary = {"message": "Invalid period specified"}

    return {
        "timestamp": format_timestamp(now),
        "period": period,
        "current": current["summary"],
        "summary": summary,
    }


# ──────────────────────────────────────────────
# Daily archive roll-up
# ──────────────────────────────────────────────
def _with_data(building_results: Iterable[dict]) -> List[dict]:
    return [r for r in building_results if r.get("count", 0) > 0]


def daily_rollup(building_results: Sequence[dict], date_str: str, generated: datetime) -> Optional[dict]:
    """Body of ``summary.json``; ``None`` when no building has readings."""
    reporting = _with_data(building_results)
    if not reporting:
        return None

    return {
        "date": date_str,
        "generated": format_timestamp(generated),
        "buildings": [
            {"building_id": r["building_id"], "record_count": r["count"], "metrics": r.get("metrics")}
            for r in reporting
        ],
        "totals": {
            "building_count": len(reporting),
            "record_count": sum(r.get("count", 0) for r in building_results),
            "total_energy_kwh": _r2(sum((r.get("metrics") or {}).get("total_energy_kwh", 0) for r in reporting)),
            "total_cost": _r2(sum((r.get("metrics") or {}).get("total_cost", 0) for r in reporting)),
            "average_temperature": round(average_metric(reporting, "average_temperature"), 1),
            "average_occupancy": round(average_metric(reporting, "average_occupancy")),
        },
    }


def hourly_reconstruction(building_results: Sequence[dict], date_str: str) -> Optional[dict]:
    """Body of ``hourly-data.json``: average energy spread over the campus load shape."""
    reporting = [r for r in _with_data(building_results) if r.get("metrics")]
    if not reporting:
        return None

    hourly_data = []
    for hour in range(24):
        total = sum(r["metrics"]["avg_energy_kwh"] * hour_band_factor(hour) for r in reporting)
        hourly_data.append({"hour": f"{hour:02d}:00", **_bucket(total)})

    return {"date": date_str, "hourly_data": hourly_data}
