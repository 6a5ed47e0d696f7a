"""
Daily archiver
==============
Copies one day of readings per building into the archive store before the
reading store expires them, then writes the campus roll-up and the
flattened hourly series:

    {YYYY}/{MM}/{DD}/buildings/{building_id}.json
    {YYYY}/{MM}/{DD}/summary.json
    {YYYY}/{MM}/{DD}/hourly-data.json
"""

import argparse
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta, timezone
from typing import Callable, List, Optional, TypeVar

from campus_energy import config
from campus_energy.aggregation import building_metrics, daily_rollup, hourly_reconstruction
from campus_energy.influx_store import ReadingStore
from campus_energy.postgres_store import ArchiveStore, run_migrations

log = logging.getLogger(__name__)

T = TypeVar("T")


def archive_prefix(day: date) -> str:
    return f"{day.year:04d}/{day.month:02d}/{day.day:02d}"


def building_key(day: date, building_id: str) -> str:
    return f"{archive_prefix(day)}/buildings/{building_id}.json"


def summary_key(day: date) -> str:
    return f"{archive_prefix(day)}/summary.json"


def hourly_key(day: date) -> str:
    return f"{archive_prefix(day)}/hourly-data.json"


def with_retry(fn: Callable[[], T], label: str,
               retries: int = config.ARCHIVE_RETRIES,
               delay: float = config.ARCHIVE_RETRY_DELAY) -> T:
    """Call ``fn`` up to ``retries`` times with linear backoff; re-raise the last error."""
    for attempt in range(1, retries + 1):
        try:
            return fn()
        except Exception as exc:
            if attempt >= retries:
                raise
            log.warning("%s failed (attempt %d/%d): %s", label, attempt, retries, exc)
            time.sleep(delay * attempt)
    raise ValueError("retries must be at least 1")


def archive_building(building_id: str, day: date, store: ReadingStore, archive: ArchiveStore) -> dict:
    readings = store.for_day(day, building_id)
    if not readings:
        log.info("No data found for building %s on %s", building_id, day.isoformat())
        return {"building_id": building_id, "count": 0}

    metrics = building_metrics(readings)
    archive.put(building_key(day, building_id), {
        "building_id": building_id,
        "date": day.isoformat(),
        "readings": [r.to_dict() for r in readings],
        "metrics": metrics,
    })
    log.info("Archived %d records for building %s", len(readings), building_id)
    return {"building_id": building_id, "count": len(readings), "metrics": metrics}


def archive_day(
    day: date,
    store: ReadingStore,
    archive: ArchiveStore,
    building_ids: Optional[List[str]] = None,
    now: Optional[datetime] = None,
    retries: int = config.ARCHIVE_RETRIES,
    delay: float = config.ARCHIVE_RETRY_DELAY,
    max_workers: int = config.MAX_WORKERS,
) -> dict:
    """Archive ``day``. A building that keeps failing is reported with count 0."""
    now = now or datetime.now(timezone.utc)
    date_str = day.isoformat()
    if building_ids is None:
        building_ids = with_retry(store.building_ids, "list buildings", retries, delay)
    log.info("Archiving %s for %d buildings", date_str, len(building_ids))

    def _one(building_id: str) -> dict:
        return with_retry(lambda: archive_building(building_id, day, store, archive),
                          f"archive {building_id}", retries, delay)

    results = []
    failed = []
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [(b, pool.submit(_one, b)) for b in building_ids]
        for building_id, future in futures:
            try:
                results.append(future.result())
            except Exception as exc:
                log.error("Giving up on %s for %s: %s", building_id, date_str, exc)
                results.append({"building_id": building_id, "count": 0})
                failed.append(building_id)

    summary_written = False
    summary = daily_rollup(results, date_str, now)
    if summary is None:
        log.info("No data to summarize for %s", date_str)
    else:
        hourly = hourly_reconstruction(results, date_str)
        try:
            with_retry(lambda: archive.put(summary_key(day), summary), "archive summary", retries, delay)
            if hourly is not None:
                with_retry(lambda: archive.put(hourly_key(day), hourly), "archive hourly data", retries, delay)
            summary_written = True
            log.info("Created daily summary for %s", date_str)
        except Exception as exc:
            log.error("Could not write daily summary for %s: %s", date_str, exc)

    return {
        "message": "Archive process completed",
        "date": date_str,
        "buildings_processed": len(building_ids),
        "total_records": sum(r["count"] for r in results),
        "failed": failed,
        "summary_written": summary_written,
    }


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Archive one day of campus readings")
    parser.add_argument("--date", type=_parse_day, default=None,
                        help="day to archive (default: yesterday, UTC)")
    args = parser.parse_args(argv)

    config.setup_logging()
    day = args.date or (datetime.now(timezone.utc).date() - timedelta(days=1))

    if not run_migrations():
        log.error("Database migration failed; archive store unavailable")
        raise SystemExit(1)

    store = ReadingStore.from_env()
    try:
        result = archive_day(day, store, ArchiveStore())
    finally:
        store.close()
    log.info("Archive result: %s", result)


if __name__ == "__main__":
    main()
