"""Dashboard API: current readings, building detail, archived days and period summaries."""

import logging
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Callable, List, Optional

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from campus_energy import __version__, config
from campus_energy.aggregation import (
    WINDOW_SIZE,
    building_window_summary,
    current_summary,
    summary_for_period,
)
from campus_energy.archiver import archive_prefix
from campus_energy.backfill import BackfillStrategy, SyntheticBackfill
from campus_energy.errors import ValidationError
from campus_energy.influx_store import CURRENT_SCAN_LIMIT, ReadingStore
from campus_energy.models import Reading
from campus_energy.postgres_store import ArchiveStore

log = logging.getLogger(__name__)

ACTIONS = ("current", "building", "historical", "summary")


# ──────────────────────────────────────────────
# Dependencies
# ──────────────────────────────────────────────
@lru_cache(maxsize=1)
def get_store() -> ReadingStore:
    return ReadingStore.from_env()


@lru_cache(maxsize=1)
def get_archive() -> ArchiveStore:
    return ArchiveStore()


def get_backfill() -> BackfillStrategy:
    return SyntheticBackfill()


def get_clock() -> Callable[[], datetime]:
    return lambda: datetime.now(timezone.utc)


# ──────────────────────────────────────────────
# Actions
# ──────────────────────────────────────────────
def _parse_date(value: Optional[str]) -> date:
    if not value:
        raise ValidationError("date parameter is required (YYYY-MM-DD)")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"invalid date {value!r}, expected YYYY-MM-DD")


def historical_data(day: date, building_id: Optional[str], archive: ArchiveStore, store: ReadingStore) -> dict:
    """Archived readings for ``day``; falls back to the reading store when nothing is archived."""
    prefix = f"{archive_prefix(day)}/buildings/"
    keys = archive.list(prefix)
    if building_id:
        keys = [k for k in keys if k == f"{prefix}{building_id}.json"]

    readings: List[dict] = []
    for key in keys:
        body = archive.get(key)
        if body:
            readings.extend(body.get("readings", []))

    if keys:
        return {"date": day.isoformat(), "source": "archive", "readings": readings}

    return {
        "date": day.isoformat(),
        "source": "store",
        "readings": [r.to_dict() for r in store.for_day(day, building_id)],
    }


def _dispatch(action: str, building_id: Optional[str], day: Optional[str], period: str,
              store: ReadingStore, archive: ArchiveStore, backfill: BackfillStrategy,
              now: datetime) -> dict:
    if action == "current":
        return current_summary(store.recent(CURRENT_SCAN_LIMIT), now)
    if action == "building":
        if not building_id:
            raise ValidationError("building_id parameter is required")
        readings: List[Reading] = store.building_recent(building_id, WINDOW_SIZE)
        return building_window_summary(building_id, readings, now)
    if action == "historical":
        return historical_data(_parse_date(day), building_id, archive, store)
    return summary_for_period(period, store.recent(CURRENT_SCAN_LIMIT), now, backfill)


# ──────────────────────────────────────────────
# FastAPI App
# ──────────────────────────────────────────────
app = FastAPI(title="Smart Campus Energy API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Api-Key"],
)


class HealthStatus(BaseModel):
    status: str
    version: str


@app.get("/health", response_model=HealthStatus)
def health():
    return HealthStatus(status="ok", version=__version__)


@app.get("/api")
def handle(
    action: str = "current",
    building_id: Optional[str] = Query(None, alias="buildingId"),
    day: Optional[str] = Query(None, alias="date"),
    period: str = "day",
    store: ReadingStore = Depends(get_store),
    archive: ArchiveStore = Depends(get_archive),
    backfill: BackfillStrategy = Depends(get_backfill),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    if action not in ACTIONS:
        return JSONResponse(status_code=400, content={"message": "Invalid action specified"})
    try:
        return _dispatch(action, building_id, day, period, store, archive, backfill, clock())
    except ValidationError as exc:
        return JSONResponse(status_code=400, content={"message": str(exc)})
    except Exception as exc:
        log.exception("Error processing %s request", action)
        return JSONResponse(status_code=500, content={"message": "Error processing request", "error": str(exc)})


def main() -> None:
    import uvicorn

    config.setup_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
