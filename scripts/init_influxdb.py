"""Seed the reading store with simulated history (one reading per building every 30 minutes)."""

import argparse
import logging
import random
from datetime import datetime, timedelta, timezone

from campus_energy import config
from campus_energy.influx_store import ReadingStore
from campus_energy.registry import BUILDINGS
from campus_energy.sensor_sim import simulate_reading, ttl_for

log = logging.getLogger("init_influxdb")

STEP = timedelta(minutes=30)


def load_history(store: ReadingStore, days: int = 7, seed=None) -> int:
    rng = random.Random(seed)
    now = datetime.now(timezone.utc).replace(microsecond=0)
    ts = now - timedelta(days=days)
    total_points = 0

    log.info("Loading %d days of simulated history...", days)
    batch = []
    while ts < now:
        ttl = ttl_for(ts, config.RETENTION_DAYS)
        batch.extend(simulate_reading(b, ts, rng, ttl=ttl) for b in BUILDINGS)
        if len(batch) >= 500:
            store.write_many(batch)
            total_points += len(batch)
            batch = []
        ts += STEP
    if batch:
        store.write_many(batch)
        total_points += len(batch)

    log.info("Loaded %d historical readings into InfluxDB.", total_points)
    return total_points


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--days", type=int, default=7)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    config.setup_logging()
    store = ReadingStore.from_env()
    try:
        load_history(store, args.days, args.seed)
    finally:
        store.close()
