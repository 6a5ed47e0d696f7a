"""
Campus Energy Simulator worker
==============================
Every tick simulates one reading per building, stores it, publishes it on
the reading feed (which drives the alert checker) and emits metrics.
"""

import logging
import random
import signal
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Iterable, Optional

from campus_energy import config
from campus_energy.influx_store import ReadingStore
from campus_energy.metrics import MetricsEmitter
from campus_energy.models import Reading, format_timestamp
from campus_energy.notifier import (
    MqttPublisher,
    connect_publisher,
    create_client,
    reading_topic,
    status_topic,
    summary_topic,
)
from campus_energy.registry import BUILDINGS, BuildingProfile
from campus_energy.sensor_sim import simulate_reading, ttl_for
from campus_energy.side_effects import SideEffectFailures, best_effort

log = logging.getLogger(__name__)


def change_event(reading: Reading, event: str = "INSERT") -> dict:
    return {"event": event, "reading": reading.to_dict()}


def _ingest_one(
    building: BuildingProfile,
    now: datetime,
    seed: int,
    ttl: int,
    store: ReadingStore,
    publisher: Optional[MqttPublisher],
    metrics: Optional[MetricsEmitter],
    failures: SideEffectFailures,
) -> Reading:
    reading = simulate_reading(building, now, random.Random(seed), ttl=ttl)
    store.write(reading)

    if publisher is not None:
        best_effort(f"publish {building.id}", publisher.publish,
                    reading_topic(building.id), change_event(reading), failures=failures)
    if metrics is not None:
        best_effort(f"metrics {building.id}", metrics.reading_metrics, reading, failures=failures)

    log.info("%-16s %8.2f kWh | %5.1f°F | %4d people | $%.2f",
             building.id, reading.energy_kwh, reading.temperature, reading.occupancy, reading.cost)
    return reading


def run_tick(
    store: ReadingStore,
    publisher: Optional[MqttPublisher] = None,
    metrics: Optional[MetricsEmitter] = None,
    buildings: Iterable[BuildingProfile] = BUILDINGS,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
    failures: Optional[SideEffectFailures] = None,
    max_workers: int = config.MAX_WORKERS,
) -> dict:
    """Simulate and store one reading per building; one building failing does not stop the rest."""
    now = (now or datetime.now(timezone.utc)).replace(microsecond=0)
    rng = rng or random.Random()
    failures = failures if failures is not None else SideEffectFailures()
    buildings = list(buildings)
    ttl = ttl_for(now, config.RETENTION_DAYS)
    seeds = [rng.getrandbits(32) for _ in buildings]

    stored = []
    failed = []
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {
            b.id: pool.submit(_ingest_one, b, now, seed, ttl, store, publisher, metrics, failures)
            for b, seed in zip(buildings, seeds)
        }
        for building_id, future in futures.items():
            try:
                stored.append(future.result())
            except Exception as exc:
                log.error("Could not ingest reading for %s: %s", building_id, exc)
                failed.append(building_id)

    summary = {
        "message": "Energy data generated",
        "timestamp": format_timestamp(now),
        "building_count": len(buildings),
        "stored": len(stored),
        "failed": failed,
        "total_energy_kwh": round(sum(r.energy_kwh for r in stored), 2),
        "side_effect_failures": len(failures),
    }
    if publisher is not None:
        best_effort("publish summary", publisher.publish, summary_topic(), summary, failures=failures)

    log.info("Tick summary: %.2f kWh | %d/%d buildings",
             summary["total_energy_kwh"], len(stored), len(buildings))
    return summary


# ──────────────────────────────────────────────
# Graceful shutdown
# ──────────────────────────────────────────────
_running = True


def _handle_signal(sig, frame):
    global _running
    log.info("Signal %s received. Shutting down", sig)
    _running = False


# ──────────────────────────────────────────────
# Main
# ──────────────────────────────────────────────
def main() -> None:
    config.setup_logging()
    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    log.info("=" * 60)
    log.info("  Campus Energy Simulator")
    log.info("  Buildings : %d", len(BUILDINGS))
    log.info("  Broker    : %s:%s  (QoS=%s)", config.BROKER, config.PORT, config.QOS)
    log.info("  Interval  : %ss", config.INTERVAL_SEC)
    log.info("=" * 60)

    store = ReadingStore.from_env()
    metrics = MetricsEmitter.from_client(store.client)

    client = create_client("campus_simulator")
    publisher = connect_publisher(client, lambda: _running)
    if publisher is None:
        log.info("Shutdown requested before the broker was reachable")
        store.close()
        return

    best_effort("publish online status", publisher.publish, status_topic(),
                {"status": "online", "ts": format_timestamp(datetime.now(timezone.utc))}, retain=True)

    cycle = 0
    try:
        while _running:
            cycle += 1
            log.info("── Cycle #%d ─────────────────────────────", cycle)
            run_tick(store, publisher, metrics)
            time.sleep(config.INTERVAL_SEC)
    finally:
        best_effort("publish offline status", publisher.publish, status_topic(),
                    {"status": "offline", "ts": format_timestamp(datetime.now(timezone.utc))}, retain=True)
        client.loop_stop()
        client.disconnect()
        store.close()
        log.info("Simulator stopped cleanly after %d cycles.", cycle)


if __name__ == "__main__":
    main()
