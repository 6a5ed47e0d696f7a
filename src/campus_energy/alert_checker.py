"""
Alert checker worker
====================
Evaluates readings against the threshold table, either as they arrive on
the reading feed or in a scheduled sweep over the newest stored readings,
and publishes one alert per offending reading.
"""

import argparse
import json
import logging
import signal
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Iterable, List, Optional

from campus_energy import config
from campus_energy.alerts import AlertEvent, build_alert_payload, check_reading
from campus_energy.influx_store import ReadingStore
from campus_energy.metrics import MetricsEmitter
from campus_energy.models import Reading
from campus_energy.notifier import (
    MqttPublisher,
    alerts_topic,
    connect_with_retry,
    create_client,
    readings_subscription,
)
from campus_energy.postgres_store import AlertHistory
from campus_energy.side_effects import SideEffectFailures, best_effort

log = logging.getLogger(__name__)

EVALUATED_EVENTS = ("INSERT", "MODIFY")
SCHEDULED_LIMIT = 50


class AlertChecker:
    def __init__(
        self,
        publisher: MqttPublisher,
        history: Optional[AlertHistory] = None,
        metrics: Optional[MetricsEmitter] = None,
        dashboard_url: str = config.DASHBOARD_URL,
        failures: Optional[SideEffectFailures] = None,
        max_workers: int = config.MAX_WORKERS,
    ) -> None:
        self.publisher = publisher
        self.history = history
        self.metrics = metrics
        self.dashboard_url = dashboard_url
        self.failures = failures if failures is not None else SideEffectFailures()
        self.max_workers = max_workers

    def check(self, reading: Reading, now: Optional[datetime] = None) -> Optional[AlertEvent]:
        """Publish an alert for ``reading`` if it breaks a threshold."""
        event = check_reading(reading)
        if event is None:
            return None

        payload = build_alert_payload(event, reading, self.dashboard_url, now)
        log.warning("Alert for %s (%s): %s", reading.building_name, reading.building_id, ", ".join(event.alerts))
        self.publisher.publish(alerts_topic(), payload)

        if self.history is not None:
            best_effort("alert history", self.history.record, payload, failures=self.failures)
        if self.metrics is not None:
            best_effort("alert metric", self.metrics.alert_metric,
                        reading.building_id, reading.building_type, failures=self.failures)
        return event

    def handle_change(self, record: dict) -> Optional[AlertEvent]:
        """Accepts ``{"event": ..., "reading": {...}}`` or a bare reading dict."""
        event_name = str(record.get("event", "INSERT")).upper()
        if event_name not in EVALUATED_EVENTS:
            return None
        return self.check(Reading.from_dict(record.get("reading", record)))

    def _check_all(self, fn, items: List) -> int:
        alerts = 0
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            for item, future in [(i, pool.submit(fn, i)) for i in items]:
                try:
                    if future.result() is not None:
                        alerts += 1
                except Exception as exc:
                    log.error("Alert check failed for %s: %s", _describe(item), exc)
        return alerts

    def process_records(self, records: Iterable[dict]) -> dict:
        records = list(records)
        alerts = self._check_all(self.handle_change, records)
        return {
            "message": "Stream processing completed",
            "records_processed": len(records),
            "alerts_generated": alerts,
        }

    def scheduled_check(self, store: ReadingStore, limit: int = SCHEDULED_LIMIT) -> dict:
        readings = store.recent(limit)
        log.info("Retrieved %d recent readings", len(readings))
        alerts = self._check_all(self.check, readings)
        return {
            "message": "Scheduled check completed",
            "readings_checked": len(readings),
            "alerts_generated": alerts,
        }


def _describe(item) -> str:
    if isinstance(item, Reading):
        return item.building_id
    if isinstance(item, dict):
        inner = item.get("reading", item)
        if isinstance(inner, dict):
            return str(inner.get("building_id", "?"))
    return repr(item)


# ──────────────────────────────────────────────
# Main
# ──────────────────────────────────────────────
_running = True


def _handle_signal(sig, frame):
    global _running
    log.info("Signal %s received. Shutting down", sig)
    _running = False


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Campus energy alert checker")
    parser.add_argument("--once", action="store_true",
                        help="run one scheduled check over the newest readings and exit")
    args = parser.parse_args(argv)

    config.setup_logging()
    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    store = ReadingStore.from_env()
    metrics = MetricsEmitter.from_client(store.client)

    def _on_connect(client, userdata, flags, reason_code, properties):
        if reason_code == 0:
            client.subscribe(readings_subscription(), qos=config.QOS)
            log.info("Subscribed to reading feed: %s", readings_subscription())
        else:
            log.error("MQTT connection failed with code %s", reason_code)

    def _on_message(client, userdata, msg):
        try:
            checker.handle_change(json.loads(msg.payload.decode("utf-8")))
        except json.JSONDecodeError:
            log.error("Invalid JSON on %s: %s", msg.topic, msg.payload)
        except Exception as exc:
            log.error("Error processing reading from %s: %s", msg.topic, exc)

    client = create_client("campus_alerts", on_connect=None if args.once else _on_connect, on_message=_on_message)
    checker = AlertChecker(MqttPublisher(client), AlertHistory(), metrics)

    if not connect_with_retry(client, lambda: _running):
        store.close()
        return
    client.loop_start()

    try:
        if args.once:
            log.info("%s", checker.scheduled_check(store))
            return
        while _running:
            time.sleep(1)
    finally:
        client.loop_stop()
        client.disconnect()
        store.close()
        log.info("Alert checker stopped. %d side effects failed.", len(checker.failures))


if __name__ == "__main__":
    main()
