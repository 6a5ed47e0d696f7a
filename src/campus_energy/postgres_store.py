"""PostgreSQL adapters: write-once archive objects and the alert history."""

import logging
import time
from typing import List, Optional

import psycopg2
import psycopg2.extras

from campus_energy import config

log = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS archive_objects (
    key VARCHAR(255) PRIMARY KEY,
    body JSONB NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE TABLE IF NOT EXISTS alert_history (
    id SERIAL PRIMARY KEY,
    timestamp TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    building_id VARCHAR(100) NOT NULL,
    building_type VARCHAR(50) DEFAULT NULL,
    reading_timestamp TIMESTAMPTZ DEFAULT NULL,
    energy_kwh DECIMAL(10,2) DEFAULT NULL,
    temperature DECIMAL(5,1) DEFAULT NULL,
    alerts JSONB NOT NULL,
    payload JSONB DEFAULT NULL
);
CREATE INDEX IF NOT EXISTS idx_archive_objects_created ON archive_objects (created_at DESC);
CREATE INDEX IF NOT EXISTS idx_alert_history_ts ON alert_history (timestamp DESC);
CREATE INDEX IF NOT EXISTS idx_alert_history_building ON alert_history (building_id, timestamp DESC);
"""


def get_pg_conn():
    """Return a new psycopg2 connection using env vars."""
    return psycopg2.connect(
        host=config.POSTGRES_HOST,
        port=config.POSTGRES_PORT,
        dbname=config.POSTGRES_DB,
        user=config.POSTGRES_USER,
        password=config.POSTGRES_PASSWORD,
    )


def run_migrations(attempts: int = 10, delay: float = 2.0) -> bool:
    """Create tables and indexes, waiting for the database to come up."""
    for attempt in range(1, attempts + 1):
        try:
            conn = get_pg_conn()
            conn.autocommit = True
            try:
                with conn.cursor() as cur:
                    cur.execute(SCHEMA)
            finally:
                conn.close()
            return True
        except psycopg2.Error as exc:
            if attempt < attempts:
                log.warning("Migration attempt %d/%d failed: %s", attempt, attempts, exc)
                time.sleep(delay)
            else:
                log.error("Migrations failed after %d attempts: %s", attempts, exc)
    return False


class ArchiveStore:
    """Object store keyed by ``YYYY/MM/DD/...`` paths. Keys are write-once."""

    def __init__(self, connect=get_pg_conn) -> None:
        self._connect = connect

    def put(self, key: str, body: dict) -> bool:
        """Store ``body``; returns False when ``key`` already exists."""
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO archive_objects (key, body) VALUES (%s, %s) "
                    "ON CONFLICT (key) DO NOTHING",
                    (key, psycopg2.extras.Json(body)),
                )
                created = cur.rowcount == 1
            conn.commit()
        finally:
            conn.close()
        if not created:
            log.warning("Archive object %s already exists, left unchanged", key)
        return created

    def get(self, key: str) -> Optional[dict]:
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT body FROM archive_objects WHERE key = %s", (key,))
                row = cur.fetchone()
        finally:
            conn.close()
        return row[0] if row else None

    def list(self, prefix: str) -> List[str]:
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT key FROM archive_objects WHERE key LIKE %s ORDER BY key",
                    (prefix.replace("%", r"\%").replace("_", r"\_") + "%",),
                )
                rows = cur.fetchall()
        finally:
            conn.close()
        return [r[0] for r in rows]


class AlertHistory:
    def __init__(self, connect=get_pg_conn) -> None:
        self._connect = connect

    def record(self, payload: dict) -> None:
        building = payload.get("building", {})
        reading = payload.get("reading", {})
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO alert_history
                        (building_id, building_type, reading_timestamp, energy_kwh, temperature, alerts, payload)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        building.get("id"),
                        building.get("type"),
                        reading.get("timestamp"),
                        reading.get("energy_kwh"),
                        reading.get("temperature"),
                        psycopg2.extras.Json(payload.get("alerts", [])),
                        psycopg2.extras.Json(payload),
                    ),
                )
            conn.commit()
        finally:
            conn.close()

    def recent(self, limit: int = 5) -> List[dict]:
        conn = self._connect()
        try:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(
                    "SELECT timestamp, building_id, building_type, energy_kwh, temperature, alerts "
                    "FROM alert_history ORDER BY timestamp DESC LIMIT %s",
                    (limit,),
                )
                rows = cur.fetchall()
        finally:
            conn.close()
        return [dict(r) for r in rows]
