import logging
import os
import sys
from typing import Final

from dotenv import load_dotenv

load_dotenv()

# ──────────────────────────────────────────────
# InfluxDB (readings + metrics)
# ──────────────────────────────────────────────
INFLUX_URL:    Final[str] = os.getenv("INFLUXDB_URL", "http://localhost:8086")
INFLUX_TOKEN:  Final[str] = os.getenv("INFLUXDB_TOKEN", "")
INFLUX_ORG:    Final[str] = os.getenv("INFLUXDB_ORG", "campus")
INFLUX_BUCKET: Final[str] = os.getenv("INFLUXDB_BUCKET", "energy")

# ──────────────────────────────────────────────
# PostgreSQL (archives + alert history)
# ──────────────────────────────────────────────
POSTGRES_HOST:     Final[str] = os.getenv("POSTGRES_HOST", "localhost")
POSTGRES_PORT:     Final[int] = int(os.getenv("POSTGRES_PORT", "5432"))
POSTGRES_DB:       Final[str] = os.getenv("POSTGRES_DB", "campus_energy")
POSTGRES_USER:     Final[str] = os.getenv("POSTGRES_USER", "postgres")
POSTGRES_PASSWORD: Final[str] = os.getenv("POSTGRES_PASSWORD", "postgres")

# ──────────────────────────────────────────────
# MQTT (reading feed + alert topic)
# ──────────────────────────────────────────────
BROKER:       Final[str] = os.getenv("MQTT_BROKER", "localhost")
PORT:         Final[int] = int(os.getenv("MQTT_PORT", "1883"))
USERNAME:     Final[str] = os.getenv("MQTT_USER", "")
PASSWORD:     Final[str] = os.getenv("MQTT_PASS", "")
QOS:          Final[int] = int(os.getenv("MQTT_QOS", "1"))   # 0 | 1 | 2
TOPIC_PREFIX: Final[str] = os.getenv("TOPIC_PREFIX", "campus")

# ──────────────────────────────────────────────
# Workers
# ──────────────────────────────────────────────
INTERVAL_SEC:        Final[float] = float(os.getenv("SIM_INTERVAL", "300"))
RETENTION_DAYS:      Final[int]   = int(os.getenv("RETENTION_DAYS", "30"))
MAX_WORKERS:         Final[int]   = int(os.getenv("MAX_WORKERS", "8"))
ARCHIVE_RETRIES:     Final[int]   = int(os.getenv("ARCHIVE_RETRIES", "3"))
ARCHIVE_RETRY_DELAY: Final[float] = float(os.getenv("ARCHIVE_RETRY_DELAY", "2"))
DASHBOARD_URL:       Final[str]   = os.getenv("DASHBOARD_URL", "https://example.com/dashboard")

TELEGRAM_TOKEN: Final[str] = os.getenv("TELEGRAM_TOKEN", "")
LOG_LEVEL:      Final[str] = os.getenv("LOG_LEVEL", "INFO")


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging for a worker entry point."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
