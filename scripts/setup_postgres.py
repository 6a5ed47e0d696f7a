"""Create the archive and alert-history tables."""

import logging
import sys

from campus_energy import config
from campus_energy.postgres_store import run_migrations

log = logging.getLogger("setup_postgres")

if __name__ == "__main__":
    config.setup_logging()
    log.info("Connecting to PostgreSQL at %s:%s", config.POSTGRES_HOST, config.POSTGRES_PORT)
    if not run_migrations():
        sys.exit(1)
    log.info("PostgreSQL schema is up to date.")
