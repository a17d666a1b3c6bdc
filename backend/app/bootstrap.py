from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
import uvicorn

from .config import Settings, load_settings
from .db import Database
from .errors import BootstrapError, DatabaseConnectionError
from .logging_utils import configure_logging
from .main import create_app
from .metrics import BOOTSTRAP_FAILURES_TOTAL
from .migrations import run_migrations
from .seed import AdminAccount, seed_admin_if_empty

logger = logging.getLogger("challenge.bootstrap")


def connect_database(settings: Settings) -> Database:
    if settings.is_sqlite:
        label = "SQLite"
        logger.info("Using sqlite DB driver", extra={"event": "connect", "phase": "connect", "db_backend": "sqlite"})
    else:
        label = "PostgreSQL"
        logger.info(
            "Using postgresql DB driver",
            extra={"event": "connect", "phase": "connect", "db_backend": "postgres"},
        )

    database = None
    try:
        database = Database.from_settings(settings)
        database.check_connection()
    except (SQLAlchemyError, ImportError) as exc:
        # ImportError covers a missing DB driver.
        if database is not None:
            database.dispose()
        raise DatabaseConnectionError(f"Failed to connect to {label}: {exc}", exc) from exc
    return database


def bootstrap(settings: Settings) -> Database:
    """Connect, migrate and seed. Returns the live database for the API."""
    logger.info("DevSecOps challenge", extra={"event": "startup"})

    database = connect_database(settings)
    try:
        run_migrations(database)
        seed_admin_if_empty(database, AdminAccount.from_settings(settings))
    except BootstrapError:
        database.dispose()
        raise
    return database


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Prepare the database and serve the challenge API")
    parser.add_argument("--host", default=None, help="Bind address (defaults to HOST)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (defaults to PORT)")
    parser.add_argument(
        "--bootstrap-only",
        action="store_true",
        help="Run connect, migrate and seed, then exit without serving",
    )
    args = parser.parse_args(argv)

    settings = load_settings()
    configure_logging(settings)

    try:
        settings.validate()
        database = bootstrap(settings)
    except BootstrapError as exc:
        BOOTSTRAP_FAILURES_TOTAL.labels(phase=exc.phase).inc()
        logger.error(exc.message, extra={"event": "bootstrap_failed", "phase": exc.phase})
        return exc.exit_code

    if args.bootstrap_only:
        database.dispose()
        return 0

    uvicorn.run(
        create_app(database, settings),
        host=args.host or settings.host,
        port=args.port or settings.port,
    )
    return 0
