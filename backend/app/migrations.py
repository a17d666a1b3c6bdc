from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.util import CommandError
from sqlalchemy.exc import SQLAlchemyError

from .db import Database
from .errors import MigrationError

logger = logging.getLogger("challenge.migrations")

BACKEND_DIR = Path(__file__).resolve().parents[1]


def _alembic_config() -> Config:
    alembic_cfg = Config(str(BACKEND_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    return alembic_cfg


def run_migrations(database: Database, revision: str = "head") -> None:
    """Upgrade the schema on the database's own engine.

    Safe to call on every start: an already-migrated schema is left alone.
    """
    alembic_cfg = _alembic_config()
    try:
        with database.engine.begin() as connection:
            alembic_cfg.attributes["connection"] = connection
            command.upgrade(alembic_cfg, revision)
        applied = current_revision(database)
    except (SQLAlchemyError, CommandError) as exc:
        raise MigrationError(f"Failed to run migrations: {exc}", exc) from exc

    logger.info(
        "Migrations complete, schema at %s",
        applied,
        extra={"event": "migrate", "phase": "migrate", "db_backend": database.backend},
    )


def current_revision(database: Database) -> Optional[str]:
    with database.engine.connect() as connection:
        return MigrationContext.configure(connection).get_current_revision()
