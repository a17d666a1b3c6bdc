from __future__ import annotations

from dataclasses import dataclass
import logging

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings
from .db import Database
from .errors import SeedError
from .models import User
from .security import hash_password

logger = logging.getLogger("challenge.seed")


@dataclass(frozen=True)
class AdminAccount:
    firstname: str = "Admin"
    lastname: str = "Istrator"
    login: str = "admin"
    password: str = "changeme"

    @classmethod
    def from_settings(cls, settings: Settings) -> "AdminAccount":
        return cls(
            firstname=settings.admin_firstname,
            lastname=settings.admin_lastname,
            login=settings.admin_login,
            password=settings.admin_password,
        )


def count_users(database: Database) -> int:
    with database.session() as session:
        return int(session.execute(select(func.count()).select_from(User)).scalar_one())


def _insert_if_absent(database: Database, row: dict[str, str]) -> int:
    table = User.__table__
    dialect_name = database.engine.dialect.name

    with database.session() as session:
        if dialect_name == "postgresql":
            statement = pg_insert(table).values(row)
            statement = statement.on_conflict_do_nothing(index_elements=["login"])
        elif dialect_name == "sqlite":
            statement = sqlite_insert(table).values(row)
            statement = statement.on_conflict_do_nothing(index_elements=["login"])
        else:
            statement = table.insert().values(row)

        result = session.execute(statement)
        if result.rowcount is None or result.rowcount < 0:
            return 0
        return int(result.rowcount)


def seed_admin_if_empty(database: Database, admin: AdminAccount | None = None) -> bool:
    """Create the default administrator when the users table is empty.

    Returns True when this call wrote the row. Another instance racing on the
    same login loses quietly on the unique constraint.
    """
    admin = admin or AdminAccount()

    try:
        existing = count_users(database)
        if existing > 0:
            logger.info(
                "Found users, skipping admin account bootstrapping",
                extra={"event": "seed_skipped", "phase": "seed"},
            )
            return False

        logger.info(
            "Could not find any users, bootstrapping an admin account",
            extra={"event": "seed", "phase": "seed", "login": admin.login},
        )
        inserted = _insert_if_absent(
            database,
            {
                "firstname": admin.firstname,
                "lastname": admin.lastname,
                "login": admin.login,
                "password": hash_password(admin.password),
            },
        )
    except SQLAlchemyError as exc:
        raise SeedError(f"Could not create admin user, reason {exc}", exc) from exc

    if not inserted:
        logger.info(
            "Admin account %r already created by another instance",
            admin.login,
            extra={"event": "seed_conflict", "phase": "seed", "login": admin.login},
        )
    return inserted > 0
