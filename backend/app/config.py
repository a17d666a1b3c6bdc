from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv
from sqlalchemy.engine import URL

from .errors import ConfigurationError


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _clean(value: str | None, default: str = "") -> str:
    raw = (value if value is not None else default).strip()
    # Some dashboards accidentally store quoted values.
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in {'"', "'"}:
        raw = raw[1:-1].strip()
    return raw


@dataclass(frozen=True)
class Settings:
    env: str
    secret_key: str
    jwt_algorithm: str
    jwt_exp_minutes: int
    host: str
    port: int
    cors_origins: list[str]
    debug: bool
    log_level: str
    log_format: str
    postgres_requested: bool
    postgres_host: str
    postgres_port: int
    postgres_user: str
    postgres_password: str
    postgres_db: str
    postgres_sslmode: str
    postgres_connect_timeout: int
    sqlite_path: str
    db_pool_size: int
    db_max_overflow: int
    db_pool_timeout: int
    db_pool_recycle: int
    admin_firstname: str
    admin_lastname: str
    admin_login: str
    admin_password: str

    @property
    def db_backend(self) -> str:
        return "postgres" if self.postgres_requested else "sqlite"

    @property
    def is_sqlite(self) -> bool:
        return self.db_backend == "sqlite"

    @property
    def is_production(self) -> bool:
        return self.env.lower() not in {"development", "dev", "test", "testing"}

    @property
    def database_url(self) -> str:
        if self.is_sqlite:
            return f"sqlite:///{self.sqlite_path}"

        url = URL.create(
            "postgresql+psycopg2",
            username=self.postgres_user or None,
            password=self.postgres_password or None,
            host=self.postgres_host,
            port=self.postgres_port,
            database=self.postgres_db,
            query={"sslmode": self.postgres_sslmode} if self.postgres_sslmode else {},
        )
        return url.render_as_string(hide_password=False)

    def validate(self) -> None:
        """Raise early on dangerous mis-configurations in non-dev environments."""
        if self.is_production and self.secret_key == _DEFAULT_SECRET_KEY:
            raise ConfigurationError(
                "SECRET_KEY must be explicitly set in production. "
                "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(48))\""
            )
        if self.log_format not in {"plain", "json"}:
            raise ConfigurationError(f"LOG_FORMAT must be 'plain' or 'json', got {self.log_format!r}")


_DEFAULT_SECRET_KEY = "change-me-in-production-min-32-bytes-key"


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    return Settings(
        env=_clean(env.get("ENV"), "development"),
        secret_key=env.get("SECRET_KEY", _DEFAULT_SECRET_KEY),
        jwt_algorithm=_clean(env.get("JWT_ALGORITHM"), "HS256"),
        jwt_exp_minutes=_as_int(env.get("JWT_EXP_MINUTES"), 60 * 12),
        host=_clean(env.get("HOST"), "0.0.0.0"),
        port=_as_int(env.get("PORT"), 8000),
        cors_origins=[
            origin.strip()
            for origin in env.get("CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ],
        debug=_as_bool(env.get("DEBUG"), False),
        log_level=_clean(env.get("LOG_LEVEL"), "INFO").upper(),
        log_format=_clean(env.get("LOG_FORMAT"), "plain").lower(),
        # Any non-empty value selects PostgreSQL, whitespace included.
        postgres_requested=len(env.get("POSTGRES_HOST", "")) > 0,
        postgres_host=_clean(env.get("POSTGRES_HOST")),
        postgres_port=_as_int(env.get("POSTGRES_PORT"), 5432),
        postgres_user=_clean(env.get("POSTGRES_USER"), "postgres"),
        postgres_password=env.get("POSTGRES_PASSWORD", ""),
        postgres_db=_clean(env.get("POSTGRES_DB"), "postgres"),
        postgres_sslmode=_clean(env.get("POSTGRES_SSLMODE"), "disable"),
        postgres_connect_timeout=max(1, _as_int(env.get("POSTGRES_CONNECT_TIMEOUT"), 5)),
        sqlite_path=_clean(env.get("SQLITE_PATH"), "./challenge.db"),
        db_pool_size=max(1, _as_int(env.get("DB_POOL_SIZE"), 5)),
        db_max_overflow=max(0, _as_int(env.get("DB_MAX_OVERFLOW"), 10)),
        db_pool_timeout=max(1, _as_int(env.get("DB_POOL_TIMEOUT"), 30)),
        db_pool_recycle=max(60, _as_int(env.get("DB_POOL_RECYCLE"), 1800)),
        admin_firstname=env.get("ADMIN_FIRSTNAME", "Admin"),
        admin_lastname=env.get("ADMIN_LASTNAME", "Istrator"),
        admin_login=_clean(env.get("ADMIN_LOGIN"), "admin"),
        admin_password=env.get("ADMIN_PASSWORD", "changeme"),
    )


load_dotenv()
settings = load_settings()
