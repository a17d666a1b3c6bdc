from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import sys

from .config import Settings, settings as default_settings


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in (
            "event",
            "phase",
            "db_backend",
            "login",
            "path",
            "status",
        ):
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or default_settings
    root = logging.getLogger()
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    if settings.log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        # Status lines only.
        handler.setFormatter(logging.Formatter("%(message)s"))

    root.setLevel(getattr(logging, settings.log_level, logging.INFO))
    root.addHandler(handler)
