from __future__ import annotations

from typing import Optional


class BootstrapError(Exception):
    """A fatal startup failure. ``exit_code`` is what the process exits with."""

    exit_code = 1
    phase = "bootstrap"

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class DatabaseConnectionError(BootstrapError):
    exit_code = 1
    phase = "connect"


class MigrationError(BootstrapError):
    exit_code = 2
    phase = "migrate"


class SeedError(BootstrapError):
    exit_code = 3
    phase = "seed"


class ConfigurationError(BootstrapError):
    exit_code = 4
    phase = "config"
