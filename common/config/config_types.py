# common/config/config_types.py
"""Enumerations parsed from environment variables."""

from enum import Enum
import logging


class EnvLogLevel(str, Enum):
    """
    LOG_LEVEL values.

    str-based so the member serializes as its value:
        >>> str(EnvLogLevel.WARNING)
        'WARNING'
    """

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def level(self) -> int:
        """Numeric level understood by structlog's filtering logger."""
        return getattr(logging, self.value)

    def __str__(self) -> str:
        return self.value


class EnvLogFormat(str, Enum):
    """LOG_FORMAT values: Rich console output or one JSON object per line."""

    CONSOLE = "console"
    JSON = "json"

    @property
    def is_json(self) -> bool:
        return self == EnvLogFormat.JSON

    def __str__(self) -> str:
        return self.value


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @property
    def is_production(self) -> bool:
        return self == Environment.PRODUCTION

    @property
    def exposes_server_timing(self) -> bool:
        """Server-Timing headers leak internals; only non-production sends them."""
        return not self.is_production

    def __str__(self) -> str:
        return self.value


class DbDriver(str, Enum):
    """DB_DRIVER values and the async SQLAlchemy URL scheme each maps to."""

    ASYNCPG = "asyncpg"
    PSYCOPG = "psycopg"
    AIOSQLITE = "aiosqlite"

    @property
    def is_sqlite(self) -> bool:
        return self == DbDriver.AIOSQLITE

    @property
    def url_scheme(self) -> str:
        if self.is_sqlite:
            return "sqlite+aiosqlite"
        return f"postgresql+{self.value}"


class SslMode(str, Enum):
    """libpq sslmode names, also used to build the asyncpg SSL context."""

    DISABLE = "disable"
    ALLOW = "allow"
    PREFER = "prefer"
    REQUIRE = "require"
    VERIFY_CA = "verify-ca"
    VERIFY_FULL = "verify-full"

    @property
    def requires_ssl(self) -> bool:
        return self in (SslMode.REQUIRE, SslMode.VERIFY_CA, SslMode.VERIFY_FULL)

    @property
    def verifies_hostname(self) -> bool:
        return self == SslMode.VERIFY_FULL


__all__ = [
    "EnvLogLevel",
    "EnvLogFormat",
    "Environment",
    "DbDriver",
    "SslMode",
]
