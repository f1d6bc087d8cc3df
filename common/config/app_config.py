# common/config/app_config.py
"""
Complete application configuration with validation.
Database, token signing and notification delivery settings.
"""

from enum import Enum
from typing import Optional, Any, TypeVar
from pydantic import BaseModel, Field, field_validator, model_validator, SecretStr
from .config_types import EnvLogLevel, DbDriver, SslMode, Environment
from .env_config import require_env, get_env, get_env_int
from .logging_config import LoggingConfig, load_logging_config
from pathlib import Path


class DatabaseConfig(BaseModel):
    """
    Connection, pool and TLS settings for the appointments database.

    With the aiosqlite driver `name` is a file path and host/port are
    carried only so the same env layout works for local runs.
    """

    driver: DbDriver
    host: str = Field(..., min_length=1)
    port: int = Field(..., gt=0, le=65535)
    name: str = Field(..., min_length=1, description="Database name or sqlite file")
    username: Optional[str] = Field(default=None, min_length=1)
    password: Optional[SecretStr] = None
    slow_query_threshold: float = Field(..., description="Slow query cutoff in ms")

    pool_size: int = Field(..., ge=1, le=100)
    max_overflow: int = Field(..., ge=0, le=100)
    pool_timeout: int = Field(..., ge=1, le=300)
    pool_recycle: int = Field(..., ge=300)

    ssl_mode: Optional[SslMode] = None
    ssl_cert_path: Optional[Path] = None
    ssl_key_path: Optional[Path] = None
    ssl_ca_path: Optional[Path] = None

    model_config = {"frozen": True}

    @field_validator("ssl_cert_path", "ssl_key_path", "ssl_ca_path")
    @classmethod
    def ssl_file_must_exist(cls, v: Optional[Path]) -> Optional[Path]:
        if v is not None and not v.exists():
            raise ValueError(f"SSL file not found: {v}")
        return v

    def get_connection_url(self, include_password: bool = False) -> str:
        """
        SQLAlchemy async URL for the configured driver.

        The password is masked unless `include_password` is set, so the
        default form is safe to log.
        """
        scheme = self.driver.url_scheme
        if self.driver.is_sqlite:
            return f"{scheme}:///{self.name}"

        credentials = ""
        if self.username:
            secret = "****"
            if include_password and self.password:
                secret = self.password.get_secret_value()
            credentials = f"{self.username}:{secret}@"
        return f"{scheme}://{credentials}{self.host}:{self.port}/{self.name}"

    def requires_ssl(self) -> bool:
        return self.ssl_mode is not None and self.ssl_mode.requires_ssl

    def to_dict_safe(self) -> dict[str, Any]:
        """model_dump() with the password masked."""
        data = self.model_dump()
        if data.get("password"):
            data["password"] = "****"
        return data


class AuthConfig(BaseModel):
    """Bearer token signing configuration."""

    jwt_secret: SecretStr
    jwt_algorithm: str = Field(default="HS256", pattern=r"^HS(256|384|512)$")
    token_ttl_minutes: int = Field(default=1440, ge=1, le=60 * 24 * 30)

    model_config = {"frozen": True}


class NotificationConfig(BaseModel):
    """External delivery channel (SMS/e-mail gateway webhook)."""

    webhook_url: Optional[str] = Field(default=None)
    webhook_timeout: float = Field(default=5.0, gt=0, le=60)

    model_config = {"frozen": True}

    @field_validator("webhook_url")
    @classmethod
    def validate_webhook_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("webhook_url must be an http(s) URL")
        return v


class AppConfig(BaseModel):
    """Every setting the service reads at startup, validated as one unit."""

    app_title: str = Field(..., min_length=1)
    app_version: str = Field(..., pattern=r"^\d+\.\d+\.\d+$")  # Semantic versioning
    environment: Environment

    logging: LoggingConfig
    auth: AuthConfig
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    database: Optional[DatabaseConfig] = None
    settings_cache_ttl: int = Field(default=60, ge=0, le=3600)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_production_settings(self) -> "AppConfig":
        if self.environment.is_production:
            if self.database is None:
                raise ValueError("Database config required in production")
            if self.database.driver.is_sqlite:
                raise ValueError("SQLite is not supported in production")
            if self.logging.log_level == EnvLogLevel.DEBUG:
                raise ValueError("DEBUG log level not allowed in production")
            if len(self.auth.jwt_secret.get_secret_value()) < 32:
                raise ValueError("JWT_SECRET must be at least 32 characters in production")
        return self


E = TypeVar("E", bound=Enum)


def _parse_choice(enum_cls: type[E], env_key: str, raw: str) -> E:
    try:
        return enum_cls(raw)
    except ValueError:
        choices = [member.value for member in enum_cls]
        raise ValueError(f"Invalid {env_key}: {raw}. Must be one of: {choices}")


def load_database_config(environment: Environment) -> Optional[DatabaseConfig]:
    """
    Read DB_* variables. Returns None when DB_HOST is unset.

    Always required once DB_HOST is present:
        DB_PORT, DB_NAME, DB_DRIVER (asyncpg | psycopg | aiosqlite),
        DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT, DB_POOL_RECYCLE,
        SLOW_QUERY_THRESHOLD

    Required in production, optional elsewhere:
        DB_USER, DB_PASSWORD, DB_SSL_MODE

    Optional:
        DB_SSL_CERT, DB_SSL_KEY, DB_SSL_CA
    """
    host = get_env("DB_HOST")
    if not host:
        return None

    read = require_env if environment.is_production else get_env
    password = read("DB_PASSWORD")
    ssl_mode = read("DB_SSL_MODE")
    cert, key, ca = (get_env(k) for k in ("DB_SSL_CERT", "DB_SSL_KEY", "DB_SSL_CA"))

    return DatabaseConfig(
        driver=_parse_choice(DbDriver, "DB_DRIVER", require_env("DB_DRIVER")),
        host=host,
        port=int(require_env("DB_PORT")),
        name=require_env("DB_NAME"),
        username=read("DB_USER"),
        password=SecretStr(password) if password else None,
        slow_query_threshold=float(require_env("SLOW_QUERY_THRESHOLD")),
        pool_size=int(require_env("DB_POOL_SIZE")),
        max_overflow=int(require_env("DB_MAX_OVERFLOW")),
        pool_timeout=int(require_env("DB_POOL_TIMEOUT")),
        pool_recycle=int(require_env("DB_POOL_RECYCLE")),
        ssl_mode=_parse_choice(SslMode, "DB_SSL_MODE", ssl_mode) if ssl_mode else None,
        ssl_cert_path=Path(cert) if cert else None,
        ssl_key_path=Path(key) if key else None,
        ssl_ca_path=Path(ca) if ca else None,
    )


def load_auth_config() -> AuthConfig:
    """
    Environment variables:
    - JWT_SECRET (required)
    - JWT_ALGORITHM (default HS256)
    - JWT_TTL_MINUTES (default 1440)
    """
    return AuthConfig(
        jwt_secret=SecretStr(require_env("JWT_SECRET")),
        jwt_algorithm=get_env("JWT_ALGORITHM", "HS256") or "HS256",
        token_ttl_minutes=get_env_int("JWT_TTL_MINUTES", 1440),
    )


def load_notification_config() -> NotificationConfig:
    timeout = get_env("NOTIFY_WEBHOOK_TIMEOUT")
    return NotificationConfig(
        webhook_url=get_env("NOTIFY_WEBHOOK_URL") or None,
        webhook_timeout=float(timeout) if timeout else 5.0,
    )


def load_app_config() -> AppConfig:
    """
    Read every section from the environment.

    Raises:
        ValidationError: If a value fails model validation
        ConfigurationError: If a required variable is missing
    """
    environment = _parse_choice(Environment, "ENVIRONMENT", require_env("ENVIRONMENT"))

    return AppConfig(
        app_title=require_env("APP_TITLE"),
        app_version=require_env("APP_VERSION"),
        environment=environment,
        logging=load_logging_config(),
        auth=load_auth_config(),
        notifications=load_notification_config(),
        database=load_database_config(environment),
        settings_cache_ttl=get_env_int("SETTINGS_CACHE_TTL", 60),
    )


__all__ = [
    "AppConfig",
    "AuthConfig",
    "DatabaseConfig",
    "NotificationConfig",
    "load_app_config",
]
