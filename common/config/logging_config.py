# common/config/logging_config.py
from dataclasses import dataclass
from .env_config import get_env, require_env
from .config_types import EnvLogLevel, EnvLogFormat
from common.api_error import ConfigurationError

LOG_LEVEL_ENV_KEY = "LOG_LEVEL"
LOG_FORMAT_ENV_KEY = "LOG_FORMAT"


@dataclass(frozen=True)
class LoggingConfig:
    log_level: EnvLogLevel
    log_format: EnvLogFormat = EnvLogFormat.CONSOLE

    @property
    def level_value(self) -> str:
        return self.log_level.value

    @property
    def level_int(self) -> int:
        return self.log_level.level

    @property
    def json_logs(self) -> bool:
        return self.log_format.is_json


def load_logging_config() -> LoggingConfig:
    """
    LOG_LEVEL is required; LOG_FORMAT defaults to "console".

    Raises:
        ConfigurationError: If either value is missing or unknown
    """
    raw_level = require_env(LOG_LEVEL_ENV_KEY).upper()
    raw_format = (get_env(LOG_FORMAT_ENV_KEY) or EnvLogFormat.CONSOLE.value).lower()

    try:
        log_level = EnvLogLevel(raw_level)
    except ValueError as exc:
        valid = ", ".join(level.value for level in EnvLogLevel)
        raise ConfigurationError(
            f"{LOG_LEVEL_ENV_KEY}={raw_level} is invalid. Must be one of [{valid}]"
        ) from exc

    try:
        log_format = EnvLogFormat(raw_format)
    except ValueError as exc:
        valid = ", ".join(fmt.value for fmt in EnvLogFormat)
        raise ConfigurationError(
            f"{LOG_FORMAT_ENV_KEY}={raw_format} is invalid. Must be one of [{valid}]"
        ) from exc

    return LoggingConfig(log_level=log_level, log_format=log_format)


__all__ = [
    "LoggingConfig",
    "load_logging_config",
]
