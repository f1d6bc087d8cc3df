# common/config/initialize_config.py
"""
One-shot startup: read the environment, validate it and configure logging.

Everything else reads the result through get_config().
"""
from typing import Optional
from pydantic import ValidationError
from .app_config import AppConfig, load_app_config
from .structlog_config import configure_structlog
from common.api_error import ConfigurationError

_current: Optional[AppConfig] = None


def _format_validation_error(error: ValidationError) -> str:
    lines = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "config"
        lines.append(f"  - {location}: {item['msg']}")
    return "Configuration validation failed:\n" + "\n".join(lines)


def initialize_config() -> AppConfig:
    """
    Load the configuration and make it the process-wide current one.

    Safe to call again: the environment is re-read and the stored
    config replaced. structlog is only reconfigured if the level changes,
    which it refuses to do within one process.

    Raises:
        ConfigurationError: If a variable is missing or invalid
    """
    global _current

    try:
        config = load_app_config()
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e)) from e
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    configure_structlog(config.logging.level_int, json_logs=config.logging.json_logs)
    _current = config
    return config


def get_config() -> AppConfig:
    """
    Raises:
        RuntimeError: If initialize_config() has not run yet
    """
    if _current is None:
        raise RuntimeError(
            "Configuration not initialized. Call initialize_config() at startup."
        )
    return _current


__all__ = ["initialize_config", "get_config"]
