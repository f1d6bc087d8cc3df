# common/config/env_config.py
import os
from typing import Optional
from common.api_error import ConfigurationError


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    """
    Get Env variable with optional default
    """
    return os.getenv(name, default=default)


def require_env(name: str) -> str:
    """
    Get required environment variable or raise immediately.
    """
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(f"Missing required env variables: {name}")
    return value


def get_env_int(name: str, default: int) -> int:
    """Integer env variable with default; non-numeric values fail fast."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got: {raw}") from exc


__all__ = ["require_env", "get_env", "get_env_int"]
