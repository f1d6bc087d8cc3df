# common/api_error/config_error.py
class ConfigurationError(RuntimeError):
    """Startup-time failure: a required variable is missing or a value is invalid."""


__all__ = ["ConfigurationError"]
