# common/logger/__init__.py
from .logger import logger, AppLogger, get_app_logger

__all__ = ["logger", "AppLogger", "get_app_logger"]
