# common/__init__.py
from .api_error import *
from .config import DatabaseConfig, AuthConfig, NotificationConfig
from .context_vars import request_timer_context_var
from .logger.logger import logger, get_app_logger, AppLogger
