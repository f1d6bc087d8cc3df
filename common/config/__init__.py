# common/config/__init__.py
"""
Environment-driven settings: parsed enums, validated pydantic models and
the structlog bootstrap. Call initialize_config() once, then get_config().
"""

from .config_types import *
from .env_config import *
from .logging_config import *
from .app_config import *
from .structlog_config import *
from .initialize_config import *
