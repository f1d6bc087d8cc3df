# app/db/schemas/__init__.py
from .base_schema import *
from .appointment_schemas import *
from .notification_schemas import *
from .dashboard_schemas import *
from .settings_schemas import *
