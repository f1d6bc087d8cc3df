# app/services/v1/__init__.py
from .auth_guard import *
from .notification_service import *
from .appointment_access import *
from .status_machine import *
from .document_validation_service import *
from .appointment_service import *
from .dashboard_service import *
from .settings_service import *
