# app/api/v1/__init__.py
from .appointment_router import *
from .notification_router import *
from .staff_router import *
from .admin_router import *
