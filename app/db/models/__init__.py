# app/db/models/__init__.py
from .db_base_model import *
from .user_table import *
from .center_table import *
from .service_table import *
from .staff_table import *
from .appointment_table import *
from .notification_table import *
from .settings_table import *
