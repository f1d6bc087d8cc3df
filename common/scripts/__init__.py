# common/scripts/__init__.py
from .get_date_range import *
