# app/db/__init__.py
from .db_manager import DbManager
from .deps import get_db

__all__ = ["DbManager", "get_db"]
