"""
Database Module
"""
from .connection import init_database, close_database, get_db, get_db_dependency
from .models import Base
from .schema import create_schema, drop_schema

__all__ = [
    "init_database",
    "close_database",
    "get_db",
    "get_db_dependency",
    "Base",
    "create_schema",
    "drop_schema",
]
