"""
Database configuration and models.
"""

from offplan_xirr.db.database import engine, SessionLocal, get_db_context, init_db
from offplan_xirr.db.models import Base, CachedBlob

__all__ = ["engine", "SessionLocal", "get_db_context", "init_db", "Base", "CachedBlob"]
