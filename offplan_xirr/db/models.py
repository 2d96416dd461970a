"""
SQLAlchemy ORM models.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class CachedBlob(Base):
    """A serialized JSON blob stored under a fixed key."""

    __tablename__ = "cached_blobs"

    key = Column(String(255), primary_key=True)
    payload = Column(JSON, nullable=False)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )
