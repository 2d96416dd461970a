"""
Exchange rate cache backends.

A cache stores one serialized blob of shape
``{"rates": {...}, "lastUpdated": "<ISO-8601>", "source": "<provenance>"}``
under a fixed key. Loads that fail are treated as a cache miss.
"""

import copy
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from offplan_xirr.config import get_settings
from offplan_xirr.db.database import get_db_context
from offplan_xirr.db.models import CachedBlob

logger = logging.getLogger(__name__)


class RateCache(ABC):
    """Storage for the last successful exchange rate snapshot."""

    @abstractmethod
    def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored blob, or None on a miss."""

    @abstractmethod
    def save(self, blob: Dict[str, Any]) -> None:
        """Overwrite the stored blob."""


class InMemoryRateCache(RateCache):
    """Process-local cache, used by default and in tests."""

    def __init__(self, blob: Optional[Dict[str, Any]] = None):
        self._blob = copy.deepcopy(blob) if blob is not None else None

    def load(self) -> Optional[Dict[str, Any]]:
        if self._blob is None:
            return None
        return copy.deepcopy(self._blob)

    def save(self, blob: Dict[str, Any]) -> None:
        self._blob = copy.deepcopy(blob)


class DatabaseRateCache(RateCache):
    """Cache stored as a JSON row in the ``cached_blobs`` table."""

    def __init__(self, key: Optional[str] = None, session_factory=None):
        self.key = key or get_settings().rates_cache_key
        self.session_factory = session_factory

    def load(self) -> Optional[Dict[str, Any]]:
        try:
            with get_db_context(self.session_factory) as db:
                row = db.get(CachedBlob, self.key)
                if row is None:
                    return None
                return copy.deepcopy(row.payload)
        except SQLAlchemyError as e:
            logger.warning(f"Could not read rate cache '{self.key}': {e}")
            return None

    def save(self, blob: Dict[str, Any]) -> None:
        try:
            with get_db_context(self.session_factory) as db:
                db.merge(
                    CachedBlob(
                        key=self.key,
                        payload=copy.deepcopy(blob),
                        updated_at=datetime.utcnow(),
                    )
                )
        except SQLAlchemyError as e:
            logger.warning(f"Could not write rate cache '{self.key}': {e}")


def get_rate_cache(backend: Optional[str] = None) -> RateCache:
    """Create the cache backend named in settings."""
    backend = backend or get_settings().rates_cache_backend
    if backend == "database":
        return DatabaseRateCache()
    if backend == "memory":
        return InMemoryRateCache()
    raise ValueError(f"Unknown rate cache backend: {backend}")
