"""
Result store for audit products
In-memory storage so finished audits can be fetched again by ID
"""

import uuid
from typing import Dict, Optional, Any
from datetime import datetime, timedelta, timezone
import threading
import logging

from byte_savings.models import AuditProduct
from byte_savings.types import ResultStoreStatsDict

logger = logging.getLogger(__name__)


class StoredAudit:
    """
    A finished audit kept for later retrieval

    Attributes:
        id: Unique identifier of the stored result
        audit_id: Detector that produced the product
        product: The audit product
        created_at: Timestamp when stored
        expires_at: Expiration timestamp
    """

    def __init__(
        self,
        audit_id: str,
        product: AuditProduct,
        result_id: Optional[str] = None,
        ttl_hours: Optional[int] = None,
    ):
        self.id = result_id or str(uuid.uuid4())
        self.audit_id = audit_id
        self.product = product
        self.created_at = datetime.now(timezone.utc)

        ttl = ttl_hours if ttl_hours is not None else 24
        self.expires_at = self.created_at + timedelta(hours=ttl)

    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) > self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "audit_id": self.audit_id,
            "product": self.product.model_dump(),
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }


class AuditResultStore:
    """
    Thread-safe in-memory store for audit products

    Expired results are dropped lazily; when full, the oldest result is evicted.
    """

    def __init__(self, max_size: int = 1000):
        self._store: Dict[str, StoredAudit] = {}
        self._lock = threading.RLock()
        self.max_size = max_size

    def store(self, result: StoredAudit) -> str:
        """
        Store an audit result

        Returns:
            Result ID
        """
        with self._lock:
            self._cleanup_expired()
            if len(self._store) >= self.max_size:
                self._evict_oldest()
            self._store[result.id] = result
            logger.debug(f"Stored audit result: {result.id} ({result.audit_id})")
            return result.id

    def get(self, result_id: str) -> Optional[StoredAudit]:
        """
        Retrieve an audit result by ID

        Returns:
            StoredAudit if found and not expired, None otherwise
        """
        with self._lock:
            result = self._store.get(result_id)
            if result is None:
                return None
            if result.is_expired():
                del self._store[result_id]
                logger.debug(f"Result {result_id} expired and removed")
                return None
            return result

    def delete(self, result_id: str) -> bool:
        """Delete a result by ID, returning whether it existed"""
        with self._lock:
            if result_id in self._store:
                del self._store[result_id]
                logger.debug(f"Deleted audit result: {result_id}")
                return True
            return False

    def _cleanup_expired(self) -> None:
        # Caller holds self._lock
        expired_ids = [rid for rid, result in self._store.items() if result.is_expired()]
        for result_id in expired_ids:
            del self._store[result_id]
            logger.debug(f"Cleaned up expired result: {result_id}")

    def _evict_oldest(self) -> None:
        # Caller holds self._lock
        if not self._store:
            return
        oldest_id = min(self._store, key=lambda rid: self._store[rid].created_at)
        del self._store[oldest_id]
        logger.debug(f"Evicted oldest result: {oldest_id}")

    def get_stats(self) -> ResultStoreStatsDict:
        with self._lock:
            self._cleanup_expired()
            return {
                "size": len(self._store),
                "max_size": self.max_size,
                "results": [
                    {
                        "id": result.id,
                        "audit_id": result.audit_id,
                        "created_at": result.created_at.isoformat(),
                        "expires_at": result.expires_at.isoformat(),
                        "score": result.product.score,
                    }
                    for result in self._store.values()
                ],
            }


_result_store: Optional[AuditResultStore] = None
_store_lock = threading.Lock()


def get_result_store() -> AuditResultStore:
    """
    Get the global result store instance

    Returns:
        AuditResultStore singleton
    """
    global _result_store

    if _result_store is None:
        with _store_lock:
            if _result_store is None:
                from byte_savings.config import get_settings
                config = get_settings()
                _result_store = AuditResultStore(max_size=config.result_store_max_size)
                logger.info(f"Initialized result store with max_size={config.result_store_max_size}")

    return _result_store
