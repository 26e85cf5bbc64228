# cms_staging/utils/cache.py
import threading
import time
from typing import Any, Dict, Optional, Protocol, Tuple


class CacheLayer(Protocol):
    """Collaborator notified after a stage publish has committed."""

    def invalidate(self, stage_id: str) -> None:
        ...


class StageCache:
    """
    Process-local cache partitioned by stage.

    - Fixed TTL: entries expire ttl_seconds after being set.
    - invalidate(stage_id) drops every entry of that stage.
    - Thread-safe (one lock, held only around dict access).
    """

    def __init__(self, ttl_seconds: int = 300) -> None:
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        # stage_id -> {key: (value, expires_at)}
        self._items: Dict[str, Dict[str, Tuple[Any, float]]] = {}

    def get(self, stage_id: str, key: str) -> Optional[Any]:
        now = time.monotonic()
        with self._lock:
            bucket = self._items.get(stage_id)
            if not bucket or key not in bucket:
                return None
            value, expires_at = bucket[key]
            if expires_at <= now:
                del bucket[key]
                return None
            return value

    def set(self, stage_id: str, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ttl = ttl_seconds if ttl_seconds and ttl_seconds > 0 else self.ttl_seconds
        with self._lock:
            self._items.setdefault(stage_id, {})[key] = (value, time.monotonic() + ttl)

    def invalidate(self, stage_id: str) -> None:
        with self._lock:
            self._items.pop(stage_id, None)

    def size(self, stage_id: Optional[str] = None) -> int:
        with self._lock:
            if stage_id is not None:
                return len(self._items.get(stage_id, {}))
            return sum(len(bucket) for bucket in self._items.values())
