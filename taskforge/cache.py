import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from . import config
from . import metrics
from .log import get_logger

logger = get_logger(__name__)


def status_cache_key(job_id: str) -> str:
    return f"/jobs/{job_id}"


class ResponseCache:
    """Key/value cache whose entries expire `ttl` seconds after `set`."""

    def __init__(self, default_ttl: float = config.CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[1] <= self._clock():
                del self._entries[key]
                entry = None
        if entry is None:
            metrics.cache_misses_total.inc()
            return None
        metrics.cache_hits_total.inc()
        logger.debug("cache hit", key=key)
        return entry[0]

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)
        logger.debug("cache set", key=key, ttl=ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
            for k in expired:
                del self._entries[k]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
