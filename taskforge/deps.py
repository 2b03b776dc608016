from typing import Optional

from .cache import ResponseCache, status_cache_key
from .handlers import register_builtin_handlers
from .queue import JobQueue

# Process-wide singletons shared by the API and the worker pool
_queue: Optional[JobQueue] = None
_cache: Optional[ResponseCache] = None


def get_queue() -> JobQueue:
    global _queue
    if _queue is None:
        _queue = JobQueue()
        register_builtin_handlers(_queue)
    return _queue


def get_cache() -> ResponseCache:
    global _cache
    if _cache is None:
        _cache = ResponseCache()
    return _cache


def reset() -> None:
    """Forget the singletons; the next lookup builds fresh ones."""
    global _queue, _cache
    _queue = None
    _cache = None


def evict_finished(older_than: float) -> int:
    """Sweep old terminal jobs and their cached status responses."""
    cache = get_cache()
    return get_queue().store.evict(older_than, on_evict=lambda job_id: cache.delete(status_cache_key(job_id)))
