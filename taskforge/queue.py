"""In-process job queue backed by a bounded pool of asyncio workers.

Submissions are persisted in the JobStore as pending and their ids pushed
onto a FIFO queue. Each worker pulls one id at a time, marks the job active,
runs the handler registered for its type and records the outcome. Handler
failures become failed jobs; they are never raised to the submitter and are
never retried automatically.
"""
import asyncio
import inspect
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from . import config
from . import metrics
from .errors import (
    HandlerAlreadyRegistered,
    InvalidTransition,
    NotFound,
    ProcessingError,
    QueueFull,
    UnregisteredType,
)
from .log import get_logger
from .models import JobState
from .store import JobStore

logger = get_logger(__name__)

Handler = Callable[[Dict[str, Any]], Any]


def _is_async(handler: Handler) -> bool:
    return inspect.iscoroutinefunction(handler) or inspect.iscoroutinefunction(
        getattr(handler, "__call__", None)
    )


def error_data(exc: BaseException) -> Dict[str, str]:
    return {"type": type(exc).__name__, "message": str(exc)}


class JobQueue:
    def __init__(
        self,
        store: Optional[JobStore] = None,
        workers: int = config.WORKER_COUNT,
        maxsize: int = config.QUEUE_MAXSIZE,
    ):
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.store = store if store is not None else JobStore()
        self.workers = workers
        self.maxsize = maxsize
        self._queue: "asyncio.Queue[str]" = asyncio.Queue(maxsize=maxsize)
        self._handlers: Dict[str, Tuple[Handler, bool]] = {}
        self._tasks: List[asyncio.Task] = []
        self._active = 0
        self.peak_active = 0

    # ---------- Configuration ----------
    def register_handler(self, job_type: str, handler: Handler) -> None:
        if self._tasks:
            raise RuntimeError("handlers must be registered before the worker pool starts")
        if job_type in self._handlers:
            raise HandlerAlreadyRegistered(job_type)
        self._handlers[job_type] = (handler, _is_async(handler))

    def handler(self, job_type: str) -> Callable[[Handler], Handler]:
        """Decorator form of `register_handler`."""

        def decorator(fn: Handler) -> Handler:
            self.register_handler(job_type, fn)
            return fn

        return decorator

    @property
    def job_types(self) -> List[str]:
        return list(self._handlers)

    # ---------- Producer side ----------
    def submit(self, job_type: str, payload: Dict[str, Any]) -> str:
        """Create a pending job and enqueue it without blocking.

        Raises UnregisteredType or QueueFull; neither leaves a job record behind.
        Must be called from the thread running the event loop.
        """
        self._require_handler(job_type)
        if self._queue.full():
            metrics.error_count.inc()
            raise QueueFull(self.maxsize)
        job_id = self.store.create(job_type, payload)
        self._queue.put_nowait(job_id)
        self._submitted(job_id, job_type)
        return job_id

    async def submit_wait(self, job_type: str, payload: Dict[str, Any]) -> str:
        """Like `submit`, but waits for queue space instead of raising QueueFull."""
        self._require_handler(job_type)
        job_id = self.store.create(job_type, payload)
        try:
            await self._queue.put(job_id)
        except asyncio.CancelledError:
            # never enqueued, so no worker would ever pick it up
            self.store.discard(job_id)
            raise
        self._submitted(job_id, job_type)
        return job_id

    def resubmit(self, job_id: str) -> str:
        """Submit a fresh job with the type and payload of a failed one."""
        job = self.store.get(job_id)
        if job.state is not JobState.FAILED:
            raise InvalidTransition(job_id, job.state.value, JobState.PENDING.value)
        return self.submit(job.type, job.payload)

    def status(self, job_id: str) -> Dict[str, Any]:
        return self.store.get(job_id).status()

    def _require_handler(self, job_type: str) -> None:
        if job_type not in self._handlers:
            raise UnregisteredType(job_type)

    def _submitted(self, job_id: str, job_type: str) -> None:
        metrics.jobs_submitted_total.labels(type=job_type).inc()
        metrics.queue_depth.set(self._queue.qsize())
        logger.info("job submitted", job_id=job_id, job_type=job_type)

    # ---------- Worker pool ----------
    @property
    def running(self) -> bool:
        return bool(self._tasks)

    @property
    def active_count(self) -> int:
        return self._active

    @property
    def depth(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        if self._tasks:
            raise RuntimeError("worker pool is already running")
        self._tasks = [
            asyncio.create_task(self._worker_loop(f"worker-{i + 1}"), name=f"taskforge-worker-{i + 1}")
            for i in range(self.workers)
        ]
        logger.info("worker pool started", workers=self.workers, maxsize=self.maxsize)

    async def join(self) -> None:
        """Wait until every enqueued job has been processed."""
        await self._queue.join()

    async def stop(self, drain: bool = False) -> None:
        if drain:
            await self.join()
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("worker pool stopped", pending=self._queue.qsize())

    async def _worker_loop(self, name: str) -> None:
        while True:
            job_id = await self._queue.get()
            metrics.queue_depth.set(self._queue.qsize())
            try:
                await self._execute(job_id, name)
            except Exception:
                metrics.error_count.inc()
                logger.exception("worker: error handling job", job_id=job_id, worker=name)
            finally:
                self._queue.task_done()

    async def _execute(self, job_id: str, worker: str) -> None:
        try:
            job = self.store.transition(job_id, JobState.ACTIVE)
        except (NotFound, InvalidTransition) as exc:
            logger.warning("job skipped", job_id=job_id, worker=worker, reason=str(exc))
            return

        log = logger.bind(job_id=job_id, job_type=job.type, worker=worker)
        handler, is_async = self._handlers[job.type]

        self._active += 1
        self.peak_active = max(self.peak_active, self._active)
        metrics.jobs_active.inc()
        start = time.monotonic()
        log.info("job started")
        try:
            if is_async:
                result = await handler(job.payload)
            else:
                result = await asyncio.to_thread(handler, job.payload)
        except asyncio.CancelledError:
            self._finish(log, job_id, job.type, JobState.FAILED,
                         error={"type": "CancelledError", "message": "worker stopped before the job finished"})
            raise
        except ProcessingError as exc:
            log.warning("handler reported failure", error=str(exc))
            self._finish(log, job_id, job.type, JobState.FAILED, error=error_data(exc))
        except Exception as exc:
            log.warning("handler raised", error=str(exc), exc_info=True)
            self._finish(log, job_id, job.type, JobState.FAILED, error=error_data(exc))
        else:
            self._finish(log, job_id, job.type, JobState.COMPLETED, result=result)
        finally:
            self._active -= 1
            metrics.jobs_active.dec()
            metrics.execution_latency_seconds.observe(time.monotonic() - start)

    def _finish(self, log, job_id: str, job_type: str, state: JobState, result: Any = None,
                error: Optional[Dict[str, str]] = None) -> None:
        try:
            self.store.transition(job_id, state, result=result, error=error)
        except InvalidTransition as exc:
            # Someone else (the watchdog) already finished this job.
            metrics.error_count.inc()
            log.warning("job outcome dropped", reason=str(exc))
            return
        except Exception as exc:
            if state is not JobState.COMPLETED:
                raise
            # e.g. a result the store cannot copy; the job is still active
            log.exception("could not store job result")
            self._finish(log, job_id, job_type, JobState.FAILED, error=error_data(exc))
            return
        metrics.jobs_finished_total.labels(type=job_type, state=state.value).inc()
        log.info(f"job {state.value}")


