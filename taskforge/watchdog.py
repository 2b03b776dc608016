"""Loop that force-fails jobs left active longer than a deadline.

Handlers that never return would otherwise keep a job active forever. The
worker running such a handler later finds the job already failed and drops
its outcome.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import List

from . import config
from . import metrics
from .errors import InvalidTransition, NotFound
from .log import get_logger
from .models import JobState
from .store import JobStore

logger = get_logger(__name__)


def expire_overdue(store: JobStore, deadline: float) -> List[str]:
    cutoff = datetime.now(timezone.utc) - timedelta(seconds=deadline)
    expired = []
    for job in store.list(JobState.ACTIVE):
        if job.started_at is None or job.started_at > cutoff:
            continue
        try:
            store.transition(
                job.id,
                JobState.FAILED,
                error={"type": "TimeoutError", "message": f"job exceeded its {deadline:g}s deadline"},
            )
        except (NotFound, InvalidTransition):
            # finished between the scan and the transition
            continue
        metrics.jobs_finished_total.labels(type=job.type, state=JobState.FAILED.value).inc()
        logger.warning("job timed out", job_id=job.id, job_type=job.type, deadline=deadline)
        expired.append(job.id)
    return expired


async def run_watchdog(
    store: JobStore,
    deadline: float = config.JOB_DEADLINE_SECONDS,
    poll_seconds: float = config.WATCHDOG_POLL_SECONDS,
):
    logger.info("watchdog started", deadline=deadline, poll_seconds=poll_seconds)
    try:
        while True:
            expire_overdue(store, deadline)
            await asyncio.sleep(poll_seconds)
    except asyncio.CancelledError:
        logger.info("watchdog stopped")
        raise
