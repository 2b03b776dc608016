from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..auth import require_api_key
from ..cache import ResponseCache, status_cache_key
from ..deps import get_cache, get_queue
from ..errors import InvalidTransition, NotFound, QueueFull, UnregisteredType
from ..log import get_logger
from ..models import JobState, JobType
from ..queue import JobQueue
from ..schemas import EmailCreate, JobCreate, JobListResponse, JobResponse, JobStats, JobSubmitted, ReportCreate

router = APIRouter()
logger = get_logger(__name__)


def _submit(queue: JobQueue, job_type: str, payload: Dict[str, Any]) -> JobSubmitted:
    try:
        job_id = queue.submit(job_type, payload)
    except UnregisteredType as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except QueueFull as exc:
        logger.warning("submission rejected", job_type=job_type, reason=str(exc))
        raise HTTPException(status_code=503, detail=str(exc))
    return JobSubmitted(job_id=job_id, state=JobState.PENDING.value)


@router.post("/jobs", response_model=JobSubmitted, status_code=202)
async def create_job(
    job: JobCreate,
    authorized: bool = Depends(require_api_key),
    queue: JobQueue = Depends(get_queue),
):
    return _submit(queue, job.type, job.payload)


@router.post("/emails", response_model=JobSubmitted, status_code=202)
async def send_email(
    email: EmailCreate,
    authorized: bool = Depends(require_api_key),
    queue: JobQueue = Depends(get_queue),
):
    return _submit(queue, JobType.EMAIL_SEND.value, email.model_dump())


@router.post("/reports", response_model=JobSubmitted, status_code=202)
async def generate_report(
    report: ReportCreate,
    authorized: bool = Depends(require_api_key),
    queue: JobQueue = Depends(get_queue),
):
    return _submit(queue, JobType.REPORT_GENERATE.value, report.model_dump())


@router.get("/jobs", response_model=JobListResponse)
async def list_jobs(state: Optional[JobState] = None, queue: JobQueue = Depends(get_queue)):
    jobs = queue.store.list(state)
    return JobListResponse(jobs=[JobResponse.from_job(j) for j in jobs])


@router.get("/jobs/stats", response_model=JobStats)
async def job_stats(queue: JobQueue = Depends(get_queue)):
    return JobStats(
        counts=queue.store.counts(),
        queue_depth=queue.depth,
        active=queue.active_count,
        workers=queue.workers,
    )


@router.get("/jobs/{job_id}", response_model=JobResponse, response_model_exclude_none=True)
async def get_job(
    job_id: str,
    queue: JobQueue = Depends(get_queue),
    cache: ResponseCache = Depends(get_cache),
):
    # Terminal jobs never change again, so their responses can be cached.
    key = status_cache_key(job_id)
    cached = cache.get(key)
    if cached is not None:
        return cached

    try:
        job = queue.store.get(job_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="job not found")

    response = JobResponse.from_job(job)
    if job.state.terminal:
        cache.set(key, response)
    return response


@router.post("/jobs/{job_id}/resubmit", response_model=JobSubmitted, status_code=202)
async def resubmit_job(
    job_id: str,
    authorized: bool = Depends(require_api_key),
    queue: JobQueue = Depends(get_queue),
):
    try:
        new_id = queue.resubmit(job_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="job not found")
    except InvalidTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except QueueFull as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    logger.info("job resubmitted", job_id=job_id, new_job_id=new_id)
    return JobSubmitted(job_id=new_id, state=JobState.PENDING.value)
