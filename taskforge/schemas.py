from datetime import datetime
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional

from .models import Job


class JobCreate(BaseModel):
    type: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class EmailCreate(BaseModel):
    to: str
    subject: str = "Welcome to our platform!"
    content: str


class ReportCreate(BaseModel):
    user_id: str
    report_type: str = "activity"


class JobSubmitted(BaseModel):
    job_id: str
    state: str


class JobResponse(BaseModel):
    job_id: str
    type: str
    state: str
    result: Optional[Any] = None
    error: Optional[Dict[str, str]] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @classmethod
    def from_job(cls, job: Job) -> "JobResponse":
        return cls(
            job_id=job.id,
            type=job.type,
            state=job.state.value,
            result=job.result,
            error=job.error,
            created_at=job.created_at,
            started_at=job.started_at,
            finished_at=job.finished_at,
        )


class JobListResponse(BaseModel):
    jobs: list[JobResponse]


class JobStats(BaseModel):
    counts: Dict[str, int]
    queue_depth: int
    active: int
    workers: int
