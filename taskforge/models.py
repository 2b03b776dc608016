from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class JobState(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED)


class JobType(str, Enum):
    EMAIL_SEND = "email_send"
    REPORT_GENERATE = "report_generate"


# pending -> active -> completed | failed
TRANSITIONS = {
    JobState.PENDING: {JobState.ACTIVE},
    JobState.ACTIVE: {JobState.COMPLETED, JobState.FAILED},
    JobState.COMPLETED: set(),
    JobState.FAILED: set(),
}


@dataclass(frozen=True)
class Job:
    id: str
    type: str
    payload: Dict[str, Any]
    state: JobState
    created_at: datetime
    result: Any = None
    error: Optional[Dict[str, str]] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def status(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"state": self.state.value}
        if self.state is JobState.COMPLETED:
            out["result"] = self.result
        elif self.state is JobState.FAILED:
            out["error"] = self.error
        return out
