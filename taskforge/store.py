import copy
import dataclasses
import itertools
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from .errors import InvalidTransition, NotFound
from .models import TRANSITIONS, Job, JobState


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _snapshot(job: Job) -> Job:
    # Records are frozen; only the nested containers need copying.
    return dataclasses.replace(
        job,
        payload=copy.deepcopy(job.payload),
        result=copy.deepcopy(job.result),
        error=copy.deepcopy(job.error),
    )


class JobStore:
    """Authoritative id -> Job mapping, safe to share between threads and tasks.

    Every mutation swaps in a new frozen record under one lock, so a reader
    sees either the old record or the new one, never a mix of both.
    """

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count(1)

    def create(self, job_type: str, payload: Dict[str, Any]) -> str:
        with self._lock:
            job_id = str(next(self._ids))
            self._jobs[job_id] = Job(
                id=job_id,
                type=job_type,
                payload=copy.deepcopy(payload),
                state=JobState.PENDING,
                created_at=_now(),
            )
        return job_id

    def transition(
        self,
        job_id: str,
        new_state: JobState,
        result: Any = None,
        error: Optional[Dict[str, str]] = None,
    ) -> Job:
        new_state = JobState(new_state)
        if result is not None and new_state is not JobState.COMPLETED:
            raise ValueError("a result can only be stored on a completed job")
        if new_state is JobState.FAILED and error is None:
            raise ValueError("a failed job requires an error")
        if error is not None and new_state is not JobState.FAILED:
            raise ValueError("an error can only be stored on a failed job")

        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                raise NotFound(job_id)
            if new_state not in TRANSITIONS[current.state]:
                raise InvalidTransition(job_id, current.state.value, new_state.value)

            changes: Dict[str, Any] = {"state": new_state}
            if new_state is JobState.ACTIVE:
                changes["started_at"] = _now()
            else:
                changes["finished_at"] = _now()
                changes["result"] = copy.deepcopy(result)
                changes["error"] = copy.deepcopy(error)
            updated = dataclasses.replace(current, **changes)
            self._jobs[job_id] = updated
            return _snapshot(updated)

    def get(self, job_id: str) -> Job:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise NotFound(job_id)
            return _snapshot(job)

    def list(self, state: Optional[JobState] = None) -> List[Job]:
        with self._lock:
            jobs = [j for j in self._jobs.values() if state is None or j.state is JobState(state)]
            return [_snapshot(j) for j in jobs]

    def counts(self) -> Dict[str, int]:
        out = {s.value: 0 for s in JobState}
        with self._lock:
            for job in self._jobs.values():
                out[job.state.value] += 1
        return out

    def discard(self, job_id: str) -> bool:
        """Remove a job that never left the pending state."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.state is not JobState.PENDING:
                return False
            del self._jobs[job_id]
            return True

    def evict(self, older_than: float, on_evict: Optional[Callable[[str], None]] = None) -> int:
        """Drop terminal jobs that finished more than `older_than` seconds ago."""
        cutoff = _now() - timedelta(seconds=older_than)
        with self._lock:
            stale = [
                job_id
                for job_id, job in self._jobs.items()
                if job.state.terminal and job.finished_at is not None and job.finished_at < cutoff
            ]
            for job_id in stale:
                del self._jobs[job_id]
        if on_evict is not None:
            for job_id in stale:
                on_evict(job_id)
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
