class JobError(Exception):
    """Base class for job subsystem errors."""


class NotFound(JobError):
    def __init__(self, job_id: str):
        super().__init__(f"job {job_id} not found")
        self.job_id = job_id


class InvalidTransition(JobError):
    def __init__(self, job_id: str, current: str, target: str):
        super().__init__(f"job {job_id} cannot move from {current} to {target}")
        self.job_id = job_id
        self.current = current
        self.target = target


class UnregisteredType(JobError):
    def __init__(self, job_type: str):
        super().__init__(f"no handler registered for job type {job_type!r}")
        self.job_type = job_type


class HandlerAlreadyRegistered(JobError):
    def __init__(self, job_type: str):
        super().__init__(f"a handler is already registered for job type {job_type!r}")
        self.job_type = job_type


class QueueFull(JobError):
    def __init__(self, maxsize: int):
        super().__init__(f"job queue is full ({maxsize} pending)")
        self.maxsize = maxsize


class ProcessingError(JobError):
    """Raised by handlers to report an expected failure; recorded on the job."""
