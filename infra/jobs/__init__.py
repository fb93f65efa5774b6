from infra.jobs.schemas import (
    Job,
    JobStatus,
    JobType,
    JobProgress,
    SuccessResult,
    FailureResult,
    TERMINAL_STATUSES,
    result_from_dict,
)
from infra.jobs.registry import JobRegistry, TRANSITIONS, ACTIONS

__all__ = [
    "Job",
    "JobStatus",
    "JobType",
    "JobProgress",
    "SuccessResult",
    "FailureResult",
    "TERMINAL_STATUSES",
    "result_from_dict",
    "JobRegistry",
    "TRANSITIONS",
    "ACTIONS",
]
