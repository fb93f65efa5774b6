from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, computed_field


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}


class JobType(str, Enum):
    BATCH_OCR = "batch_ocr"
    BATCH_TRANSLATE = "batch_translate"


class SuccessResult(BaseModel):
    kind: Literal["success"] = "success"
    page_id: str
    payload: Dict[str, Any] = Field(default_factory=dict)

    @computed_field
    @property
    def success(self) -> bool:
        return True


class FailureResult(BaseModel):
    kind: Literal["failure"] = "failure"
    page_id: str
    error: str

    @computed_field
    @property
    def success(self) -> bool:
        return False


JobResult = Annotated[Union[SuccessResult, FailureResult], Field(discriminator="kind")]


def result_from_dict(data: Dict[str, Any]) -> Union[SuccessResult, FailureResult]:
    """Parse a result reported by a worker, which may carry `success` instead of `kind`."""
    kind = data.get("kind")
    if kind is None:
        kind = "success" if data.get("success") else "failure"
    if kind == "success":
        return SuccessResult(page_id=data["page_id"], payload=data.get("payload") or {})
    return FailureResult(page_id=data["page_id"], error=data.get("error") or "unknown error")


class JobProgress(BaseModel):
    total: int
    completed: int
    failed: int


class Job(BaseModel):
    id: str
    type: JobType
    status: JobStatus = JobStatus.PENDING
    book_id: str
    page_ids: List[str] = Field(default_factory=list)
    results: List[JobResult] = Field(default_factory=list)
    config: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    batch_job_name: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    @computed_field
    @property
    def progress(self) -> JobProgress:
        return JobProgress(
            total=len(self.page_ids),
            completed=sum(1 for r in self.results if isinstance(r, SuccessResult)),
            failed=sum(1 for r in self.results if isinstance(r, FailureResult)),
        )

    @property
    def succeeded_page_ids(self) -> List[str]:
        return [r.page_id for r in self.results if isinstance(r, SuccessResult)]

    @property
    def pending_page_ids(self) -> List[str]:
        """Page ids with no successful result yet, in job order."""
        done = set(self.succeeded_page_ids)
        return [page_id for page_id in self.page_ids if page_id not in done]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
