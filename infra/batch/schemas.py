from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from infra.jobs.schemas import JobType


class BatchType(str, Enum):
    OCR = "ocr"
    TRANSLATE = "translate"


JOB_TYPE_FOR_BATCH = {
    BatchType.OCR: JobType.BATCH_OCR,
    BatchType.TRANSLATE: JobType.BATCH_TRANSLATE,
}
BATCH_TYPE_FOR_JOB = {v: k for k, v in JOB_TYPE_FOR_BATCH.items()}


def parse_batch_type(value) -> BatchType:
    """Accept 'ocr'/'translate' as well as the job-level 'batch_ocr'/'batch_translate'."""
    if isinstance(value, BatchType):
        return value
    if isinstance(value, JobType):
        return BATCH_TYPE_FOR_JOB[value]
    value = str(value)
    if value.startswith('batch_'):
        value = value[len('batch_'):]
    return BatchType(value)


class BatchState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


TERMINAL_BATCH_STATES = {BatchState.SUCCEEDED, BatchState.FAILED, BatchState.CANCELLED}

# The one place provider state strings are interpreted.
STATE_MAP = {
    'JOB_STATE_PENDING': BatchState.PENDING,
    'JOB_STATE_QUEUED': BatchState.PENDING,
    'BATCH_STATE_PENDING': BatchState.PENDING,
    'JOB_STATE_RUNNING': BatchState.RUNNING,
    'BATCH_STATE_RUNNING': BatchState.RUNNING,
    'JOB_STATE_SUCCEEDED': BatchState.SUCCEEDED,
    'BATCH_STATE_SUCCEEDED': BatchState.SUCCEEDED,
    'JOB_STATE_FAILED': BatchState.FAILED,
    'BATCH_STATE_FAILED': BatchState.FAILED,
    'JOB_STATE_EXPIRED': BatchState.FAILED,
    'BATCH_STATE_EXPIRED': BatchState.FAILED,
    'JOB_STATE_CANCELLED': BatchState.CANCELLED,
    'BATCH_STATE_CANCELLED': BatchState.CANCELLED,
}


def normalize_state(raw: Optional[str]) -> BatchState:
    return STATE_MAP.get((raw or '').strip().upper(), BatchState.UNKNOWN)


class BatchCounts(BaseModel):
    total: int = 0
    success: int = 0
    fail: int = 0


class BatchJob(BaseModel):
    job_name: str
    book_id: str
    job_id: Optional[str] = None
    type: BatchType
    model: str
    language: str
    target_language: Optional[str] = None
    page_ids: List[str] = Field(default_factory=list)
    page_count: int = 0
    status: BatchState = BatchState.PENDING
    provider_state: Optional[str] = None
    stats: BatchCounts = Field(default_factory=BatchCounts)
    results_collected: bool = False
    # Set when the job was cancelled and the provider finished anyway
    collection_skipped: bool = False
    success_count: int = 0
    fail_count: int = 0
    error: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None
    completed_at: Optional[str] = None

    @property
    def is_live(self) -> bool:
        """Still waiting on the provider or on collection."""
        if self.results_collected or self.collection_skipped:
            return False
        return self.status not in (BatchState.FAILED, BatchState.CANCELLED)


@dataclass
class Submitted:
    job_name: str
    pages_submitted: int
    job_id: str
    skipped: List[str] = field(default_factory=list)


@dataclass
class NoPages:
    message: str = "no pages"


@dataclass
class PrepareFailed:
    """Candidates existed but not one request could be built."""
    attempted: int
    skipped: List[str] = field(default_factory=list)
    message: str = "Failed to prepare any images for batch"


@dataclass
class PollResult:
    job_name: str
    status: BatchState
    collected: bool
    results_collected: bool
    success_count: int = 0
    fail_count: int = 0
    skipped_reason: Optional[str] = None

    def to_dict(self):
        return {
            'jobName': self.job_name,
            'status': self.status.value,
            'collected': self.collected,
            'resultsCollected': self.results_collected,
            'successCount': self.success_count,
            'failCount': self.fail_count,
            'skippedReason': self.skipped_reason,
        }
