from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class StepName(str, Enum):
    SPLIT_CHECK = "split_check"
    OCR = "ocr"
    TRANSLATE = "translate"
    SUMMARIZE = "summarize"
    EDITION = "edition"


STEP_ORDER = [
    StepName.SPLIT_CHECK,
    StepName.OCR,
    StepName.TRANSLATE,
    StepName.SUMMARIZE,
    StepName.EDITION,
]


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


DONE_STEP_STATUSES = {StepStatus.COMPLETED, StepStatus.SKIPPED}


class PipelineStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


class StepState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: StepStatus = StepStatus.PENDING
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    job_id: Optional[str] = Field(None, alias="jobId")


class PipelineConfig(BaseModel):
    model: str = "gemini-2.5-flash"
    language: str = "Latin"
    target_language: str = "English"
    license: str = "CC0-1.0"


class PipelineState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: PipelineStatus = PipelineStatus.IDLE
    current_step: Optional[StepName] = Field(None, alias="currentStep")
    steps: Dict[StepName, StepState] = Field(default_factory=dict)
    config: PipelineConfig = Field(default_factory=PipelineConfig)
    error: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    @classmethod
    def initial(cls, config: Optional[PipelineConfig] = None) -> "PipelineState":
        return cls(
            steps={step: StepState() for step in STEP_ORDER},
            config=config or PipelineConfig(),
        )

    def step(self, name: StepName) -> StepState:
        if name not in self.steps:
            self.steps[name] = StepState()
        return self.steps[name]

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode='json', by_alias=True)


@dataclass
class StepOutcome:
    """What a step implementation reports back to the orchestrator."""
    status: str  # completed | skipped | failed | job_created
    result: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    job_id: Optional[str] = None

    @classmethod
    def completed(cls, job_id: Optional[str] = None, **result) -> "StepOutcome":
        return cls(status="completed", result=result, job_id=job_id)

    @classmethod
    def skipped(cls, **result) -> "StepOutcome":
        return cls(status="skipped", result=result)

    @classmethod
    def failed(cls, error: str, job_id: Optional[str] = None, **result) -> "StepOutcome":
        return cls(status="failed", error=error, result=result, job_id=job_id)

    @classmethod
    def job_created(cls, job_id: str, **result) -> "StepOutcome":
        return cls(status="job_created", job_id=job_id, result={'job_id': job_id, **result})


@dataclass
class StepRun:
    step: StepName
    outcome: StepOutcome
    next_step: Optional[StepName] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'step': self.step.value,
            'status': self.outcome.status,
            'nextStep': self.next_step.value if self.next_step else None,
        }
        if self.outcome.result:
            data['result'] = self.outcome.result
        if self.outcome.error:
            data['error'] = self.outcome.error
        if self.outcome.job_id:
            data['jobId'] = self.outcome.job_id
        return data
