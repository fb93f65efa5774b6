"""Request bodies accepted by the HTTP API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BatchSubmitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    book_id: str = Field(..., alias="bookId", min_length=1)
    type: str
    limit: Optional[int] = None
    language: Optional[str] = None
    target_language: Optional[str] = Field(None, alias="targetLanguage")
    model: Optional[str] = None


class JobPatchRequest(BaseModel):
    """Either a state-machine action or a progress update, never both."""

    action: Optional[str] = None
    status: Optional[str] = None
    results: Optional[List[Dict[str, Any]]] = None
    error: Optional[str] = None

    @model_validator(mode='after')
    def check_shape(self):
        progress = self.status is not None or self.results is not None or self.error is not None
        if self.action and progress:
            raise ValueError("Send either an action or a progress update, not both")
        if not self.action and not progress:
            raise ValueError("Missing action or progress fields")
        return self


class PipelineActionRequest(BaseModel):
    action: str
    config: Optional[Dict[str, Any]] = None


class StepRequest(BaseModel):
    step: str
