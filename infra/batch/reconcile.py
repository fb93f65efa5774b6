"""
Pure reconciliation logic: no I/O, no clock, no locks.

`reconcile` decides what a poll should do given the stored batch record, the
local job mirroring it and a fresh provider snapshot. `pair_responses` turns
provider responses into per-page results. The reconciler applies both.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from infra.batch.schemas import BatchJob, BatchState, BatchType, TERMINAL_BATCH_STATES, normalize_state
from infra.gemini.schemas import ProviderResponse, ProviderSnapshot
from infra.jobs.schemas import FailureResult, Job, JobStatus, SuccessResult

AnyResult = Union[SuccessResult, FailureResult]


@dataclass
class ReconcileDecision:
    status: BatchState
    # Batch record fields that differ from what is stored
    updates: Dict[str, Any] = field(default_factory=dict)
    collect: bool = False
    # Local job status to apply when the remote batch ended without results
    job_status: Optional[JobStatus] = None
    job_error: Optional[str] = None
    skipped_reason: Optional[str] = None


def reconcile(batch: BatchJob, job: Optional[Job], snapshot: ProviderSnapshot) -> ReconcileDecision:
    status = normalize_state(snapshot.state)
    stats = snapshot.stats.to_dict()

    updates: Dict[str, Any] = {}
    # A collected batch keeps its final status whatever the provider says later
    if not batch.results_collected and batch.status != status:
        updates['status'] = status.value
    if batch.provider_state != snapshot.state:
        updates['provider_state'] = snapshot.state
    if batch.stats.model_dump() != stats:
        updates['stats'] = stats
    if snapshot.error and batch.error != snapshot.error:
        updates['error'] = snapshot.error

    decision = ReconcileDecision(status=status, updates=updates)

    if batch.results_collected:
        decision.status = batch.status
        decision.skipped_reason = 'already_collected'
        return decision

    if job is not None and job.status == JobStatus.CANCELLED:
        decision.skipped_reason = 'job_cancelled'
        # Once the provider is done too, nothing will ever collect this batch
        if status in TERMINAL_BATCH_STATES and not batch.collection_skipped:
            updates['collection_skipped'] = True
        return decision

    if status == BatchState.SUCCEEDED:
        if snapshot.responses is None:
            # Results not attached yet; a later poll collects them
            decision.skipped_reason = 'responses_unavailable'
        else:
            decision.collect = True
    elif status in (BatchState.FAILED, BatchState.CANCELLED):
        if job is not None and job.status in (JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.PAUSED):
            decision.job_status = JobStatus.FAILED
            decision.job_error = snapshot.error or f"Remote batch {status.value} ({snapshot.state})"

    return decision


def pair_responses(page_ids: List[str], responses: Optional[List[ProviderResponse]]) -> List[AnyResult]:
    """Pair submitted pages with provider responses.

    Responses carrying keys are matched by key. A page with no keyed response
    takes the unkeyed response at its position in submission order, if any.
    A missing, errored or empty response is a failure for that page only.
    """
    responses = responses or []
    keyed = {r.key: r for r in responses if r.key}

    results: List[AnyResult] = []
    for i, page_id in enumerate(page_ids):
        response = keyed.get(page_id)
        if response is None and i < len(responses) and not responses[i].key:
            response = responses[i]

        if response is None:
            results.append(FailureResult(page_id=page_id, error="no response"))
        elif response.error:
            results.append(FailureResult(page_id=page_id, error=response.error))
        elif not response.text or not response.text.strip():
            results.append(FailureResult(page_id=page_id, error="empty response"))
        else:
            results.append(SuccessResult(page_id=page_id, payload={'text': response.text}))
    return results


def page_fields(batch: BatchJob, text: str, timestamp: str) -> Dict[str, Any]:
    """Dotted-path fields written onto a page for one collected result."""
    if batch.type == BatchType.OCR:
        return {
            'ocr.data': text,
            'ocr.model': batch.model,
            'ocr.language': batch.language,
            'ocr.source': 'batch',
            'ocr.updated_at': timestamp,
        }
    return {
        'translation.data': text,
        'translation.model': batch.model,
        'translation.source_language': batch.language,
        'translation.target_language': batch.target_language,
        'translation.source': 'batch',
        'translation.updated_at': timestamp,
    }
