import time
from typing import List, Optional, Tuple

from infra.batch.reconcile import pair_responses, page_fields, reconcile
from infra.batch.schemas import BatchJob, BatchState, PollResult
from infra.errors import InvalidTransition, NotFound
from infra.gemini.provider import BatchProvider
from infra.gemini.schemas import ProviderSnapshot
from infra.jobs.registry import JobRegistry
from infra.jobs.schemas import FailureResult, Job, JobStatus, SuccessResult
from infra.storage.documents import now_iso
from infra.storage.library import Library


class BatchReconciler:
    """Drives stored batch and job state toward the provider's state.

    Result collection happens at most once per batch: the collected check,
    the page writes and the `results_collected` latch all run under the
    batch record's lock, which other processes respect too. Jobs settled here
    reach the pipeline through the registry's finish hook.
    """

    def __init__(self, library: Library, provider: BatchProvider, registry: JobRegistry):
        self.library = library
        self.provider = provider
        self.registry = registry
        self.logger = library.logger("reconciler")

    def _load_batch(self, job_name: str) -> BatchJob:
        return BatchJob.model_validate(self.library.batch_jobs.require(job_name))

    def _load_job(self, batch: BatchJob) -> Optional[Job]:
        if not batch.job_id:
            return None
        try:
            return self.registry.get(batch.job_id)
        except NotFound:
            self.logger.warning("Batch references a missing job", job_name=batch.job_name, job_id=batch.job_id)
            return None

    def poll(self, job_name: str) -> PollResult:
        start_time = time.time()
        batch = self._load_batch(job_name)
        job = self._load_job(batch)

        snapshot = self.provider.get_job(job_name)
        decision = reconcile(batch, job, snapshot)

        if decision.updates:
            decision.updates['updated_at'] = now_iso()
            self.library.batch_jobs.update_one(job_name, decision.updates)

        collected = False
        skipped_reason = decision.skipped_reason

        if decision.collect:
            collected, skipped_reason = self._collect(job_name, snapshot)
        elif decision.job_status is not None and job is not None:
            self._fail_job(job, decision.job_error)

        batch = self._load_batch(job_name)
        self.logger.info(
            "Polled batch",
            book_id=batch.book_id,
            job_name=job_name,
            status=batch.status.value,
            success_count=batch.success_count,
            fail_count=batch.fail_count,
            duration_seconds=round(time.time() - start_time, 3),
        )
        return PollResult(
            job_name=job_name,
            status=batch.status,
            collected=collected,
            results_collected=batch.results_collected,
            success_count=batch.success_count,
            fail_count=batch.fail_count,
            skipped_reason=skipped_reason,
        )

    def _collect(self, job_name: str, snapshot: ProviderSnapshot) -> Tuple[bool, Optional[str]]:
        with self.library.batch_jobs.lock(job_name):
            batch = self._load_batch(job_name)
            if batch.results_collected:
                return False, 'already_collected'

            job = self._load_job(batch)
            if job is not None and job.status == JobStatus.CANCELLED:
                self.logger.info("Skipping collection for cancelled job", job_name=job_name, job_id=job.id)
                return False, 'job_cancelled'

            timestamp = now_iso()
            results = []
            for result in pair_responses(batch.page_ids, snapshot.responses):
                if isinstance(result, SuccessResult):
                    try:
                        self.library.pages.update_one(
                            result.page_id, page_fields(batch, result.payload['text'], timestamp)
                        )
                    except NotFound:
                        result = FailureResult(page_id=result.page_id, error="page not found")
                else:
                    self.logger.warning(
                        "Page failed in batch",
                        job_name=job_name,
                        page_id=result.page_id,
                        error=result.error,
                    )
                results.append(result)

            success_count = sum(1 for r in results if isinstance(r, SuccessResult))
            fail_count = len(results) - success_count

            self.library.batch_jobs.update_one(job_name, {
                'status': BatchState.SUCCEEDED.value,
                'results_collected': True,
                'success_count': success_count,
                'fail_count': fail_count,
                'completed_at': timestamp,
                'updated_at': timestamp,
            })

        self.logger.info(
            "Collected batch results",
            book_id=batch.book_id,
            job_name=job_name,
            success_count=success_count,
            fail_count=fail_count,
        )

        if job is not None:
            self._record_job_results(job, results)
        return True, None

    def _record_job_results(self, job: Job, results: List):
        # Stored job results carry no page text; the page record owns it.
        stripped = [
            SuccessResult(page_id=r.page_id, payload={'chars': len(r.payload.get('text', ''))})
            if isinstance(r, SuccessResult) else r
            for r in results
        ]
        try:
            self.registry.record_results(job.id, stripped)
        except InvalidTransition:
            self.logger.warning("Job cancelled during collection; status kept", job_id=job.id)

    def _fail_job(self, job: Job, error: Optional[str]):
        self.logger.error("Remote batch ended without results", job_id=job.id, error=error)
        try:
            self.registry.apply_progress(job.id, status=JobStatus.FAILED, error=error)
        except InvalidTransition:
            self.logger.warning("Job cancelled before remote failure was recorded", job_id=job.id)

    def cancel_remote(self, job_name: str) -> None:
        """Ask the provider to stop a batch. Local state is left to the next poll."""
        self.provider.cancel(job_name)
        self.logger.info("Requested remote cancel", job_name=job_name)
