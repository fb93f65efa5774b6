import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from infra.errors import InvalidTransition, ValidationError
from infra.jobs.schemas import (
    Job, JobStatus, JobType, SuccessResult, FailureResult, result_from_dict,
)
from infra.storage.documents import DocumentCollection, now_iso

# action -> (statuses it may start from, status it moves to)
TRANSITIONS = {
    'pause': ({JobStatus.PENDING, JobStatus.PROCESSING}, JobStatus.PAUSED),
    'resume': ({JobStatus.PAUSED}, JobStatus.PENDING),
    'cancel': (
        {JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.PAUSED, JobStatus.FAILED},
        JobStatus.CANCELLED,
    ),
    'retry': ({JobStatus.FAILED, JobStatus.CANCELLED}, JobStatus.PENDING),
}

ACTIONS = list(TRANSITIONS.keys())

PROGRESS_STATUSES = {JobStatus.PROCESSING, JobStatus.COMPLETED, JobStatus.FAILED}

AnyResult = Union[SuccessResult, FailureResult]


def _merge_results(existing: List[AnyResult], incoming: Iterable[AnyResult]) -> List[AnyResult]:
    """Merge by page_id; the incoming result replaces any earlier one for the same page."""
    merged = {r.page_id: r for r in existing}
    for result in incoming:
        merged[result.page_id] = result
    return list(merged.values())


class JobRegistry:
    """Durable job records and the job state machine.

    Every mutation happens under the job document's lock, re-reading the
    stored record first, so concurrent callers never lose each other's writes.

    `on_job_finished` is called, outside the lock, whenever a mutation leaves
    a job terminal: a cancel, a progress update, or collected results.
    """

    def __init__(
        self,
        jobs: DocumentCollection,
        logger=None,
        on_job_finished: Optional[Callable[[Job], None]] = None
    ):
        self.jobs = jobs
        self.logger = logger
        self.on_job_finished = on_job_finished

    def _save(self, job: Job) -> Job:
        job.updated_at = now_iso()
        self.jobs.save(job.model_dump(mode='json'))
        return job

    def _log(self, message: str, **kwargs):
        if self.logger:
            self.logger.info(message, **kwargs)

    def _finished(self, job: Job) -> None:
        if job.is_terminal and self.on_job_finished is not None:
            self.on_job_finished(job)

    def create(
        self,
        job_type: Union[JobType, str],
        book_id: str,
        page_ids: List[str],
        config: Optional[Dict[str, Any]] = None
    ) -> Job:
        try:
            job_type = JobType(job_type)
        except ValueError:
            raise ValidationError(f"Unknown job type: {job_type}")

        job = Job(
            id=uuid.uuid4().hex,
            type=job_type,
            book_id=book_id,
            page_ids=list(page_ids),
            config=dict(config or {}),
            created_at=now_iso(),
        )
        job.updated_at = job.created_at
        self.jobs.insert(job.model_dump(mode='json'))
        self._log("Job created", job_id=job.id, book_id=book_id, status=job.status.value)
        return job

    def get(self, job_id: str) -> Job:
        return Job.model_validate(self.jobs.require(job_id))

    def find(self, book_id: Optional[str] = None, status=None, limit: Optional[int] = None) -> List[Job]:
        filter = {}
        if book_id:
            filter['book_id'] = book_id
        if status:
            try:
                if isinstance(status, (list, tuple, set)):
                    filter['status'] = [JobStatus(s).value for s in status]
                else:
                    filter['status'] = JobStatus(status).value
            except ValueError:
                raise ValidationError(f"Unknown job status: {status}")
        docs = self.jobs.find(filter, sort=[('created_at', -1)], limit=limit)
        return [Job.model_validate(d) for d in docs]

    def list_for_book(self, book_id: str, limit: int = 50) -> List[Job]:
        return self.find(book_id=book_id, limit=limit)

    def transition(self, job_id: str, action: str) -> Job:
        """Apply a user action. Raises InvalidTransition and writes nothing if not allowed."""
        if action not in TRANSITIONS:
            raise ValidationError(f"Unknown action: {action}", allowed=ACTIONS)

        allowed_from, target = TRANSITIONS[action]

        with self.jobs.lock(job_id):
            job = self.get(job_id)
            if job.status not in allowed_from:
                raise InvalidTransition(job.status.value, action)

            previous = job.status
            job.status = target

            if action == 'cancel':
                job.completed_at = now_iso()
            elif action == 'retry':
                # Keep successes, drop failures so only those pages are redone
                job.results = [r for r in job.results if isinstance(r, SuccessResult)]
                job.error = None
                job.completed_at = None

            self._save(job)

        self._log(
            f"Job {action}: {previous.value} -> {target.value}",
            job_id=job_id, book_id=job.book_id, status=target.value
        )
        self._finished(job)
        return job

    def apply_progress(
        self,
        job_id: str,
        results: Optional[Iterable[Union[AnyResult, Dict[str, Any]]]] = None,
        status: Optional[Union[JobStatus, str]] = None,
        error: Optional[str] = None
    ) -> Job:
        """External progress update from whatever is doing the work.

        A cancelled job stays cancelled: the update is refused.
        """
        if status is not None:
            try:
                status = JobStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown job status: {status}")
            if status not in PROGRESS_STATUSES:
                raise ValidationError(
                    f"Progress updates cannot set status '{status.value}'",
                    allowed=sorted(s.value for s in PROGRESS_STATUSES)
                )

        parsed = [r if isinstance(r, (SuccessResult, FailureResult)) else result_from_dict(r) for r in (results or [])]

        with self.jobs.lock(job_id):
            job = self.get(job_id)
            if job.status == JobStatus.CANCELLED:
                raise InvalidTransition(job.status.value, 'update')

            if parsed:
                job.results = _merge_results(job.results, parsed)

            if status is not None:
                if status == JobStatus.PROCESSING and not job.started_at:
                    job.started_at = now_iso()
                if status in (JobStatus.COMPLETED, JobStatus.FAILED):
                    job.completed_at = now_iso()
                job.status = status

            if error is not None:
                job.error = error

            self._save(job)

        if status is not None:
            self._log("Job progress", job_id=job_id, book_id=job.book_id, status=job.status.value)
            self._finished(job)
        return job

    def attach_batch(self, job_id: str, job_name: str, results: Iterable[AnyResult] = ()) -> Job:
        """Record a provider submission for the job and mark it processing."""
        with self.jobs.lock(job_id):
            job = self.get(job_id)
            if job.status == JobStatus.CANCELLED:
                raise InvalidTransition(job.status.value, 'submit')

            job.batch_job_name = job_name
            job.results = _merge_results(job.results, results)
            job.status = JobStatus.PROCESSING
            if not job.started_at:
                job.started_at = now_iso()
            self._save(job)

        self._log("Job submitted", job_id=job_id, job_name=job_name, status=job.status.value)
        return job

    def record_results(self, job_id: str, results: Iterable[AnyResult]) -> Job:
        """Merge collected results and settle the job once every page has one.

        Settles to completed when no page failed, otherwise failed so the
        failures can be retried.
        """
        with self.jobs.lock(job_id):
            job = self.get(job_id)
            if job.status == JobStatus.CANCELLED:
                raise InvalidTransition(job.status.value, 'update')

            job.results = _merge_results(job.results, results)

            covered = {r.page_id for r in job.results}
            if all(page_id in covered for page_id in job.page_ids):
                failed = job.progress.failed
                job.status = JobStatus.FAILED if failed else JobStatus.COMPLETED
                job.completed_at = now_iso()
                if failed:
                    job.error = f"{failed} of {len(job.page_ids)} pages failed"

            self._save(job)

        self._log(
            "Job results recorded",
            job_id=job_id, book_id=job.book_id, status=job.status.value,
            success_count=job.progress.completed, fail_count=job.progress.failed
        )
        self._finished(job)
        return job

    def delete(self, job_id: str) -> None:
        with self.jobs.lock(job_id):
            job = self.get(job_id)
            if job.status == JobStatus.PROCESSING:
                raise InvalidTransition(job.status.value, 'delete')
            self.jobs.delete(job_id)

        self._log("Job deleted", job_id=job_id, book_id=job.book_id)
