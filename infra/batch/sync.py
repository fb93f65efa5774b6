"""
Library-wide sweep: poll every live batch, then submit pending jobs.

Safe to run from cron or by hand at any time; every step it takes is
guarded by the persisted flags, so overlapping or repeated sweeps are
harmless.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from infra.batch.reconciler import BatchReconciler
from infra.batch.schemas import BatchJob, Submitted
from infra.batch.submission import BatchSubmitter
from infra.errors import ScriptoriumError
from infra.jobs.schemas import JobStatus
from infra.storage.library import Library


@dataclass
class SyncReport:
    polled: int = 0
    collected: int = 0
    submitted: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self):
        return {
            'polled': self.polled,
            'collected': self.collected,
            'submitted': self.submitted,
            'errors': self.errors,
        }


class BatchSync:

    def __init__(self, library: Library, reconciler: BatchReconciler, submitter: BatchSubmitter):
        self.library = library
        self.reconciler = reconciler
        self.submitter = submitter
        self.registry = submitter.registry
        self.logger = library.logger("sync")

    def live_batches(self, book_id: Optional[str] = None) -> List[BatchJob]:
        filter = {'book_id': book_id} if book_id else None
        batches = [BatchJob.model_validate(d) for d in self.library.batch_jobs.find(filter, sort='created_at')]
        return [b for b in batches if b.is_live]

    def _has_live_batch(self, job) -> bool:
        if not job.batch_job_name:
            return False
        doc = self.library.batch_jobs.get(job.batch_job_name)
        return doc is not None and BatchJob.model_validate(doc).is_live

    def sync_all(self, book_id: Optional[str] = None) -> SyncReport:
        report = SyncReport()

        for batch in self.live_batches(book_id):
            if batch.job_id:
                job_doc = self.library.jobs.get(batch.job_id)
                if job_doc and job_doc.get('status') == JobStatus.CANCELLED.value:
                    # Nothing will collect it; later sweeps leave it alone
                    self.library.batch_jobs.update_one(batch.job_name, {'collection_skipped': True})
                    self.logger.info("Batch of cancelled job retired", job_name=batch.job_name, job_id=batch.job_id)
                    continue
            try:
                result = self.reconciler.poll(batch.job_name)
            except ScriptoriumError as e:
                self.logger.error("Poll failed during sync", job_name=batch.job_name, error=str(e))
                report.errors.append({'job_name': batch.job_name, 'error': str(e)})
                continue
            report.polled += 1
            if result.collected:
                report.collected += 1

        for job in self.registry.find(book_id=book_id, status=JobStatus.PENDING):
            if self._has_live_batch(job):
                continue
            try:
                outcome = self.submitter.submit_job(job.id)
            except ScriptoriumError as e:
                self.logger.error("Submit failed during sync", job_id=job.id, error=str(e))
                report.errors.append({'job_id': job.id, 'error': str(e)})
                continue
            if isinstance(outcome, Submitted):
                report.submitted += 1

        self.logger.info(
            f"Sync finished: {report.polled} polled, {report.collected} collected, "
            f"{report.submitted} submitted, {len(report.errors)} errors"
        )
        return report
