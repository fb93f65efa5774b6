"""
Tests for infra/jobs/registry.py

The job state machine: user actions, external progress updates and the
result merge that settles a job once every page has an outcome.
"""

import pytest

from infra.errors import InvalidTransition, NotFound, ValidationError
from infra.jobs import JobRegistry, JobStatus, JobType
from infra.jobs.registry import TRANSITIONS
from infra.jobs.schemas import FailureResult, SuccessResult
from infra.storage.documents import DocumentCollection


@pytest.fixture
def registry(tmp_path):
    return JobRegistry(DocumentCollection(tmp_path, 'jobs', label='Job'))


@pytest.fixture
def job(registry):
    return registry.create(JobType.BATCH_OCR, 'book', ['p1', 'p2', 'p3'])


def force_status(registry, job_id, status):
    registry.jobs.update_one(job_id, {'status': status.value})


class TestCreate:

    def test_new_job_is_pending(self, job):
        """Jobs start pending with empty results and zero progress."""
        assert job.status == JobStatus.PENDING
        assert job.results == []
        assert job.progress.total == 3
        assert job.progress.completed == 0

    def test_unknown_type_rejected(self, registry):
        with pytest.raises(ValidationError):
            registry.create('batch_dance', 'book', ['p1'])

    def test_get_missing(self, registry):
        with pytest.raises(NotFound):
            registry.get('nope')

    def test_find_by_status(self, registry, job):
        """find() filters by book and status."""
        other = registry.create(JobType.BATCH_TRANSLATE, 'book', ['p1'])
        registry.transition(other.id, 'pause')

        assert [j.id for j in registry.find(book_id='book', status='paused')] == [other.id]
        assert len(registry.find(book_id='book')) == 2

    def test_find_unknown_status(self, registry):
        with pytest.raises(ValidationError):
            registry.find(status='sleeping')


class TestTransitions:

    @pytest.mark.parametrize('action', sorted(TRANSITIONS))
    @pytest.mark.parametrize('status', list(JobStatus))
    def test_transition_grid(self, registry, job, action, status):
        """Each action succeeds exactly from its allowed statuses and writes nothing otherwise."""
        force_status(registry, job.id, status)
        allowed_from, target = TRANSITIONS[action]

        if status in allowed_from:
            assert registry.transition(job.id, action).status == target
        else:
            with pytest.raises(InvalidTransition) as exc:
                registry.transition(job.id, action)
            assert exc.value.status == status.value
            assert registry.get(job.id).status == status

    def test_unknown_action(self, registry, job):
        with pytest.raises(ValidationError):
            registry.transition(job.id, 'explode')

    def test_retry_keeps_successes(self, registry, job):
        """Retry drops failures so only failed pages are redone."""
        registry.attach_batch(job.id, 'batches/1')
        registry.record_results(job.id, [
            SuccessResult(page_id='p1', payload={'text': 'a'}),
            FailureResult(page_id='p2', error='Empty response'),
            FailureResult(page_id='p3', error='Empty response'),
        ])
        assert registry.get(job.id).status == JobStatus.FAILED

        retried = registry.transition(job.id, 'retry')

        assert retried.status == JobStatus.PENDING
        assert [r.page_id for r in retried.results] == ['p1']
        assert retried.pending_page_ids == ['p2', 'p3']
        assert retried.error is None

    def test_cancel_sets_completed_at(self, registry, job):
        assert registry.transition(job.id, 'cancel').completed_at is not None


class TestProgress:

    def test_processing_sets_started_at(self, registry, job):
        updated = registry.apply_progress(job.id, status='processing')
        assert updated.status == JobStatus.PROCESSING
        assert updated.started_at is not None

    def test_results_merge_by_page(self, registry, job):
        """A later result for the same page replaces the earlier one."""
        registry.apply_progress(job.id, results=[{'page_id': 'p1', 'success': False, 'error': 'x'}])
        updated = registry.apply_progress(job.id, results=[{'page_id': 'p1', 'success': True}])

        assert updated.progress.completed == 1
        assert updated.progress.failed == 0

    def test_cancelled_refuses_progress(self, registry, job):
        """Progress on a cancelled job is refused and the job stays cancelled."""
        registry.transition(job.id, 'cancel')
        with pytest.raises(InvalidTransition):
            registry.apply_progress(job.id, status='completed')
        assert registry.get(job.id).status == JobStatus.CANCELLED

    def test_progress_cannot_pause(self, registry, job):
        """Only processing/completed/failed are reachable through progress updates."""
        with pytest.raises(ValidationError):
            registry.apply_progress(job.id, status='paused')

    def test_unknown_status(self, registry, job):
        with pytest.raises(ValidationError):
            registry.apply_progress(job.id, status='done-ish')


class TestRecordResults:

    def test_partial_results_leave_job_processing(self, registry, job):
        registry.attach_batch(job.id, 'batches/1')
        updated = registry.record_results(job.id, [SuccessResult(page_id='p1')])
        assert updated.status == JobStatus.PROCESSING

    def test_all_success_completes(self, registry, job):
        registry.attach_batch(job.id, 'batches/1')
        updated = registry.record_results(job.id, [SuccessResult(page_id=p) for p in job.page_ids])

        assert updated.status == JobStatus.COMPLETED
        assert updated.progress.completed == 3
        assert updated.completed_at is not None

    def test_any_failure_fails(self, registry, job):
        """A job with even one failed page settles as failed with a count in its error."""
        registry.attach_batch(job.id, 'batches/1')
        updated = registry.record_results(job.id, [
            SuccessResult(page_id='p1'),
            SuccessResult(page_id='p2'),
            FailureResult(page_id='p3', error='Empty response'),
        ])

        assert updated.status == JobStatus.FAILED
        assert updated.error == "1 of 3 pages failed"

    def test_cancelled_refuses_results(self, registry, job):
        registry.transition(job.id, 'cancel')
        with pytest.raises(InvalidTransition):
            registry.record_results(job.id, [SuccessResult(page_id='p1')])


class TestFinishHook:

    @pytest.fixture
    def finished(self, registry):
        seen = []
        registry.on_job_finished = seen.append
        return seen

    def test_cancel_reports_job(self, registry, job, finished):
        registry.transition(job.id, 'cancel')
        assert [(j.id, j.status) for j in finished] == [(job.id, JobStatus.CANCELLED)]

    def test_progress_completion_reports_job(self, registry, job, finished):
        """A terminal status set through a progress update is reported like any other finish."""
        registry.apply_progress(job.id, status='processing')
        assert finished == []

        registry.apply_progress(job.id, status='completed')
        assert [j.status for j in finished] == [JobStatus.COMPLETED]

    def test_results_report_only_when_settled(self, registry, job, finished):
        registry.record_results(job.id, [SuccessResult(page_id='p1', payload={'text': 'a'})])
        assert finished == []

        registry.record_results(job.id, [
            SuccessResult(page_id='p2', payload={'text': 'b'}),
            FailureResult(page_id='p3', error='empty'),
        ])
        assert [j.status for j in finished] == [JobStatus.FAILED]

    def test_pause_is_not_a_finish(self, registry, job, finished):
        registry.transition(job.id, 'pause')
        registry.transition(job.id, 'resume')
        assert finished == []


class TestDelete:

    def test_delete_pending(self, registry, job):
        registry.delete(job.id)
        with pytest.raises(NotFound):
            registry.get(job.id)

    def test_delete_processing_refused(self, registry, job):
        """A job with a live provider batch cannot be deleted."""
        registry.attach_batch(job.id, 'batches/1')
        with pytest.raises(InvalidTransition):
            registry.delete(job.id)
        assert registry.get(job.id).status == JobStatus.PROCESSING
