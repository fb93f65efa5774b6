"""
Per-book pipeline orchestration.

Fixed step order: split_check -> ocr -> translate -> summarize -> edition.

Inline steps run to completion inside execute_step. Job-backed steps (ocr,
translate) create a Job and leave the step `running`; when the reconciler
sees that job settle it calls finalize_step, which completes or fails the
step and, if the pipeline is still running, carries on with the next one.

State lives on the book record under `pipeline`, so any process can pick a
pipeline up where another left it.
"""

from typing import Any, Dict, List, Optional

from infra.errors import InvalidTransition, ScriptoriumError, ValidationError
from infra.jobs.schemas import Job, JobStatus
from infra.storage.documents import now_iso
from pipeline.registry import STEP_NAMES, get_step_instance, next_step, previous_steps
from pipeline.schemas import (
    DONE_STEP_STATUSES, PipelineConfig, PipelineState, PipelineStatus,
    StepName, StepOutcome, StepRun, StepState, StepStatus,
)

PIPELINE_ACTIONS = ['start', 'pause', 'resume', 'reset']


def parse_step(step) -> StepName:
    try:
        return StepName(step)
    except ValueError:
        raise ValidationError(f"Unknown step: {step}", allowed=STEP_NAMES)


class PipelineOrchestrator:

    def __init__(self, services):
        self.services = services
        self.library = services.library
        self.books = services.library.books
        self.logger = services.library.logger("pipeline")

    def default_config(self) -> PipelineConfig:
        defaults = self.services.config.defaults
        return PipelineConfig(
            model=defaults.model,
            language=defaults.language,
            target_language=defaults.target_language,
            license=defaults.license,
        )

    def get_state(self, book_id: str) -> PipelineState:
        book = self.books.require(book_id)
        if book.get('pipeline'):
            return PipelineState.model_validate(book['pipeline'])
        return PipelineState.initial(self.default_config())

    def _save(self, book_id: str, state: PipelineState) -> PipelineState:
        self.books.update_one(book_id, {'pipeline': state.to_dict()})
        return state

    def start(self, book_id: str, config: Optional[Dict[str, Any]] = None) -> PipelineState:
        with self.books.lock(book_id):
            state = self.get_state(book_id)
            if state.status == PipelineStatus.RUNNING:
                raise InvalidTransition(state.status.value, 'start', "Pipeline is already running")

            merged = state.config.model_dump()
            merged.update({k: v for k, v in (config or {}).items() if v is not None})
            try:
                pipeline_config = PipelineConfig.model_validate(merged)
            except ValueError as e:
                raise ValidationError(f"Invalid pipeline config: {e}")

            state = PipelineState.initial(pipeline_config)
            state.status = PipelineStatus.RUNNING
            state.started_at = now_iso()
            self._save(book_id, state)

        self.logger.info("Pipeline started", book_id=book_id, status=state.status.value)
        return state

    def _require_and_set(self, book_id: str, action: str, required: PipelineStatus, target: PipelineStatus) -> PipelineState:
        with self.books.lock(book_id):
            state = self.get_state(book_id)
            if state.status != required:
                raise InvalidTransition(state.status.value, action)
            state.status = target
            self._save(book_id, state)

        self.logger.info(f"Pipeline {action}", book_id=book_id, status=target.value)
        return state

    def pause(self, book_id: str) -> PipelineState:
        return self._require_and_set(book_id, 'pause', PipelineStatus.RUNNING, PipelineStatus.PAUSED)

    def resume(self, book_id: str) -> PipelineState:
        return self._require_and_set(book_id, 'resume', PipelineStatus.PAUSED, PipelineStatus.RUNNING)

    def reset(self, book_id: str) -> PipelineState:
        with self.books.lock(book_id):
            state = PipelineState.initial(self.get_state(book_id).config)
            self._save(book_id, state)

        self.logger.info("Pipeline reset", book_id=book_id)
        return state

    def apply_action(self, book_id: str, action: str, config: Optional[Dict[str, Any]] = None) -> PipelineState:
        if action == 'start':
            return self.start(book_id, config)
        if action == 'pause':
            return self.pause(book_id)
        if action == 'resume':
            return self.resume(book_id)
        if action == 'reset':
            return self.reset(book_id)
        raise ValidationError(f"Unknown action: {action}", allowed=PIPELINE_ACTIONS)

    def execute_step(self, book_id: str, step) -> StepRun:
        step = parse_step(step)

        with self.books.lock(book_id):
            state = self.get_state(book_id)
            if state.status != PipelineStatus.RUNNING:
                raise InvalidTransition(state.status.value, f"execute step '{step.value}'")

            if state.step(step).status == StepStatus.RUNNING:
                raise InvalidTransition(StepStatus.RUNNING.value, f"execute step '{step.value}'",
                                        f"Step '{step.value}' is already running")

            for earlier in previous_steps(step):
                if state.step(earlier).status not in DONE_STEP_STATUSES:
                    raise InvalidTransition(
                        state.step(earlier).status.value,
                        f"execute step '{step.value}'",
                        f"Step '{earlier.value}' must finish before '{step.value}'"
                    )

            state.current_step = step
            state.steps[step] = StepState(status=StepStatus.RUNNING, started_at=now_iso())
            self._save(book_id, state)

        self.logger.info("Step started", book_id=book_id, step=step.value)

        try:
            outcome = get_step_instance(self.services, step.value).run(book_id, state)
        except ScriptoriumError as e:
            outcome = StepOutcome.failed(e.message)
        except Exception as e:
            # Any exception settles the step as failed
            self.logger.error(
                "Step raised unexpectedly",
                book_id=book_id, step=step.value, error=f"{type(e).__name__}: {e}"
            )
            outcome = StepOutcome.failed(f"{type(e).__name__}: {e}")

        with self.books.lock(book_id):
            state = self.get_state(book_id)
            self._apply_outcome(state, step, outcome)
            self._save(book_id, state)

        following = None
        if outcome.status in ('completed', 'skipped') and step != StepName.EDITION:
            following = next_step(step)

        log = self.logger.error if outcome.status == 'failed' else self.logger.info
        log(
            f"Step {outcome.status}",
            book_id=book_id,
            step=step.value,
            job_id=outcome.job_id,
            error=outcome.error,
        )
        return StepRun(step=step, outcome=outcome, next_step=following)

    def _apply_outcome(self, state: PipelineState, step: StepName, outcome: StepOutcome) -> None:
        step_state = state.step(step)
        step_state.result = outcome.result or None

        if outcome.status == 'job_created':
            step_state.status = StepStatus.RUNNING
            step_state.job_id = outcome.job_id
            return

        step_state.completed_at = now_iso()
        if outcome.job_id:
            step_state.job_id = outcome.job_id

        if outcome.status == 'failed':
            step_state.status = StepStatus.FAILED
            step_state.error = outcome.error
            # current_step keeps pointing at the failed step
            state.status = PipelineStatus.FAILED
            state.error = outcome.error
            return

        step_state.status = StepStatus(outcome.status)
        if step == StepName.EDITION:
            state.status = PipelineStatus.COMPLETED
            state.completed_at = step_state.completed_at
            state.current_step = None

    def finalize_step(self, book_id: str, step, job: Job) -> Optional[PipelineState]:
        """Settle a job-backed step from its terminal job. Stale jobs are ignored."""
        step = parse_step(step)
        if not job.is_terminal:
            return None

        with self.books.lock(book_id):
            state = self.get_state(book_id)
            step_state = state.step(step)
            if step_state.job_id != job.id or step_state.status != StepStatus.RUNNING:
                self.logger.info("Ignoring stale job for step", book_id=book_id, step=step.value, job_id=job.id)
                return None

            progress = job.progress
            step_state.completed_at = now_iso()
            step_state.result = {
                **(step_state.result or {}),
                'completed': progress.completed,
                'failed': progress.failed,
            }

            if job.status == JobStatus.COMPLETED or (job.status == JobStatus.FAILED and progress.completed > 0):
                step_state.status = StepStatus.COMPLETED
            else:
                error = job.error or f"Job {job.id} {job.status.value}"
                step_state.status = StepStatus.FAILED
                step_state.error = error
                state.status = PipelineStatus.FAILED
                state.error = error

            self._save(book_id, state)

        self.logger.info(
            f"Step {step_state.status.value} from job",
            book_id=book_id,
            step=step.value,
            job_id=job.id,
            success_count=progress.completed,
            fail_count=progress.failed,
        )

        if step_state.status == StepStatus.COMPLETED and state.status == PipelineStatus.RUNNING:
            following = next_step(step)
            if following:
                self.run(book_id, start_at=following)
        return self.get_state(book_id)

    def on_job_finished(self, job: Job) -> None:
        """Registry hook: settle the pipeline step a finished job belongs to."""
        step = job.config.get('pipeline_step')
        if not step:
            return
        try:
            self.finalize_step(job.book_id, step, job)
        except InvalidTransition as e:
            # Another caller already moved the pipeline on
            self.logger.warning(
                "Pipeline not advanced after job finished",
                book_id=job.book_id, step=step, job_id=job.id, error=e.message
            )

    def first_unfinished_step(self, state: PipelineState) -> Optional[StepName]:
        for name in STEP_NAMES:
            step = StepName(name)
            if state.step(step).status not in DONE_STEP_STATUSES:
                return step
        return None

    def run(self, book_id: str, start_at=None) -> List[StepRun]:
        """Execute steps in order until one hands off to a job, fails, or the pipeline completes."""
        state = self.get_state(book_id)
        if state.status != PipelineStatus.RUNNING:
            raise InvalidTransition(state.status.value, 'run')

        step = parse_step(start_at) if start_at else self.first_unfinished_step(state)
        runs: List[StepRun] = []

        while step is not None:
            if self.get_state(book_id).step(step).status == StepStatus.RUNNING:
                # Waiting on a job
                break
            run = self.execute_step(book_id, step)
            runs.append(run)
            step = run.next_step

        return runs
