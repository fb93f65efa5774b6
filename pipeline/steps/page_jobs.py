from infra.batch.schemas import BatchType, JOB_TYPE_FOR_BATCH, NoPages, PrepareFailed
from infra.batch.selectors import find_pending_pages
from infra.errors import UpstreamError
from pipeline.schemas import PipelineState, StepOutcome
from pipeline.steps.base import BaseStep


class PageJobStep(BaseStep):
    """A step whose work is a batch job over every page still needing it."""
    inline = False
    batch_type: BatchType = None

    def run(self, book_id: str, state: PipelineState) -> StepOutcome:
        pending = find_pending_pages(self.library.pages, book_id, self.batch_type)
        if not pending:
            return StepOutcome.completed(pages=0, message="nothing to do")

        config = state.config
        job = self.services.registry.create(
            JOB_TYPE_FOR_BATCH[self.batch_type],
            book_id,
            [p['id'] for p in pending],
            {
                'model': config.model,
                'language': config.language,
                'target_language': config.target_language,
                'pipeline_step': self.name,
            },
        )

        try:
            outcome = self.services.submitter.submit_job(job.id)
        except UpstreamError as e:
            return StepOutcome.failed(str(e), job_id=job.id)

        if isinstance(outcome, PrepareFailed):
            return StepOutcome.failed(
                f"{outcome.message} ({outcome.attempted} attempted)", job_id=job.id
            )
        if isinstance(outcome, NoPages):
            return StepOutcome.completed(pages=0, message="nothing to do", job_id=job.id)

        return StepOutcome.job_created(
            job.id,
            job_name=outcome.job_name,
            pages_submitted=outcome.pages_submitted,
            skipped=len(outcome.skipped),
        )


class OcrStep(PageJobStep):
    name = 'ocr'
    icon = '🔍'
    description = 'Batch OCR of every page without text'
    batch_type = BatchType.OCR


class TranslateStep(PageJobStep):
    name = 'translate'
    icon = '🌐'
    description = 'Batch translation of every OCR page without a translation'
    batch_type = BatchType.TRANSLATE
