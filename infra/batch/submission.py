"""
Batch submission: select pages, build keyed requests, submit, persist.

Every submission leaves two durable records behind: the BatchJob (the
provider handle plus the page order responses will be paired against) and
the local Job that mirrors it. Both are written before this returns, so a
later poll from any process can pick the batch up.
"""

import time
from typing import Any, Dict, List, Optional, Union

from infra.batch.images import PageImageLoader
from infra.batch.prompts import build_ocr_prompt, build_translation_prompt
from infra.batch.schemas import (
    BatchJob, BatchState, BatchType, JOB_TYPE_FOR_BATCH, NoPages, PrepareFailed, Submitted,
    parse_batch_type,
)
from infra.batch.selectors import find_pending_pages
from infra.config import LibraryConfig
from infra.errors import UpstreamError, ValidationError, InvalidTransition
from infra.gemini.provider import BatchProvider
from infra.gemini.schemas import BatchRequest
from infra.jobs.registry import JobRegistry
from infra.jobs.schemas import FailureResult, Job, JobStatus, SuccessResult
from infra.storage.documents import get_path, now_iso
from infra.storage.library import Library

SubmitOutcome = Union[Submitted, NoPages, PrepareFailed]


class BatchSubmitter:

    def __init__(
        self,
        library: Library,
        provider: BatchProvider,
        registry: JobRegistry,
        config: Optional[LibraryConfig] = None,
        image_loader: Optional[PageImageLoader] = None
    ):
        self.library = library
        self.provider = provider
        self.registry = registry
        self.config = config or LibraryConfig.with_defaults()
        self.logger = library.logger("submitter")
        self.image_loader = image_loader or PageImageLoader(self.config.provider, logger=self.logger)

    def _build_request(
        self,
        page: Dict[str, Any],
        batch_type: BatchType,
        language: str,
        target_language: str
    ) -> Optional[Dict[str, Any]]:
        if batch_type == BatchType.OCR:
            image_part = self.image_loader.encode_page(page)
            if image_part is None:
                return None
            parts = [{'text': build_ocr_prompt(language)}, image_part]
        else:
            text = get_path(page, 'ocr.data')
            source_language = get_path(page, 'ocr.language') or language
            parts = [{'text': build_translation_prompt(text, source_language, target_language)}]

        return {
            'contents': [{'role': 'user', 'parts': parts}],
            'generationConfig': {'temperature': 0.1},
        }

    def submit_batch(
        self,
        book_id: str,
        job_type,
        limit: Optional[int] = None,
        model: Optional[str] = None,
        language: Optional[str] = None,
        target_language: Optional[str] = None,
        job: Optional[Job] = None
    ) -> SubmitOutcome:
        """Submit up to `limit` pages of a book needing `job_type` work.

        With `job`, only that job's outstanding pages are considered and the
        submission is attached to it instead of creating a new job.
        """
        try:
            batch_type = parse_batch_type(job_type)
        except (ValueError, KeyError):
            raise ValidationError(f"Unknown batch type: {job_type}", allowed=[t.value for t in BatchType])

        if limit is not None and limit < 1:
            raise ValidationError("limit must be a positive integer")

        self.library.books.require(book_id)

        defaults = self.config.defaults
        model = model or defaults.model
        language = language or defaults.language
        target_language = target_language or defaults.target_language
        if limit is None and job is None:
            limit = defaults.ocr_limit if batch_type == BatchType.OCR else defaults.translate_limit

        restrict_to = job.pending_page_ids if job else None
        candidates = find_pending_pages(
            self.library.pages, book_id, batch_type, limit=limit, page_ids=restrict_to
        )

        if not candidates:
            self.logger.info("No pages need work", book_id=book_id, step=batch_type.value)
            return NoPages()

        requests: List[BatchRequest] = []
        skipped: List[str] = []
        for page in candidates:
            request = self._build_request(page, batch_type, language, target_language)
            if request is None:
                skipped.append(page['id'])
                continue
            requests.append(BatchRequest(key=page['id'], request=request))

        if not requests:
            self.logger.error(
                "Failed to prepare any pages for batch",
                book_id=book_id,
                fail_count=len(skipped)
            )
            return PrepareFailed(attempted=len(candidates), skipped=skipped)

        display_name = f"{batch_type.value}-{book_id}-{int(time.time())}"
        provider_job = self.provider.submit_batch(model, requests, display_name)

        page_ids = [r.key for r in requests]
        config = {'model': model, 'language': language, 'target_language': target_language}

        if job is None:
            job = self.registry.create(JOB_TYPE_FOR_BATCH[batch_type], book_id, page_ids, config)

        now = now_iso()
        batch = BatchJob(
            job_name=provider_job.name,
            book_id=book_id,
            job_id=job.id,
            type=batch_type,
            model=model,
            language=language,
            target_language=target_language if batch_type == BatchType.TRANSLATE else None,
            page_ids=page_ids,
            page_count=len(page_ids),
            status=BatchState.PENDING,
            provider_state=provider_job.state,
            created_at=now,
            updated_at=now,
        )
        self.library.batch_jobs.save(batch.model_dump(mode='json'))

        # A new job only owns the submitted pages, so skipped pages stay out of
        # it. An existing job already owns them: unpreparable pages count as
        # failed and pages that no longer need work count as done.
        early_results = []
        if restrict_to is not None:
            early_results.extend(FailureResult(page_id=p, error="image unavailable") for p in skipped)
            selected = {p['id'] for p in candidates}
            early_results.extend(
                SuccessResult(page_id=p, payload={'note': 'already processed'})
                for p in restrict_to if p not in selected
            )
        self.registry.attach_batch(job.id, provider_job.name, early_results)

        self.logger.info(
            f"Submitted {len(page_ids)} pages ({len(skipped)} skipped)",
            book_id=book_id,
            job_id=job.id,
            job_name=provider_job.name,
        )
        return Submitted(
            job_name=provider_job.name,
            pages_submitted=len(page_ids),
            job_id=job.id,
            skipped=skipped,
        )

    def submit_job(self, job_id: str) -> SubmitOutcome:
        """Submit a pending job's outstanding pages as a fresh batch.

        Used after `retry` and by the sync sweep. Pages that already succeeded
        are never resubmitted.
        """
        job = self.registry.get(job_id)
        if job.status != JobStatus.PENDING:
            raise InvalidTransition(job.status.value, 'submit')

        if not job.pending_page_ids:
            self.registry.apply_progress(job_id, status=JobStatus.COMPLETED)
            return NoPages()

        try:
            outcome = self.submit_batch(
                job.book_id,
                job.type,
                model=job.config.get('model'),
                language=job.config.get('language'),
                target_language=job.config.get('target_language'),
                job=job,
            )
        except UpstreamError as e:
            self.registry.apply_progress(job_id, status=JobStatus.FAILED, error=str(e))
            raise

        if isinstance(outcome, NoPages):
            # Every outstanding page was finished elsewhere
            self.registry.apply_progress(
                job_id,
                results=[SuccessResult(page_id=p, payload={'note': 'already processed'}) for p in job.pending_page_ids],
                status=JobStatus.COMPLETED,
            )
        elif isinstance(outcome, PrepareFailed):
            self.registry.apply_progress(
                job_id,
                results=[FailureResult(page_id=p, error="image unavailable") for p in outcome.skipped],
                status=JobStatus.FAILED,
                error=outcome.message,
            )
        return outcome
