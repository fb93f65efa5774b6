import uuid

from infra.batch.selectors import is_translated
from infra.storage.documents import now_iso
from pipeline.schemas import PipelineState, StepOutcome
from pipeline.steps.base import BaseStep


class EditionStep(BaseStep):
    name = 'edition'
    icon = '📚'
    description = 'Record a draft edition of the translated book'

    def run(self, book_id: str, state: PipelineState) -> StepOutcome:
        pages_count = len(self.library.pages.find({'book_id': book_id}, where=is_translated))
        if pages_count == 0:
            return StepOutcome.failed("No translated pages; cannot create edition")

        edition = {'id': uuid.uuid4().hex}

        def append_edition(book):
            editions = book.setdefault('editions', [])
            edition.update({
                'version': f"1.{len(editions)}",
                'status': 'draft',
                'license': state.config.license,
                'pages_count': pages_count,
                'created_at': now_iso(),
            })
            editions.append(edition)
            book['current_edition_id'] = edition['id']

        self.library.books.modify(book_id, append_edition)

        return StepOutcome.completed(
            edition_id=edition['id'],
            version=edition['version'],
            pages_count=pages_count,
        )
