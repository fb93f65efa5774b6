import re

from infra.batch.selectors import is_translated
from infra.errors import UpstreamError
from infra.gemini.response_parser import parse_json_text
from infra.storage.documents import get_path, now_iso
from pipeline.prompts import build_summary_prompt
from pipeline.schemas import PipelineState, StepOutcome
from pipeline.steps.base import BaseStep

MARKUP_TAG = re.compile(r'\[\[[^\]]*\]\]')


def gather_pages_text(pages, max_chars: int):
    """Concatenate page translations in order until the character budget runs out."""
    chunks = []
    used = 0
    covered = 0
    for page in pages:
        text = MARKUP_TAG.sub('', get_path(page, 'translation.data') or '').strip()
        if not text:
            continue
        chunk = f"--- Page {page.get('page_number')} ---\n{text}\n"
        if used + len(chunk) > max_chars:
            if covered == 0:
                chunks.append(chunk[:max_chars])
                covered = 1
            break
        chunks.append(chunk)
        used += len(chunk)
        covered += 1
    return '\n'.join(chunks), covered


class SummarizeStep(BaseStep):
    name = 'summarize'
    icon = '📝'
    description = 'Overview, quotes and themes from the translated pages'

    def run(self, book_id: str, state: PipelineState) -> StepOutcome:
        defaults = self.config.defaults
        translated = self.library.pages.find(
            {'book_id': book_id},
            where=is_translated,
            sort='page_number',
            limit=defaults.summary_page_limit,
        )
        if not translated:
            return StepOutcome.failed("No translated pages to summarize")

        pages_text, covered = gather_pages_text(translated, defaults.summary_max_chars)
        model = state.config.model

        try:
            raw = self.services.provider.generate_content(
                model, [{'text': build_summary_prompt(pages_text)}], json_response=True
            )
            parsed = parse_json_text(raw)
        except UpstreamError as e:
            self.logger.error("Summary generation failed", book_id=book_id, step=self.name, error=str(e))
            return StepOutcome.failed(str(e))

        summary = {
            'overview': parsed.get('overview', ''),
            'quotes': parsed.get('quotes') or [],
            'themes': parsed.get('themes') or [],
            'model': model,
            'pages_covered': covered,
            'generated_at': now_iso(),
        }
        self.library.books.update_one(book_id, {'summary': summary})

        return StepOutcome.completed(
            pages_covered=covered,
            quotes=len(summary['quotes']),
            themes=len(summary['themes']),
        )
