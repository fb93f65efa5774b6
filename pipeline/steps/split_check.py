from infra.errors import UpstreamError
from pipeline.schemas import PipelineState, StepOutcome
from pipeline.split.detection import detect_split, to_grayscale
from pipeline.steps.base import BaseStep


def lacks_crop(page) -> bool:
    return not page.get('crop') and not page.get('cropped_photo')


class SplitCheckStep(BaseStep):
    name = 'split_check'
    icon = '✂️'
    description = 'Find pages without crop data and flag likely two-page spreads'

    def run(self, book_id: str, state: PipelineState) -> StepOutcome:
        pages = self.library.list_pages(book_id)
        uncropped = [p for p in pages if lacks_crop(p)]

        if not uncropped:
            return StepOutcome.completed(pages_without_crop=0, message="All pages have crop data")

        sample = uncropped[:self.config.defaults.split_sample_size]
        candidates = []
        for page in sample:
            try:
                img = self.services.image_loader.load_image(page)
            except (UpstreamError, OSError, ValueError) as e:
                self.logger.warning("Split check could not load page", book_id=book_id, page_id=page['id'], error=str(e))
                continue

            detection = detect_split(to_grayscale(img))
            if detection.is_two_page_spread:
                candidates.append({
                    'page_id': page['id'],
                    'split_position': detection.split_position,
                    'confidence': detection.confidence,
                })

        self.logger.info(
            f"{len(uncropped)} pages lack crop data; {len(candidates)} of {len(sample)} sampled look like spreads",
            book_id=book_id,
            step=self.name,
        )
        return StepOutcome.skipped(
            pages_without_crop=len(uncropped),
            sampled=len(sample),
            spread_candidates=candidates,
            message=f"{len(uncropped)} pages have no crop data; run split detection before OCR",
        )
