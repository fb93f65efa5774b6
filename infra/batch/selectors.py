from typing import Any, Dict, Iterable, List, Optional

from infra.batch.schemas import BatchType
from infra.storage.documents import DocumentCollection, get_path

IMAGE_FIELDS = ('cropped_photo', 'archived_photo', 'photo_original', 'photo')


def _has_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def has_image(page: Dict[str, Any]) -> bool:
    return any(page.get(f) for f in IMAGE_FIELDS)


def needs_ocr(page: Dict[str, Any]) -> bool:
    return has_image(page) and not _has_text(get_path(page, 'ocr.data'))


def needs_translation(page: Dict[str, Any]) -> bool:
    # Translation only ever starts from OCR text
    return _has_text(get_path(page, 'ocr.data')) and not _has_text(get_path(page, 'translation.data'))


def is_translated(page: Dict[str, Any]) -> bool:
    return _has_text(get_path(page, 'translation.data'))


SELECTORS = {
    BatchType.OCR: needs_ocr,
    BatchType.TRANSLATE: needs_translation,
}


def find_pending_pages(
    pages: DocumentCollection,
    book_id: str,
    batch_type: BatchType,
    limit: Optional[int] = None,
    page_ids: Optional[Iterable[str]] = None
) -> List[Dict[str, Any]]:
    """Pages of a book still needing `batch_type` work, in page order."""
    selector = SELECTORS[batch_type]
    allowed = set(page_ids) if page_ids is not None else None

    def where(page):
        if allowed is not None and page['id'] not in allowed:
            return False
        return selector(page)

    return pages.find({'book_id': book_id}, where=where, sort='page_number', limit=limit)
