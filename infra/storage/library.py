"""High-level Library coordinator (one DocumentCollection per record type)"""

from pathlib import Path
from typing import Optional, List, Dict, Any

from infra.config import get_storage_root
from infra.errors import ValidationError
from infra.logger import create_logger, PipelineLogger
from infra.storage.documents import DocumentCollection, now_iso


def page_id_for(book_id: str, page_number: int) -> str:
    return f"{book_id}-p{page_number:04d}"


class Library:

    def __init__(self, storage_root: Optional[Path] = None):
        self.storage_root = Path(storage_root or get_storage_root())

        self.books = DocumentCollection(self.storage_root, 'books', label='Book')
        self.pages = DocumentCollection(self.storage_root, 'pages', label='Page')
        self.jobs = DocumentCollection(self.storage_root, 'jobs', label='Job')
        self.batch_jobs = DocumentCollection(
            self.storage_root, 'batch_jobs', key_field='job_name', label='Batch job'
        )
        self.split_examples = DocumentCollection(
            self.storage_root, 'split_examples', key_field='page_id', label='Split example'
        )
        self.split_models = DocumentCollection(self.storage_root, 'split_models', label='Split model')

        self._loggers: Dict[str, PipelineLogger] = {}

    @property
    def log_dir(self) -> Path:
        return self.storage_root / 'logs'

    def logger(self, component: str) -> PipelineLogger:
        """Get the JSONL logger for a component, creating lazily.

        Log file is written to {storage_root}/logs/{component}.jsonl
        """
        if component not in self._loggers:
            self._loggers[component] = create_logger(component, log_dir=self.log_dir)
        return self._loggers[component]

    def close(self):
        for logger in self._loggers.values():
            logger.close()
        self._loggers.clear()

    def add_book(self, book_id: str, title: str, **metadata) -> Dict[str, Any]:
        if not book_id:
            raise ValidationError("book_id is required")

        book = {
            'id': book_id,
            'title': title,
            **metadata,
            'editions': [],
            'current_edition_id': None,
            'created_at': now_iso(),
        }
        return self.books.insert(book)

    def add_pages(self, book_id: str, photos: List[str], start: int = 1) -> List[Dict[str, Any]]:
        """Register page images for a book, numbered from `start` in the given order."""

        self.books.require(book_id)

        added = []
        for offset, photo in enumerate(photos):
            page_number = start + offset
            page = {
                'id': page_id_for(book_id, page_number),
                'book_id': book_id,
                'page_number': page_number,
                'photo': str(photo),
                'created_at': now_iso(),
            }
            added.append(self.pages.insert(page))

        self.books.update_one(book_id, {'pages_count': self.pages.count({'book_id': book_id})})
        return added

    def list_books(self) -> List[Dict[str, Any]]:
        return self.books.find(sort='id')

    def list_pages(self, book_id: str) -> List[Dict[str, Any]]:
        return self.pages.find({'book_id': book_id}, sort='page_number')

    def get_stats(self, book_id: str) -> Dict[str, Any]:
        pages = self.list_pages(book_id)
        return {
            'pages': len(pages),
            'ocr': sum(1 for p in pages if (p.get('ocr') or {}).get('data')),
            'translated': sum(1 for p in pages if (p.get('translation') or {}).get('data')),
        }
