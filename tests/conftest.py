"""
Shared fixtures for infra, pipeline and web tests.

All tests use real filesystem operations with temporary directories.
The batch provider is an in-memory FakeProvider; page images are real
files generated with Pillow.
"""

import itertools
from typing import Any, Dict, List, Optional

import pytest
from PIL import Image, ImageDraw

from infra.config import LibraryConfig
from infra.gemini.provider import BatchProvider
from infra.gemini.schemas import BatchRequest, BatchStats, ProviderJob, ProviderResponse, ProviderSnapshot
from pipeline.services import build_services


class FakeProvider(BatchProvider):
    """In-memory batch provider. Tests drive batch state explicitly."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.batches: Dict[str, Dict[str, Any]] = {}
        self.cancelled: List[str] = []
        self.generate_calls: List[Dict[str, Any]] = []
        self.content_responses: List[str] = []
        self.get_job_calls = 0
        self.submit_error: Optional[Exception] = None

    def submit_batch(self, model: str, requests: List[BatchRequest], display_name: str) -> ProviderJob:
        if self.submit_error is not None:
            raise self.submit_error
        name = f"batches/fake-{next(self._ids)}"
        self.batches[name] = {
            'model': model,
            'display_name': display_name,
            'requests': list(requests),
            'state': 'JOB_STATE_PENDING',
            'responses': None,
            'error': None,
        }
        return ProviderJob(name=name, state='JOB_STATE_PENDING')

    def keys(self, name: str) -> List[str]:
        return [r.key for r in self.batches[name]['requests']]

    def set_state(self, name: str, state: str, error: Optional[str] = None):
        self.batches[name]['state'] = state
        self.batches[name]['error'] = error

    def succeed(self, name: str, texts: Optional[Dict[str, str]] = None):
        """Finish a batch; pages missing from `texts` get a default OCR text."""
        responses = []
        for key in self.keys(name):
            text = texts.get(key, f"text of {key}") if texts is not None else f"text of {key}"
            responses.append(ProviderResponse(key=key, text=text))
        self.batches[name]['responses'] = responses
        self.set_state(name, 'JOB_STATE_SUCCEEDED')

    def get_job(self, name: str) -> ProviderSnapshot:
        self.get_job_calls += 1
        batch = self.batches[name]
        responses = batch['responses']
        stats = BatchStats(total=len(batch['requests']))
        if responses is not None:
            stats.success = sum(1 for r in responses if r.text and r.text.strip())
            stats.fail = stats.total - stats.success
        return ProviderSnapshot(
            name=name,
            state=batch['state'],
            stats=stats,
            responses=responses,
            error=batch['error'],
        )

    def cancel(self, name: str) -> None:
        self.cancelled.append(name)
        self.set_state(name, 'JOB_STATE_CANCELLED')

    def generate_content(self, model: str, parts: List[Dict[str, Any]], json_response: bool = False) -> str:
        self.generate_calls.append({'model': model, 'parts': parts, 'json_response': json_response})
        if self.content_responses:
            return self.content_responses.pop(0)
        return '{"overview": "An overview.", "quotes": [{"text": "Quote", "page": 1}], "themes": ["nature"]}'


def make_spread(path, width=1200, height=800, gutter_at=0.5):
    """White spread with two grey text blocks and a dark vertical gutter."""
    img = Image.new('L', (width, height), color=235)
    draw = ImageDraw.Draw(img)
    gutter = int(width * gutter_at)

    for y in range(80, height - 80, 24):
        draw.rectangle([80, y, gutter - 60, y + 8], fill=60)
        draw.rectangle([gutter + 60, y, width - 80, y + 8], fill=60)

    draw.rectangle([gutter - 4, 0, gutter + 4, height], fill=20)
    img.save(path)
    return path


def make_page(path, width=600, height=800):
    img = Image.new('RGB', (width, height), color='white')
    draw = ImageDraw.Draw(img)
    for y in range(80, height - 80, 24):
        draw.rectangle([60, y, width - 60, y + 8], fill='black')
    img.save(path)
    return path


@pytest.fixture
def storage_root(tmp_path):
    root = tmp_path / "library"
    root.mkdir()
    return root


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def services(storage_root, provider):
    services = build_services(storage_root, provider=provider, config=LibraryConfig.with_defaults())
    yield services
    services.close()


@pytest.fixture
def scans_dir(tmp_path):
    scans = tmp_path / "scans"
    scans.mkdir()
    return scans


def add_book_with_pages(services, scans_dir, book_id="test-book", count=12):
    services.library.add_book(book_id, "Test Book", author="Test Author")
    photos = [make_page(scans_dir / f"{book_id}-{i:04d}.png") for i in range(1, count + 1)]
    return services.library.add_pages(book_id, photos)


@pytest.fixture
def book(services, scans_dir):
    """A 12-page book whose pages all have images and no OCR yet."""
    add_book_with_pages(services, scans_dir)
    return services.library.books.get("test-book")
