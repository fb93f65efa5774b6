#!/usr/bin/env python3
import base64
import io
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import requests
from PIL import Image

from infra.config import ProviderConfig
from infra.errors import UpstreamError
from infra.gemini.retry_policy import RetryPolicy
from infra.logger import create_logger


def resolve_image_source(page: Dict[str, Any]) -> Tuple[Optional[str], bool]:
    """Pick the best stored image for a page.

    Returns (source, needs_crop). A stored cropped image wins; otherwise the
    archived or original photo is used and cropped locally when the page
    carries crop bounds.
    """
    if page.get('cropped_photo'):
        return page['cropped_photo'], False

    source = page.get('archived_photo') or page.get('photo_original') or page.get('photo')
    return source, bool(source and page.get('crop'))


def crop_image(img: Image.Image, crop: Dict[str, Any]) -> Image.Image:
    """Crop horizontally using bounds on a 0-1000 scale."""
    width, height = img.size
    x_start = max(0, min(1000, int(crop.get('xStart', 0))))
    x_end = max(0, min(1000, int(crop.get('xEnd', 1000))))
    if x_end <= x_start:
        raise ValueError(f"Invalid crop bounds: {crop}")
    left = round(width * x_start / 1000)
    right = round(width * x_end / 1000)
    return img.crop((left, 0, right, height))


class PageImageLoader:
    def __init__(self, config: Optional[ProviderConfig] = None, logger=None, retry_policy: Optional[RetryPolicy] = None):
        self.config = config or ProviderConfig()
        self.logger = logger or create_logger("images")
        self.retry_policy = retry_policy or RetryPolicy(
            logger=self.logger,
            max_retries=self.config.max_retries,
            backoff_base=self.config.backoff_base,
            backoff_max=self.config.backoff_max,
        )

    def fetch_bytes(self, source: str) -> bytes:
        if source.startswith(('http://', 'https://')):
            def get():
                response = requests.get(
                    source,
                    timeout=(self.config.connect_timeout, self.config.image_timeout)
                )
                if not response.ok:
                    raise UpstreamError(
                        f"Image fetch failed: HTTP {response.status_code}",
                        status=response.status_code
                    )
                return response.content

            return self.retry_policy.execute_with_retry(get, {'operation': 'image fetch'})

        if source.startswith('file://'):
            source = source[len('file://'):]
        return Path(source).expanduser().read_bytes()

    def load_image(self, page: Dict[str, Any]) -> Image.Image:
        """Load a page image as PIL, cropped when required. Raises on failure."""
        source, needs_crop = resolve_image_source(page)
        if not source:
            raise ValueError(f"Page {page.get('id')} has no image")

        img = Image.open(io.BytesIO(self.fetch_bytes(source)))
        img.load()
        if needs_crop:
            img = crop_image(img, page['crop'])
        return img

    def encode_page(self, page: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Build an inline_data part for a page, or None when the image is unusable."""
        source, needs_crop = resolve_image_source(page)
        if not source:
            self.logger.warning("Page has no image", page_id=page.get('id'))
            return None

        try:
            data = self.fetch_bytes(source)
            img = Image.open(io.BytesIO(data))
            mime_type = Image.MIME.get(img.format, 'image/jpeg')

            if needs_crop:
                img = crop_image(img, page['crop'])
                buffered = io.BytesIO()
                img.convert('RGB').save(buffered, format="JPEG", quality=90)
                data = buffered.getvalue()
                mime_type = 'image/jpeg'
        except (UpstreamError, OSError, ValueError) as e:
            self.logger.warning(
                "Skipping page: image unavailable",
                page_id=page.get('id'),
                error=str(e)
            )
            return None

        self.logger.debug(
            f"Encoded page image ({len(data)} bytes)",
            page_id=page.get('id')
        )
        return {
            'inline_data': {
                'mime_type': mime_type,
                'data': base64.b64encode(data).decode('utf-8'),
            }
        }
