import json
import sys
from typing import Any

from infra.config import get_storage_root


def load_services(args=None):
    """Build the service graph for the library at BOOK_STORAGE_ROOT."""
    from pipeline.services import build_services

    return build_services(get_storage_root())


def fail(message: str, code: int = 1):
    print(f"❌ {message}")
    sys.exit(code)


def print_json(data: Any):
    print(json.dumps(data, indent=2, default=str))


def mask_key(value: str) -> str:
    """Mask an API key for display."""
    if not value:
        return "(not set)"
    if len(value) <= 8:
        return "****"
    return value[:4] + "..." + value[-4:]


def status_style(status: str) -> str:
    return {
        'completed': 'green',
        'succeeded': 'green',
        'skipped': 'yellow',
        'running': 'cyan',
        'processing': 'cyan',
        'pending': 'white',
        'paused': 'yellow',
        'failed': 'red',
        'cancelled': 'magenta',
    }.get(status, 'white')
