"""
Process-wide config access.

BOOK_STORAGE_ROOT locates the library; its config.yaml is read once and
cached. A .env file in the working directory is loaded at import so that
${ENV_VAR} references in api_keys resolve.
"""

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

from .schemas import LibraryConfig

DEFAULT_STORAGE_ROOT = '~/Documents/scriptorium'

load_dotenv()


def get_storage_root() -> Path:
    return Path(os.getenv('BOOK_STORAGE_ROOT', DEFAULT_STORAGE_ROOT)).expanduser().resolve()


@lru_cache(maxsize=1)
def get_library_config() -> LibraryConfig:
    from .library_config import load_library_config
    return load_library_config(get_storage_root())


def get_api_key(name: str) -> str:
    """Resolved key from the cached config, or "" when unset."""
    return get_library_config().resolve_api_key(name) or ""
