"""Storage subsystem: Library, DocumentCollection"""

from infra.storage.documents import DocumentCollection, get_path, set_path, now_iso
from infra.storage.library import Library, page_id_for

__all__ = [
    "DocumentCollection",
    "Library",
    "get_path",
    "set_path",
    "now_iso",
    "page_id_for",
]
