from infra.config import get_library_config, get_storage_root
from infra.storage import Library, DocumentCollection
from infra.logger import PipelineLogger, create_logger
from infra.errors import (
    ScriptoriumError,
    ValidationError,
    NotFound,
    InvalidTransition,
    UpstreamError,
)

__all__ = [
    "get_library_config",
    "get_storage_root",
    "Library",
    "DocumentCollection",
    "PipelineLogger",
    "create_logger",
    "ScriptoriumError",
    "ValidationError",
    "NotFound",
    "InvalidTransition",
    "UpstreamError",
]
