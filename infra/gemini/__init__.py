from infra.gemini.schemas import (
    BatchRequest,
    ProviderJob,
    ProviderResponse,
    ProviderSnapshot,
    BatchStats,
)
from infra.gemini.provider import BatchProvider
from infra.gemini.client import GeminiBatchClient
from infra.gemini.retry_policy import RetryPolicy
from infra.gemini.transport import GeminiTransport

__all__ = [
    "BatchRequest",
    "ProviderJob",
    "ProviderResponse",
    "ProviderSnapshot",
    "BatchStats",
    "BatchProvider",
    "GeminiBatchClient",
    "RetryPolicy",
    "GeminiTransport",
]
