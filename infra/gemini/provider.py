from abc import ABC, abstractmethod
from typing import Any, Dict, List

from infra.gemini.schemas import BatchRequest, ProviderJob, ProviderSnapshot


class BatchProvider(ABC):
    """Everything the job engine needs from a batch inference service.

    The engine only talks to this interface, so tests and alternative
    providers can be swapped in without touching submission or collection.
    """

    @abstractmethod
    def submit_batch(self, model: str, requests: List[BatchRequest], display_name: str) -> ProviderJob:
        pass

    @abstractmethod
    def get_job(self, name: str) -> ProviderSnapshot:
        """Current state of a batch. Responses are attached once it succeeded."""
        pass

    @abstractmethod
    def cancel(self, name: str) -> None:
        pass

    @abstractmethod
    def generate_content(self, model: str, parts: List[Dict[str, Any]], json_response: bool = False) -> str:
        """Single synchronous call, used by inline steps."""
        pass

    @property
    def provider_name(self) -> str:
        return self.__class__.__name__

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
