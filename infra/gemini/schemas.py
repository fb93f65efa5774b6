#!/usr/bin/env python3
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class BatchRequest:
    """One keyed GenerateContent request inside a batch."""
    key: str
    request: Dict[str, Any]


@dataclass
class ProviderJob:
    name: str
    state: str


@dataclass
class BatchStats:
    total: int = 0
    success: int = 0
    fail: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {'total': self.total, 'success': self.success, 'fail': self.fail}


@dataclass
class ProviderResponse:
    key: Optional[str] = None
    text: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ProviderSnapshot:
    name: str
    state: str
    stats: BatchStats = field(default_factory=BatchStats)
    # None until the provider has results to hand back
    responses: Optional[List[ProviderResponse]] = None
    responses_file: Optional[str] = None
    error: Optional[str] = None
