#!/usr/bin/env python3
import time
import random
import requests
from typing import Callable, Dict, Any, TypeVar, Optional

from infra.errors import UpstreamError
from infra.logger import create_logger

T = TypeVar('T')

# Connection-level failures only. HTTP status errors are answers, not outages.
RETRYABLE_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


class RetryPolicy:
    def __init__(
        self,
        logger: Optional[Any] = None,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        backoff_max: float = 30.0,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.logger = logger or create_logger("gemini")
        self.max_retries = max(1, max_retries)
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.sleep = sleep

    def delay_for(self, attempt: int) -> float:
        delay = min(self.backoff_base * (2 ** attempt), self.backoff_max)
        return delay + random.uniform(0, delay * 0.1)

    def execute_with_retry(self, fn: Callable[[], T], context: Dict[str, Any]) -> T:
        operation = context.get('operation', 'request')

        for attempt in range(self.max_retries):
            try:
                result = fn()

                if attempt > 0:
                    self.logger.debug(
                        f"{operation} succeeded after {attempt+1} attempts",
                        attempt=attempt+1
                    )

                return result

            except RETRYABLE_ERRORS as e:
                if attempt < self.max_retries - 1:
                    delay = self.delay_for(attempt)
                    self.logger.warning(
                        f"{operation} connection failure, retrying in {delay:.1f}s",
                        attempt=attempt+1,
                        error=str(e)
                    )
                    self.sleep(delay)
                    continue

                self.logger.error(
                    f"{operation} connection failure on final attempt",
                    attempt=attempt+1,
                    error=str(e)
                )
                raise UpstreamError(
                    f"{operation} failed after {self.max_retries} attempts: {e}",
                    attempts=self.max_retries
                ) from e
