#!/usr/bin/env python3
import requests
from typing import Dict, Any, Optional

from infra.config import ProviderConfig, get_api_key
from infra.errors import UpstreamError, ValidationError
from infra.gemini.retry_policy import RetryPolicy
from infra.logger import create_logger


class GeminiTransport:
    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[ProviderConfig] = None,
        logger=None,
        retry_policy: Optional[RetryPolicy] = None
    ):
        self.logger = logger or create_logger("gemini")
        self.config = config or ProviderConfig()
        self._api_key = api_key
        self.retry_policy = retry_policy or RetryPolicy(
            logger=self.logger,
            max_retries=self.config.max_retries,
            backoff_base=self.config.backoff_base,
            backoff_max=self.config.backoff_max,
        )

    @property
    def api_key(self) -> str:
        key = self._api_key or get_api_key("gemini")
        if not key:
            raise ValidationError(
                "gemini API key not configured. "
                "Set GEMINI_API_KEY or run: scriptorium config set-key gemini <key>"
            )
        return key

    def request(
        self,
        method: str,
        url: str,
        operation: str,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> requests.Response:
        read_timeout = timeout or self.config.request_timeout
        all_headers = {"x-goog-api-key": self.api_key}
        all_headers.update(headers or {})

        def send():
            self.logger.debug(f"Gemini {operation} request: {method} {url}")
            response = requests.request(
                method,
                url,
                headers=all_headers,
                timeout=(self.config.connect_timeout, read_timeout),
                **kwargs
            )
            self.logger.debug(f"Gemini {operation} response", status=response.status_code)

            if not response.ok:
                raise UpstreamError(
                    f"Gemini {operation} failed: HTTP {response.status_code}: {response.text[:500]}",
                    status=response.status_code
                )
            return response

        return self.retry_policy.execute_with_retry(send, {'operation': f"Gemini {operation}"})

    def get_json(self, url: str, operation: str, **kwargs) -> Dict[str, Any]:
        return self.parse_json(self.request("GET", url, operation, **kwargs), operation)

    def post_json(self, url: str, operation: str, payload: Dict[str, Any], **kwargs) -> Dict[str, Any]:
        return self.parse_json(self.request("POST", url, operation, json=payload, **kwargs), operation)

    def parse_json(self, response: requests.Response, operation: str) -> Dict[str, Any]:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"Gemini {operation} returned invalid JSON: {e}") from e
