#!/usr/bin/env python3
import json
from typing import Any, Dict, List, Optional

from infra.batch.schemas import BatchState, normalize_state
from infra.config import ProviderConfig
from infra.errors import UpstreamError
from infra.gemini.provider import BatchProvider
from infra.gemini.response_parser import (
    extract_text, parse_jsonl, parse_snapshot, parse_submit,
)
from infra.gemini.schemas import BatchRequest, ProviderJob, ProviderSnapshot
from infra.gemini.transport import GeminiTransport
from infra.logger import create_logger


class GeminiBatchClient(BatchProvider):
    """Gemini Batch API: inline or file-backed submissions, polling, results."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[ProviderConfig] = None,
        logger=None,
        transport: Optional[GeminiTransport] = None
    ):
        self.config = config or ProviderConfig()
        self.logger = logger or create_logger("gemini")
        self.transport = transport or GeminiTransport(api_key=api_key, config=self.config, logger=self.logger)

    @property
    def base_url(self) -> str:
        return self.config.base_url.rstrip('/')

    def submit_batch(self, model: str, requests: List[BatchRequest], display_name: str) -> ProviderJob:
        lines = [json.dumps({'key': r.key, 'request': r.request}) for r in requests]
        payload_size = sum(len(line) for line in lines)

        if payload_size > self.config.inline_limit_bytes:
            file_name = self.upload_jsonl('\n'.join(lines).encode('utf-8'), display_name)
            input_config = {'file_name': file_name}
        else:
            input_config = {
                'requests': {
                    'requests': [
                        {'request': r.request, 'metadata': {'key': r.key}}
                        for r in requests
                    ]
                }
            }

        body = {'batch': {'display_name': display_name, 'input_config': input_config}}
        data = self.transport.post_json(
            f"{self.base_url}/models/{model}:batchGenerateContent",
            'batch submit',
            body,
            timeout=self.config.upload_timeout,
        )
        job = parse_submit(data)

        self.logger.info(
            f"Batch submitted ({len(requests)} requests, {payload_size} bytes)",
            job_name=job.name,
            status=job.state,
        )
        return job

    def upload_jsonl(self, content: bytes, display_name: str) -> str:
        """Resumable upload of a JSONL batch input. Returns the file resource name."""
        start = self.transport.request(
            "POST",
            self.config.upload_url,
            'upload start',
            headers={
                'X-Goog-Upload-Protocol': 'resumable',
                'X-Goog-Upload-Command': 'start',
                'X-Goog-Upload-Header-Content-Length': str(len(content)),
                'X-Goog-Upload-Header-Content-Type': 'application/jsonl',
                'Content-Type': 'application/json',
            },
            json={'file': {'display_name': display_name}},
        )
        upload_url = start.headers.get('x-goog-upload-url')
        if not upload_url:
            raise UpstreamError("Gemini upload start returned no upload URL")

        finished = self.transport.request(
            "POST",
            upload_url,
            'upload',
            timeout=self.config.upload_timeout,
            headers={
                'Content-Length': str(len(content)),
                'X-Goog-Upload-Offset': '0',
                'X-Goog-Upload-Command': 'upload, finalize',
            },
            data=content,
        )
        file_info = self.transport.parse_json(finished, 'upload')
        file_name = (file_info.get('file') or {}).get('name')
        if not file_name:
            raise UpstreamError("Gemini upload finished without a file name")

        self.logger.info(f"Uploaded batch input {file_name} ({len(content)} bytes)")
        return file_name

    def get_job(self, name: str) -> ProviderSnapshot:
        data = self.transport.get_json(f"{self.base_url}/{name}", 'batch poll')
        snapshot = parse_snapshot(data)
        if not snapshot.name:
            snapshot.name = name

        succeeded = normalize_state(snapshot.state) == BatchState.SUCCEEDED
        if succeeded and snapshot.responses is None and snapshot.responses_file:
            snapshot.responses = self.download_responses(snapshot.responses_file)

        return snapshot

    def download_responses(self, file_name: str):
        response = self.transport.request(
            "GET",
            f"{self.config.download_url.rstrip('/')}/{file_name}:download",
            'result download',
            timeout=self.config.upload_timeout,
            params={'alt': 'media'},
        )
        return parse_jsonl(response.text)

    def cancel(self, name: str) -> None:
        self.transport.post_json(f"{self.base_url}/{name}:cancel", 'batch cancel', {})
        self.logger.info("Batch cancel requested", job_name=name)

    def list_batches(self, page_size: int = 20) -> List[Dict[str, Any]]:
        data = self.transport.get_json(
            f"{self.base_url}/batches", 'batch list', params={'pageSize': page_size}
        )
        return data.get('operations') or data.get('batches') or []

    def generate_content(self, model: str, parts: List[Dict[str, Any]], json_response: bool = False) -> str:
        body: Dict[str, Any] = {'contents': [{'role': 'user', 'parts': parts}]}
        if json_response:
            body['generationConfig'] = {'responseMimeType': 'application/json'}

        data = self.transport.post_json(
            f"{self.base_url}/models/{model}:generateContent", 'generate', body
        )
        text = extract_text(data)
        if not text:
            raise UpstreamError("Gemini returned no text", body=str(data)[:500])
        return text
