#!/usr/bin/env python3
"""
Tolerant parsing of Gemini batch API payloads.

The batch endpoints wrap the same information in a few different shapes
(operation metadata, operation response, SDK-style `dest`), so every reader
here looks in each known location before giving up.
"""

import json
from typing import Any, Dict, List, Optional

from infra.errors import UpstreamError
from infra.gemini.schemas import BatchStats, ProviderJob, ProviderResponse, ProviderSnapshot


def _sections(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    sections = [data]
    for key in ('metadata', 'response', 'dest'):
        value = data.get(key)
        if isinstance(value, dict):
            sections.append(value)
    metadata = data.get('metadata')
    if isinstance(metadata, dict) and isinstance(metadata.get('output'), dict):
        sections.append(metadata['output'])
    return sections


def _first(data: Dict[str, Any], *keys: str) -> Any:
    for section in _sections(data):
        for key in keys:
            if section.get(key) is not None:
                return section[key]
    return None


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def parse_submit(data: Dict[str, Any]) -> ProviderJob:
    name = data.get('name')
    if not name:
        raise UpstreamError("Gemini batch submit response has no job name", body=str(data)[:500])
    state = _first(data, 'state') or 'JOB_STATE_PENDING'
    return ProviderJob(name=name, state=state)


def parse_stats(data: Dict[str, Any]) -> BatchStats:
    raw = _first(data, 'batchStats', 'batch_stats') or {}
    return BatchStats(
        total=_to_int(raw.get('requestCount', raw.get('request_count'))),
        success=_to_int(raw.get('successfulRequestCount', raw.get('successful_request_count'))),
        fail=_to_int(raw.get('failedRequestCount', raw.get('failed_request_count'))),
    )


def extract_text(response: Optional[Dict[str, Any]]) -> Optional[str]:
    """Join the text parts of the first candidate, skipping thought parts."""
    if not isinstance(response, dict):
        return None
    candidates = response.get('candidates') or []
    if not candidates:
        return None
    parts = (candidates[0].get('content') or {}).get('parts') or []
    texts = [p.get('text') for p in parts if isinstance(p, dict) and p.get('text') and not p.get('thought')]
    if not texts:
        return None
    return ''.join(texts)


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return error.get('message') or json.dumps(error)
    return str(error)


def parse_response_entry(entry: Dict[str, Any]) -> ProviderResponse:
    key = entry.get('key') or (entry.get('metadata') or {}).get('key')
    if entry.get('error'):
        return ProviderResponse(key=key, error=_error_message(entry['error']))
    return ProviderResponse(key=key, text=extract_text(entry.get('response')))


def parse_inlined(data: Dict[str, Any]) -> Optional[List[ProviderResponse]]:
    inlined = _first(data, 'inlinedResponses', 'inlined_responses')
    if isinstance(inlined, dict):
        inlined = inlined.get('inlinedResponses', inlined.get('inlined_responses'))
    if inlined is None:
        return None
    return [parse_response_entry(entry) for entry in inlined]


def parse_jsonl(text: str) -> List[ProviderResponse]:
    responses = []
    for line_num, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            responses.append(ProviderResponse(error=f"Unreadable result line {line_num}"))
            continue
        responses.append(parse_response_entry(entry))
    return responses


def parse_snapshot(data: Dict[str, Any]) -> ProviderSnapshot:
    name = data.get('name', '')
    state = _first(data, 'state') or ''
    error = data.get('error')

    return ProviderSnapshot(
        name=name,
        state=state,
        stats=parse_stats(data),
        responses=parse_inlined(data),
        responses_file=_first(data, 'responsesFile', 'responses_file', 'fileName', 'file_name'),
        error=_error_message(error) if error else None,
    )


def parse_json_text(text: str) -> Dict[str, Any]:
    """Parse a JSON object from model output, tolerating markdown code fences."""
    cleaned = text.strip()
    if cleaned.startswith('```'):
        cleaned = cleaned.split('\n', 1)[1] if '\n' in cleaned else ''
        if cleaned.rstrip().endswith('```'):
            cleaned = cleaned.rstrip()[:-3]
    start = cleaned.find('{')
    end = cleaned.rfind('}')
    if start == -1 or end == -1:
        raise UpstreamError("Model response contained no JSON object", body=text[:500])
    try:
        return json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError as e:
        raise UpstreamError(f"Model response was not valid JSON: {e}", body=text[:500]) from e
