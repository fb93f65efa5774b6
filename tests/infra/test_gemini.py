"""
Tests for infra/gemini/

Retry policy, payload parsing and the batch client. The client runs over
a scripted transport, so no request leaves the process.
"""

import json

import pytest
import requests

from infra.config import ProviderConfig
from infra.errors import UpstreamError
from infra.gemini.client import GeminiBatchClient
from infra.gemini.response_parser import (
    extract_text, parse_json_text, parse_jsonl, parse_snapshot, parse_submit,
)
from infra.gemini.retry_policy import RetryPolicy
from infra.gemini.schemas import BatchRequest
from infra.gemini.transport import GeminiTransport


class ScriptedTransport(GeminiTransport):
    """Answers get_json/post_json from a queue and records every call."""

    def __init__(self, answers):
        super().__init__(api_key="test-key")
        self.answers = list(answers)
        self.calls = []

    def get_json(self, url, operation, **kwargs):
        self.calls.append(('GET', url, None))
        return self.answers.pop(0)

    def post_json(self, url, operation, payload, **kwargs):
        self.calls.append(('POST', url, payload))
        return self.answers.pop(0)


def candidate(text, thought=False):
    part = {'text': text}
    if thought:
        part['thought'] = True
    return {'candidates': [{'content': {'parts': [part]}}]}


class TestRetryPolicy:

    def make_policy(self, sleeps, max_retries=3):
        return RetryPolicy(max_retries=max_retries, backoff_base=1.0, backoff_max=4.0, sleep=sleeps.append)

    def test_connection_errors_are_retried(self):
        sleeps = []
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise requests.exceptions.ConnectionError("reset")
            return "ok"

        assert self.make_policy(sleeps).execute_with_retry(flaky, {'operation': 'poll'}) == "ok"
        assert len(attempts) == 3
        assert len(sleeps) == 2

    def test_exhausted_retries_raise_upstream(self):
        sleeps = []

        def down():
            raise requests.exceptions.Timeout("slow")

        with pytest.raises(UpstreamError) as exc:
            self.make_policy(sleeps, max_retries=2).execute_with_retry(down, {'operation': 'poll'})
        assert exc.value.details['attempts'] == 2
        assert len(sleeps) == 1

    def test_http_errors_are_not_retried(self):
        """An error answer from the provider propagates on the first attempt."""
        sleeps = []
        attempts = []

        def rejected():
            attempts.append(1)
            raise UpstreamError("HTTP 400", status=400)

        with pytest.raises(UpstreamError):
            self.make_policy(sleeps).execute_with_retry(rejected, {})
        assert attempts == [1]
        assert sleeps == []

    def test_backoff_is_capped(self):
        policy = RetryPolicy(backoff_base=1.0, backoff_max=4.0)
        assert 4.0 <= policy.delay_for(10) <= 4.4


class TestResponseParser:

    def test_parse_submit(self):
        job = parse_submit({'name': 'batches/abc', 'metadata': {'state': 'BATCH_STATE_PENDING'}})
        assert job.name == 'batches/abc'
        assert job.state == 'BATCH_STATE_PENDING'

    def test_parse_submit_without_name(self):
        with pytest.raises(UpstreamError):
            parse_submit({'metadata': {}})

    def test_snapshot_from_operation_metadata(self):
        """State, stats and inlined responses are read from the operation metadata."""
        snapshot = parse_snapshot({
            'name': 'batches/abc',
            'metadata': {
                'state': 'BATCH_STATE_SUCCEEDED',
                'batchStats': {'requestCount': '3', 'successfulRequestCount': '2', 'failedRequestCount': '1'},
                'output': {
                    'inlinedResponses': {
                        'inlinedResponses': [
                            {'metadata': {'key': 'p1'}, 'response': candidate('one')},
                            {'metadata': {'key': 'p2'}, 'error': {'message': 'blocked'}},
                        ]
                    }
                },
            },
        })

        assert snapshot.state == 'BATCH_STATE_SUCCEEDED'
        assert snapshot.stats.to_dict() == {'total': 3, 'success': 2, 'fail': 1}
        assert snapshot.responses[0].key == 'p1'
        assert snapshot.responses[0].text == 'one'
        assert snapshot.responses[1].error == 'blocked'

    def test_snapshot_with_responses_file(self):
        snapshot = parse_snapshot({
            'name': 'batches/abc',
            'state': 'JOB_STATE_SUCCEEDED',
            'dest': {'fileName': 'files/out-1'},
        })
        assert snapshot.responses is None
        assert snapshot.responses_file == 'files/out-1'

    def test_extract_text_skips_thoughts(self):
        response = {'candidates': [{'content': {'parts': [
            {'text': 'thinking...', 'thought': True},
            {'text': 'Answer'},
        ]}}]}
        assert extract_text(response) == 'Answer'

    def test_extract_text_empty(self):
        assert extract_text({'candidates': []}) is None
        assert extract_text(None) is None

    def test_parse_jsonl_tolerates_bad_lines(self):
        text = '\n'.join([
            json.dumps({'key': 'p1', 'response': candidate('one')}),
            'not json',
            '',
        ])
        responses = parse_jsonl(text)

        assert len(responses) == 2
        assert responses[0].text == 'one'
        assert responses[1].error == 'Unreadable result line 2'

    def test_parse_json_text_with_fences(self):
        assert parse_json_text('```json\n{"a": 1}\n```') == {'a': 1}

    def test_parse_json_text_with_prose(self):
        assert parse_json_text('Here you go: {"a": [1, 2]} thanks') == {'a': [1, 2]}

    def test_parse_json_text_without_object(self):
        with pytest.raises(UpstreamError):
            parse_json_text('no json here')


class TestGeminiBatchClient:

    def test_inline_submission(self):
        transport = ScriptedTransport([{'name': 'batches/1', 'metadata': {'state': 'JOB_STATE_PENDING'}}])
        client = GeminiBatchClient(transport=transport)

        job = client.submit_batch('gemini-test', [BatchRequest(key='p1', request={'contents': []})], 'ocr-b-1')

        method, url, payload = transport.calls[0]
        assert url.endswith('/models/gemini-test:batchGenerateContent')
        inline = payload['batch']['input_config']['requests']['requests']
        assert inline == [{'request': {'contents': []}, 'metadata': {'key': 'p1'}}]
        assert job.name == 'batches/1'

    def test_large_submission_uploads_file(self):
        """Batches over the inline limit go through a JSONL upload."""
        transport = ScriptedTransport([{'name': 'batches/2'}])
        client = GeminiBatchClient(config=ProviderConfig(inline_limit_bytes=10), transport=transport)
        uploads = []
        client.upload_jsonl = lambda content, name: uploads.append(content) or 'files/in-1'

        client.submit_batch('gemini-test', [BatchRequest(key='p1', request={'contents': ['x' * 50]})], 'big')

        assert len(uploads) == 1
        assert json.loads(uploads[0].decode('utf-8'))['key'] == 'p1'
        assert transport.calls[0][2]['batch']['input_config'] == {'file_name': 'files/in-1'}

    def test_get_job_downloads_results_file(self):
        transport = ScriptedTransport([{
            'name': 'batches/3',
            'state': 'JOB_STATE_SUCCEEDED',
            'dest': {'fileName': 'files/out-3'},
        }])
        client = GeminiBatchClient(transport=transport)
        client.download_responses = lambda name: parse_jsonl(json.dumps({'key': 'p1', 'response': candidate('t')}))

        snapshot = client.get_job('batches/3')

        assert snapshot.responses[0].text == 't'

    def test_generate_content_json_mode(self):
        transport = ScriptedTransport([candidate('{"overview": "x"}')])
        client = GeminiBatchClient(transport=transport)

        text = client.generate_content('gemini-test', [{'text': 'hi'}], json_response=True)

        assert text == '{"overview": "x"}'
        assert transport.calls[0][2]['generationConfig'] == {'responseMimeType': 'application/json'}

    def test_generate_content_without_text(self):
        client = GeminiBatchClient(transport=ScriptedTransport([{'candidates': []}]))
        with pytest.raises(UpstreamError):
            client.generate_content('gemini-test', [{'text': 'hi'}])
