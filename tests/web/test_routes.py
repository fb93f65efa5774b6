"""
Tests for web/routes/

Every route runs through the Flask test client against a real library
and the in-memory batch provider.
"""

import pytest

from web.app import create_app


@pytest.fixture
def client(services):
    app = create_app(services)
    app.config['TESTING'] = True
    return app.test_client()


def submit(client, **body):
    payload = {'bookId': 'test-book', 'type': 'ocr'}
    payload.update(body)
    return client.post('/jobs/batch', json=payload)


class TestBatchRoutes:

    def test_submit_created(self, client, book):
        response = submit(client, limit=10)

        assert response.status_code == 201
        data = response.get_json()
        assert data['pagesSubmitted'] == 10
        assert data['jobName'].startswith('batches/')
        assert data['skipped'] == []

    def test_submit_nothing_to_do(self, client, services, book):
        """No pending pages is a 200 with a message, not an error."""
        response = submit(client, type='translate')

        assert response.status_code == 200
        assert response.get_json() == {'message': 'no pages'}

    def test_submit_unknown_type(self, client, book):
        response = submit(client, type='binding')

        assert response.status_code == 400
        assert 'Unknown batch type' in response.get_json()['error']

    def test_submit_missing_book_id(self, client, book):
        response = client.post('/jobs/batch', json={'type': 'ocr'})

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid request body'

    def test_submit_unknown_book(self, client):
        response = submit(client, bookId='ghost')
        assert response.status_code == 404

    def test_submit_without_json(self, client, book):
        response = client.post('/jobs/batch', data='bookId=test-book')
        assert response.status_code == 400

    def test_submit_prepare_failed(self, client, book, scans_dir):
        for photo in scans_dir.iterdir():
            photo.unlink()

        response = submit(client, limit=2)

        assert response.status_code == 400
        assert response.get_json()['attempted'] == 2

    def test_poll_and_collect(self, client, provider, book):
        job_name = submit(client, limit=3).get_json()['jobName']
        provider.succeed(job_name)

        data = client.get('/jobs/batch', query_string={'jobName': job_name}).get_json()

        assert data['status'] == 'succeeded'
        assert data['collected'] is True
        assert data['successCount'] == 3

    def test_list_batches_for_book(self, client, book):
        submit(client, limit=2)

        data = client.get('/jobs/batch', query_string={'bookId': 'test-book'}).get_json()

        assert len(data['batches']) == 1
        assert data['batches'][0]['page_count'] == 2

    def test_list_batches_requires_filter(self, client):
        assert client.get('/jobs/batch').status_code == 400

    def test_sync(self, client, provider, book):
        job_name = submit(client, limit=2).get_json()['jobName']
        provider.succeed(job_name)

        data = client.post('/jobs/batch/sync').get_json()

        assert data['polled'] == 1
        assert data['collected'] == 1


class TestJobRoutes:

    @pytest.fixture
    def job_id(self, client, book):
        return submit(client, limit=3).get_json()['jobId']

    def test_get_job(self, client, job_id):
        job = client.get(f'/jobs/{job_id}').get_json()['job']

        assert job['status'] == 'processing'
        assert job['progress'] == {'total': 3, 'completed': 0, 'failed': 0}

    def test_get_missing_job(self, client):
        response = client.get('/jobs/nope')

        assert response.status_code == 404
        assert "Job 'nope' not found" in response.get_json()['error']

    def test_list_jobs(self, client, job_id):
        data = client.get('/jobs', query_string={'bookId': 'test-book', 'status': 'processing'}).get_json()
        assert [j['id'] for j in data['jobs']] == [job_id]

    def test_list_jobs_bad_status(self, client, job_id):
        assert client.get('/jobs', query_string={'status': 'sleepy'}).status_code == 400

    def test_patch_action(self, client, job_id):
        response = client.patch(f'/jobs/{job_id}', json={'action': 'cancel'})

        assert response.status_code == 200
        assert response.get_json()['job']['status'] == 'cancelled'

    def test_patch_invalid_transition(self, client, job_id):
        """An action the current status forbids is a 400 naming the status."""
        response = client.patch(f'/jobs/{job_id}', json={'action': 'resume'})

        assert response.status_code == 400
        data = response.get_json()
        assert data['status'] == 'processing'
        assert data['action'] == 'resume'

    def test_patch_progress(self, client, job_id):
        response = client.patch(f'/jobs/{job_id}', json={
            'results': [{'page_id': 'test-book-p0001', 'success': True}],
        })
        assert response.get_json()['job']['progress']['completed'] == 1

    def test_patch_action_and_progress_rejected(self, client, job_id):
        response = client.patch(f'/jobs/{job_id}', json={'action': 'cancel', 'status': 'completed'})
        assert response.status_code == 400

    def test_patch_cancelled_job_refused(self, client, job_id):
        client.patch(f'/jobs/{job_id}', json={'action': 'cancel'})

        response = client.patch(f'/jobs/{job_id}', json={'status': 'completed'})

        assert response.status_code == 400
        assert client.get(f'/jobs/{job_id}').get_json()['job']['status'] == 'cancelled'

    def test_delete_processing_refused(self, client, job_id):
        assert client.delete(f'/jobs/{job_id}').status_code == 400

    def test_delete_after_cancel(self, client, job_id):
        client.patch(f'/jobs/{job_id}', json={'action': 'cancel'})

        assert client.delete(f'/jobs/{job_id}').get_json() == {'deleted': job_id}
        assert client.get(f'/jobs/{job_id}').status_code == 404

    def test_retry_and_resubmit(self, client, provider, job_id):
        job_name = client.get(f'/jobs/{job_id}').get_json()['job']['batch_job_name']
        provider.succeed(job_name, {'test-book-p0002': ''})
        client.get('/jobs/batch', query_string={'jobName': job_name})

        client.patch(f'/jobs/{job_id}', json={'action': 'retry'})
        response = client.post(f'/jobs/{job_id}/submit')

        assert response.status_code == 201
        assert response.get_json()['pagesSubmitted'] == 1


class TestPipelineRoutes:

    def test_get_initial(self, client, book):
        data = client.get('/pipeline/test-book').get_json()

        assert data['bookId'] == 'test-book'
        assert data['pipeline']['status'] == 'idle'
        assert data['pipeline']['currentStep'] is None

    def test_missing_book(self, client):
        assert client.get('/pipeline/ghost').status_code == 404

    def test_start_and_run(self, client, book):
        started = client.post('/pipeline/test-book', json={'action': 'start', 'config': {'language': 'Greek'}})
        assert started.get_json()['pipeline']['config']['language'] == 'Greek'

        data = client.post('/pipeline/test-book/run').get_json()

        assert [r['step'] for r in data['runs']] == ['split_check', 'ocr']
        assert data['runs'][1]['status'] == 'job_created'
        assert data['pipeline']['currentStep'] == 'ocr'
        assert data['pipeline']['steps']['ocr']['jobId'] == data['runs'][1]['jobId']

    def test_execute_step(self, client, book):
        client.post('/pipeline/test-book', json={'action': 'start'})

        data = client.post('/pipeline/test-book/step', json={'step': 'split_check'}).get_json()

        assert data['status'] == 'skipped'
        assert data['nextStep'] == 'ocr'

    def test_step_out_of_order(self, client, book):
        client.post('/pipeline/test-book', json={'action': 'start'})
        response = client.post('/pipeline/test-book/step', json={'step': 'edition'})
        assert response.status_code == 400

    def test_action_not_allowed(self, client, book):
        response = client.post('/pipeline/test-book', json={'action': 'resume'})

        assert response.status_code == 400
        assert response.get_json()['status'] == 'idle'

    def test_unknown_action(self, client, book):
        response = client.post('/pipeline/test-book', json={'action': 'fly'})
        assert response.status_code == 400

    def test_cancelling_step_job_fails_pipeline(self, client, book):
        """Cancelling the OCR job over the jobs API is enough to fail the pipeline."""
        client.post('/pipeline/test-book', json={'action': 'start'})
        run = client.post('/pipeline/test-book/run').get_json()
        job_id = run['pipeline']['steps']['ocr']['jobId']

        assert client.patch(f'/jobs/{job_id}', json={'action': 'cancel'}).status_code == 200

        data = client.get('/pipeline/test-book').get_json()
        assert data['pipeline']['status'] == 'failed'
        assert data['pipeline']['currentStep'] == 'ocr'
        assert data['pipeline']['steps']['ocr']['status'] == 'failed'
