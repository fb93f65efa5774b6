"""
Job routes blueprint.

Batch submission and polling, the job state machine and progress updates.
"""

from flask import Blueprint, jsonify, request

from infra.batch.schemas import BatchJob, NoPages, PrepareFailed
from infra.errors import ValidationError
from web.app import get_services
from web.schemas import BatchSubmitRequest, JobPatchRequest

job_bp = Blueprint('jobs', __name__, url_prefix='/jobs')

RECENT_BATCHES = 10


def _body():
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError("Request body must be JSON")
    return data


def _job_json(job):
    return job.model_dump(mode='json')


@job_bp.route('/batch', methods=['POST'])
def submit_batch():
    body = BatchSubmitRequest.model_validate(_body())
    services = get_services()

    outcome = services.submitter.submit_batch(
        body.book_id,
        body.type,
        limit=body.limit,
        model=body.model,
        language=body.language,
        target_language=body.target_language,
    )

    if isinstance(outcome, NoPages):
        return jsonify({'message': outcome.message}), 200
    if isinstance(outcome, PrepareFailed):
        return jsonify({
            'error': outcome.message,
            'attempted': outcome.attempted,
            'skipped': outcome.skipped,
        }), 400

    return jsonify({
        'jobName': outcome.job_name,
        'jobId': outcome.job_id,
        'pagesSubmitted': outcome.pages_submitted,
        'skipped': outcome.skipped,
    }), 201


@job_bp.route('/batch', methods=['GET'])
def get_batches():
    """Poll one batch by jobName, or list the most recent batches for a book."""
    services = get_services()
    job_name = request.args.get('jobName')
    if job_name:
        return jsonify(services.reconciler.poll(job_name).to_dict())

    book_id = request.args.get('bookId')
    if not book_id:
        raise ValidationError("bookId or jobName is required")

    docs = services.library.batch_jobs.find(
        {'book_id': book_id}, sort=[('created_at', -1)], limit=RECENT_BATCHES
    )
    return jsonify({
        'batches': [BatchJob.model_validate(d).model_dump(mode='json') for d in docs]
    })


@job_bp.route('/batch/sync', methods=['POST'])
def sync_batches():
    report = get_services().sync.sync_all(request.args.get('bookId'))
    return jsonify(report.to_dict())


@job_bp.route('', methods=['GET'])
def list_jobs():
    services = get_services()
    try:
        limit = int(request.args.get('limit', 50))
    except ValueError:
        raise ValidationError("limit must be an integer")

    jobs = services.registry.find(
        book_id=request.args.get('bookId'),
        status=request.args.get('status'),
        limit=limit,
    )
    return jsonify({'jobs': [_job_json(j) for j in jobs]})


@job_bp.route('/<job_id>', methods=['GET'])
def get_job(job_id: str):
    return jsonify({'job': _job_json(get_services().registry.get(job_id))})


@job_bp.route('/<job_id>', methods=['PATCH'])
def patch_job(job_id: str):
    body = JobPatchRequest.model_validate(_body())
    registry = get_services().registry

    if body.action:
        job = registry.transition(job_id, body.action)
    else:
        job = registry.apply_progress(job_id, results=body.results, status=body.status, error=body.error)

    return jsonify({'job': _job_json(job)})


@job_bp.route('/<job_id>', methods=['DELETE'])
def delete_job(job_id: str):
    get_services().registry.delete(job_id)
    return jsonify({'deleted': job_id})


@job_bp.route('/<job_id>/submit', methods=['POST'])
def submit_job(job_id: str):
    services = get_services()
    outcome = services.submitter.submit_job(job_id)
    job = services.registry.get(job_id)

    if isinstance(outcome, PrepareFailed):
        return jsonify({'error': outcome.message, 'job': _job_json(job)}), 400
    if isinstance(outcome, NoPages):
        return jsonify({'message': outcome.message, 'job': _job_json(job)}), 200

    return jsonify({
        'jobName': outcome.job_name,
        'pagesSubmitted': outcome.pages_submitted,
        'job': _job_json(job),
    }), 201
