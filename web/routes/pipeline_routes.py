"""
Pipeline routes blueprint.

Per-book pipeline state, lifecycle actions and step execution.
"""

from flask import Blueprint, jsonify, request

from infra.errors import ValidationError
from web.app import get_services
from web.schemas import PipelineActionRequest, StepRequest

pipeline_bp = Blueprint('pipeline', __name__, url_prefix='/pipeline')


def _body():
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError("Request body must be JSON")
    return data


@pipeline_bp.route('/<book_id>', methods=['GET'])
def get_pipeline(book_id: str):
    state = get_services().orchestrator.get_state(book_id)
    return jsonify({'bookId': book_id, 'pipeline': state.to_dict()})


@pipeline_bp.route('/<book_id>', methods=['POST'])
def pipeline_action(book_id: str):
    body = PipelineActionRequest.model_validate(_body())
    state = get_services().orchestrator.apply_action(book_id, body.action, body.config)
    return jsonify({'bookId': book_id, 'pipeline': state.to_dict()})


@pipeline_bp.route('/<book_id>/step', methods=['POST'])
def execute_step(book_id: str):
    body = StepRequest.model_validate(_body())
    run = get_services().orchestrator.execute_step(book_id, body.step)
    return jsonify(run.to_dict())


@pipeline_bp.route('/<book_id>/run', methods=['POST'])
def run_pipeline(book_id: str):
    orchestrator = get_services().orchestrator
    runs = orchestrator.run(book_id)
    return jsonify({
        'runs': [r.to_dict() for r in runs],
        'pipeline': orchestrator.get_state(book_id).to_dict(),
    })
