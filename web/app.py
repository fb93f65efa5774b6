"""
Scriptorium HTTP API

Flask application exposing the job engine and the book pipeline as JSON.
Routes raise ScriptoriumError freely; the handlers below turn them into
`{error, ...}` bodies with the error's status code.

Usage:
    python web/app.py
    python web/app.py --port 1337 --host 127.0.0.1
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pydantic
from flask import Flask, current_app, jsonify

from infra.config import get_storage_root
from infra.errors import ScriptoriumError
from web.config import Config


def get_services():
    return current_app.extensions['scriptorium']


def create_app(services=None):
    """Create and configure Flask app."""
    app = Flask(__name__)
    app.config.from_object(Config)
    app.json.sort_keys = False

    if services is None:
        from pipeline.services import build_services
        services = build_services(get_storage_root())
    app.extensions['scriptorium'] = services

    # Register route blueprints
    from web.routes.job_routes import job_bp
    from web.routes.pipeline_routes import pipeline_bp

    app.register_blueprint(job_bp)
    app.register_blueprint(pipeline_bp)

    @app.errorhandler(ScriptoriumError)
    def handle_scriptorium_error(error: ScriptoriumError):
        log = services.library.logger("web")
        if error.status_code >= 500:
            log.error(error.message, error=error.message)
        else:
            log.debug(error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(pydantic.ValidationError)
    def handle_request_validation(error: pydantic.ValidationError):
        details = [
            {'field': '.'.join(str(p) for p in e['loc']), 'message': e['msg']}
            for e in error.errors()
        ]
        return jsonify({'error': 'Invalid request body', 'details': details}), 400

    return app


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Scriptorium HTTP API")
    parser.add_argument("--port", type=int, default=Config.PORT)
    parser.add_argument("--host", default=Config.HOST)
    parser.add_argument("--debug", action="store_true", default=Config.DEBUG)
    args = parser.parse_args()

    app = create_app()

    print(f"\n🚀 Scriptorium API starting on http://{args.host}:{args.port}")
    print(f"📁 Library: {get_storage_root()}\n")

    app.run(host=args.host, port=args.port, debug=args.debug)
