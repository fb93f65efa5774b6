"""
Web route blueprints.

Organized by namespace, mirroring CLI structure:
- job_routes: batch submission/polling and the job state machine
- pipeline_routes: per-book pipeline lifecycle and step execution
"""
