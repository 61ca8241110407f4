"""
Lead routes — synchronous generation, background jobs and job lookup.

Every response carries CORS headers. Pipeline errors are translated into
JSON bodies here; nothing below the blueprint knows about HTTP.
"""
import logging

from flask import Blueprint, current_app, jsonify, request

from leadgen.config import CORS_ALLOW_ORIGIN
from leadgen.errors import (
    ConfigurationError, FatalUpstreamError, PipelineTimeoutError, RequestValidationError,
    RetryExhaustedError,
)
from leadgen.models.job import LeadJob
from leadgen.models.lead import RequestContext
from leadgen.pipeline.orchestrator import launch_job

logger = logging.getLogger(__name__)

bp = Blueprint('leads', __name__)

# Accept every verb so unsupported ones get the JSON 405 below
_ALL_METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']

TIMEOUT_MESSAGE = (
    "The lead generation request timed out while waiting on upstream services. "
    "Retry, or submit larger batches to /api/generate-leads/background."
)
GENERIC_MESSAGE = "Failed to generate leads due to an internal server error."
UPSTREAM_REJECTED_MESSAGE = (
    "Configuration Error: an upstream provider rejected the request. "
    "Check SEARCH_API_KEY, DIR_INFO_CSE_ID and the qualifier credentials."
)


@bp.after_request
def add_cors_headers(response):
    response.headers['Access-Control-Allow-Origin'] = CORS_ALLOW_ORIGIN
    if request.endpoint == 'leads.get_job':
        response.headers['Access-Control-Allow-Methods'] = 'GET, OPTIONS'
    else:
        response.headers['Access-Control-Allow-Methods'] = 'POST, OPTIONS'
    response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
    return response


# ── Helpers ──────────────────────────────────────────────────────────────────

def _preflight_or_405():
    """OPTIONS → empty 200; anything but POST → 405. None means proceed."""
    if request.method == 'OPTIONS':
        return '', 200
    if request.method != 'POST':
        return jsonify({'error': 'Method Not Allowed'}), 405
    return None


def _read_payload():
    """(payload, error_response). A missing body counts as an empty object."""
    if not request.get_data():
        return {}, None
    # Parsed whatever the Content-Type, text/plain included
    payload = request.get_json(force=True, silent=True)
    if not isinstance(payload, dict):
        return None, (jsonify({'error': 'Bad Request: request body must be a JSON object.'}), 400)
    return payload, None


def _error_response(e: Exception):
    if isinstance(e, RequestValidationError):
        return jsonify({'error': str(e), 'missingFields': e.missing_fields}), 400
    if isinstance(e, ConfigurationError):
        message = str(e)
    elif isinstance(e, FatalUpstreamError):
        message = UPSTREAM_REJECTED_MESSAGE
    elif isinstance(e, (RetryExhaustedError, PipelineTimeoutError)):
        message = TIMEOUT_MESSAGE
    else:
        message = GENERIC_MESSAGE
    logger.error("Lead generation failed: %s", e, exc_info=not isinstance(e, ConfigurationError))
    return jsonify({'error': message, 'details': str(e)}), 500


# ── Routes ───────────────────────────────────────────────────────────────────

@bp.route('/api/generate-leads', methods=_ALL_METHODS)
def generate_leads():
    """Run the pipeline inline and return the top-ranked leads."""
    early = _preflight_or_405()
    if early is not None:
        return early

    payload, error = _read_payload()
    if error is not None:
        return error

    orchestrator = current_app.extensions['lead_orchestrator']
    try:
        result = orchestrator.run_sync(RequestContext.from_payload(payload))
    except Exception as e:
        return _error_response(e)
    return jsonify(result.to_dict()), 200


@bp.route('/api/generate-leads/background', methods=_ALL_METHODS)
def generate_leads_background():
    """Queue a larger batch on the background worker."""
    early = _preflight_or_405()
    if early is not None:
        return early

    payload, error = _read_payload()
    if error is not None:
        return error

    try:
        job = launch_job(payload, orchestrator=current_app.extensions['lead_orchestrator'])
    except Exception as e:
        return _error_response(e)
    return jsonify({
        'jobId': job.id,
        'status': job.status,
        'statusUrl': f'/api/generate-leads/jobs/{job.id}',
    }), 202


@bp.route('/api/generate-leads/jobs/<job_id>', methods=['GET', 'OPTIONS'])
def get_job(job_id):
    """Status of a background job, with its leads once completed."""
    if request.method == 'OPTIONS':
        return '', 200
    job = LeadJob.load(job_id)
    if not job:
        return jsonify({'error': 'Job not found'}), 404
    return jsonify(job.to_dict()), 200
