"""Chore API routes.

- GET  /api/chores            list recent instances with display status
- POST /api/chores/complete   mark one instance completed
"""

import logging
from flask import Blueprint, current_app, jsonify, request

from services.chore_service import (
    BadRequestError,
    ChoreService,
    CompletionOutcome,
    ListChoresResult,
)

chores_bp = Blueprint('chores', __name__, url_prefix='/api/chores')
logger = logging.getLogger(__name__)


def _chore_settings():
    return current_app.config['CHORE_SETTINGS']


def _request_params() -> dict:
    """Accept form-encoded or JSON bodies."""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def _parse_int(value) -> int:
    """Parse a JSON integer or a base-10 integer string.

    Raises:
        ValueError: value is a bool, float or non-numeric string
    """
    if isinstance(value, bool):
        raise ValueError(f"not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip('-').isdigit():
            return int(text)
    raise ValueError(f"not an integer: {value!r}")


@chores_bp.route('', methods=['GET'])
def list_chores():
    """List chore instances due since ``lookback_days`` ago.

    Query params:
        lookback_days: whole days to look back (default 0)
    """
    try:
        lookback_days = _parse_int(request.args.get('lookback_days', 0))
    except ValueError:
        result = ListChoresResult(success=False, error='lookback_days must be an integer')
        return jsonify(result.to_dict()), 400

    try:
        result = ChoreService.list_chores(_chore_settings(), lookback_days=lookback_days)
    except BadRequestError as e:
        return jsonify(ListChoresResult(success=False, error=e.message).to_dict()), e.status_code

    return jsonify(result.to_dict()), 200 if result.success else 500


@chores_bp.route('/complete', methods=['POST'])
def complete_chore():
    """Mark the instance identified by title and expected_completion_time completed."""
    params = _request_params()

    title = params.get('title')
    if not title or not isinstance(title, str):
        return jsonify({'success': False, 'error': 'title is required', 'result': None}), 400

    try:
        expected_completion_time = _parse_int(params.get('expected_completion_time'))
    except ValueError:
        return jsonify({
            'success': False,
            'error': 'expected_completion_time must be an integer',
            'result': None
        }), 400

    result = ChoreService.complete_chore(title, expected_completion_time)

    if result.outcome == CompletionOutcome.NOT_FOUND:
        return jsonify(result.to_dict()), 404
    if not result.success:
        return jsonify(result.to_dict()), 500
    return jsonify(result.to_dict()), 200
