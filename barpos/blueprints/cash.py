"""Cash blueprint - cash drawer sessions and shift summaries."""
from flask import Blueprint, jsonify, request, current_app
from barpos.database import get_session
from barpos.exceptions import ConflictError
from barpos.middleware import resolve_actor_id
from barpos.services import cash_session_service
from barpos.blueprints.metrics import cash_sessions_total
from barpos.utils.http import json_payload, optional_int, date_range_args

cash_bp = Blueprint('cash', __name__, url_prefix='/api/cash')


def _rejected(error):
    """Cash rule conflicts are an expected answer: 200 with {success: false, error}."""
    cash_sessions_total.labels(action='rejected').inc()
    current_app.logger.warning(f"Cash session rejected: {error.message}")
    return jsonify(error.to_dict())


@cash_bp.route('/open', methods=['POST'])
def open_cash():
    payload = json_payload()
    try:
        session_id = cash_session_service.open_session(
            get_session(),
            payload.get('opening_balance', payload.get('openingBalance')),
            user_id=resolve_actor_id(payload)
        )
    except ConflictError as e:
        return _rejected(e)

    cash_sessions_total.labels(action='open').inc()
    current_app.logger.info(f"Cash session {session_id} opened")
    return jsonify({'success': True, 'id': session_id})


@cash_bp.route('/close', methods=['POST'])
def close_cash():
    payload = json_payload()
    try:
        changes = cash_session_service.close_session(
            get_session(),
            payload.get('closing_balance', payload.get('closingBalance')),
            user_id=resolve_actor_id(payload)
        )
    except ConflictError as e:
        return _rejected(e)

    cash_sessions_total.labels(action='close').inc()
    return jsonify({'success': True, 'changes': changes})


@cash_bp.route('/summary', methods=['GET'])
def summary():
    """Suggested close of the open session (or ?session_id=)."""
    session_id = optional_int(request.args.get('session_id'), 'Sesión de caja')
    return jsonify(cash_session_service.suggested_close(get_session(), session_id))


@cash_bp.route('/turn-summary', methods=['GET'])
def turn_summary():
    session_id = optional_int(request.args.get('session_id'), 'Sesión de caja')
    return jsonify(cash_session_service.turn_summary(get_session(), session_id))


@cash_bp.route('/sessions', methods=['GET'])
def sessions():
    start_dt, end_dt = date_range_args()
    rows = cash_session_service.list_sessions(
        get_session(),
        start_dt=start_dt,
        end_dt=end_dt,
        status=request.args.get('status')
    )
    return jsonify([row.to_dict() for row in rows])
