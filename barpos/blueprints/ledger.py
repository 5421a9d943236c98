"""Ledger blueprint - income/expense movements."""
from flask import Blueprint, jsonify, request, g
from barpos.database import get_session
from barpos.middleware import require_login, require_role, resolve_actor_id
from barpos.models import TransactionType
from barpos.services import ledger_service
from barpos.utils.http import json_payload, date_range_args

ledger_bp = Blueprint('ledger', __name__, url_prefix='/api/transactions')


@ledger_bp.route('', methods=['GET'])
def list_entries():
    """Movements filtered by ?from&to&type&payment."""
    start_dt, end_dt = date_range_args()
    entries = ledger_service.list_entries(
        get_session(),
        start_dt=start_dt,
        end_dt=end_dt,
        type_=request.args.get('type') or None,
        payment_method=request.args.get('payment') or None
    )
    return jsonify([e.to_dict() for e in entries])


def _record(type_):
    payload = json_payload()
    entry_id = ledger_service.record_manual_entry(
        get_session(),
        type_,
        payload.get('amount'),
        payload.get('description'),
        payment_method=payload.get('payment_method', payload.get('paymentMethod')),
        user_id=resolve_actor_id(payload)
    )
    return jsonify({'success': True, 'id': entry_id}), 201


@ledger_bp.route('/income', methods=['POST'])
def income():
    return _record(TransactionType.INCOME)


@ledger_bp.route('/expense', methods=['POST'])
def expense():
    return _record(TransactionType.EXPENSE)


@ledger_bp.route('/<int:entry_id>', methods=['PUT'])
@require_login
@require_role('super_admin')
def update(entry_id):
    payload = json_payload()
    changes = ledger_service.update_entry(
        get_session(),
        entry_id,
        g.user,
        amount=payload.get('amount'),
        description=payload.get('description'),
        payment_method=payload.get('payment_method'),
        type_=payload.get('type')
    )
    return jsonify({'success': True, 'changes': changes})


@ledger_bp.route('/<int:entry_id>', methods=['DELETE'])
@require_login
@require_role('super_admin')
def delete(entry_id):
    changes = ledger_service.delete_entry(get_session(), entry_id, g.user)
    return jsonify({'success': True, 'changes': changes})
