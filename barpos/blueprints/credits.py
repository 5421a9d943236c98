"""Credits blueprint - accounts receivable / payable."""
from flask import Blueprint, jsonify, request
from barpos.database import get_session
from barpos.middleware import resolve_actor_id
from barpos.services import credit_service
from barpos.utils.http import json_payload

credits_bp = Blueprint('credits', __name__, url_prefix='/api/credits')


@credits_bp.route('', methods=['GET'])
def list_credits():
    credits = credit_service.list_credits(
        get_session(),
        type_=request.args.get('type'),
        status=request.args.get('status')
    )
    return jsonify([c.to_dict() for c in credits])


@credits_bp.route('', methods=['POST'])
def create():
    payload = json_payload()
    credit_id = credit_service.create_credit(
        get_session(),
        payload.get('type'),
        payload.get('description'),
        payload.get('party'),
        payload.get('total'),
        due_date=payload.get('due_date', payload.get('dueDate')),
        user_id=resolve_actor_id(payload)
    )
    return jsonify({'success': True, 'id': credit_id}), 201


@credits_bp.route('/<int:credit_id>', methods=['GET'])
def detail(credit_id):
    return jsonify(credit_service.get_credit(get_session(), credit_id).to_dict())


@credits_bp.route('/<int:credit_id>/payments', methods=['POST'])
def add_payment(credit_id):
    payload = json_payload()
    payment_id = credit_service.add_payment(
        get_session(),
        credit_id,
        payload.get('amount'),
        payment_method=payload.get('payment_method', payload.get('paymentMethod')),
        user_id=resolve_actor_id(payload)
    )
    return jsonify({'success': True, 'id': payment_id}), 201


@credits_bp.route('/<int:credit_id>/status', methods=['PUT'])
def set_status(credit_id):
    payload = json_payload()
    result = credit_service.set_status(
        get_session(),
        credit_id,
        payload.get('status'),
        user_id=resolve_actor_id(payload)
    )
    response = {'success': True, 'changes': result['changes']}
    if result['transaction_id']:
        response['transactionId'] = result['transaction_id']
    return jsonify(response)
