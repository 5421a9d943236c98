"""Schedules blueprint - employee shift calendar."""
from datetime import date
from flask import Blueprint, jsonify, request
from barpos.database import get_session
from barpos.exceptions import ValidationError
from barpos.services import schedule_service
from barpos.utils.http import json_payload

schedules_bp = Blueprint('schedules', __name__, url_prefix='/api/schedules')


@schedules_bp.route('', methods=['GET'])
def list_month():
    """Shifts of ?year&month (defaults to the current month)."""
    today = date.today()
    try:
        year = int(request.args.get('year', today.year))
        month = int(request.args.get('month', today.month))
    except ValueError:
        raise ValidationError('Año o mes inválido')
    rows = schedule_service.list_month(get_session(), year, month)
    return jsonify([row.to_dict() for row in rows])


@schedules_bp.route('/users', methods=['GET'])
def users():
    rows = schedule_service.users_for_schedule(get_session())
    return jsonify([{'id': u.id, 'username': u.username, 'full_name': u.full_name} for u in rows])


@schedules_bp.route('', methods=['POST'])
def create():
    payload = json_payload()
    schedule_id = schedule_service.create_schedule(
        get_session(),
        payload.get('userId', payload.get('user_id')),
        payload.get('workDate', payload.get('work_date')),
        payload.get('startTime', payload.get('start_time')),
        payload.get('endTime', payload.get('end_time'))
    )
    return jsonify({'success': True, 'id': schedule_id}), 201
