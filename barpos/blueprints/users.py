"""Users blueprint - login and employee management."""
from flask import Blueprint, jsonify, request, session, current_app
from barpos.database import get_session
from barpos.middleware import require_login, require_role
from barpos.services import user_service
from barpos.utils.http import json_payload, optional_int

users_bp = Blueprint('users', __name__, url_prefix='/api')

ADMIN_ROLES = ('admin', 'super_admin')


@users_bp.route('/login', methods=['POST'])
def login():
    payload = json_payload()
    user = user_service.authenticate(get_session(), payload.get('username'), payload.get('password'))
    if user is None:
        return jsonify({'success': False, 'error': 'Usuario o contraseña incorrectos'}), 401

    session.clear()
    session['user_id'] = user.id
    session.permanent = True
    current_app.logger.info(f"Session started for user {user.id}")
    return jsonify({'success': True, 'user': user.to_dict()})


@users_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'success': True})


@users_bp.route('/users', methods=['GET'])
@require_login
def list_users():
    return jsonify([u.to_dict() for u in user_service.list_users(get_session())])


@users_bp.route('/users/check-username', methods=['GET'])
@require_login
def check_username():
    exclude_id = optional_int(request.args.get('exclude_id'), 'Usuario')
    available = user_service.username_available(get_session(), request.args.get('username'), exclude_id)
    return jsonify({'available': available})


@users_bp.route('/users', methods=['POST'])
@require_login
@require_role(*ADMIN_ROLES)
def create():
    payload = json_payload()
    user_id = user_service.create_user(
        get_session(),
        payload.get('username'),
        payload.get('password'),
        role=payload.get('role'),
        full_name=payload.get('full_name'),
        email=payload.get('email'),
        phone=payload.get('phone')
    )
    return jsonify({'success': True, 'id': user_id}), 201


@users_bp.route('/users/<int:user_id>', methods=['PUT'])
@require_login
@require_role(*ADMIN_ROLES)
def update(user_id):
    payload = json_payload()
    changes = user_service.update_user(
        get_session(),
        user_id,
        username=payload.get('username'),
        role=payload.get('role'),
        full_name=payload.get('full_name'),
        email=payload.get('email'),
        phone=payload.get('phone')
    )
    return jsonify({'success': True, 'changes': changes})


@users_bp.route('/users/<int:user_id>/reset-password', methods=['POST'])
@require_login
@require_role(*ADMIN_ROLES)
def reset_password(user_id):
    payload = json_payload()
    changes = user_service.reset_password(get_session(), user_id, payload.get('password'))
    return jsonify({'success': True, 'changes': changes})


@users_bp.route('/users/<int:user_id>', methods=['DELETE'])
@require_login
@require_role(*ADMIN_ROLES)
def delete(user_id):
    changes = user_service.delete_user(get_session(), user_id)
    return jsonify({'success': True, 'changes': changes})


@users_bp.route('/users/<int:user_id>/toggle-status', methods=['POST'])
@require_login
@require_role(*ADMIN_ROLES)
def toggle_status(user_id):
    is_active = user_service.toggle_status(get_session(), user_id)
    return jsonify({'success': True, 'is_active': is_active})
