"""Tables blueprint - table directory and order state."""
from flask import Blueprint, jsonify
from barpos.database import get_session
from barpos.services import table_service
from barpos.utils.http import json_payload

tables_bp = Blueprint('tables', __name__, url_prefix='/api/tables')


@tables_bp.route('', methods=['GET'])
def list_tables():
    """Tables with currentTotal / itemCount of their pending order."""
    return jsonify(table_service.list_tables(get_session()))


@tables_bp.route('/free', methods=['GET'])
def free_tables():
    return jsonify([t.to_dict() for t in table_service.list_free_tables(get_session())])


@tables_bp.route('', methods=['POST'])
def create():
    payload = json_payload()
    table_id = table_service.create_table(
        get_session(),
        payload.get('name'),
        payload.get('type'),
        payload.get('capacity')
    )
    return jsonify({'success': True, 'id': table_id}), 201


@tables_bp.route('/<int:table_id>', methods=['PUT'])
def update(table_id):
    payload = json_payload()
    changes = table_service.update_table(
        get_session(),
        table_id,
        payload.get('name'),
        payload.get('type'),
        payload.get('capacity')
    )
    return jsonify({'success': True, 'changes': changes})


@tables_bp.route('/<int:table_id>', methods=['DELETE'])
def delete(table_id):
    changes = table_service.delete_table(get_session(), table_id)
    return jsonify({'success': True, 'changes': changes})


@tables_bp.route('/<int:table_id>/order', methods=['GET'])
def order(table_id):
    """Items of the table's pending order."""
    return jsonify(table_service.get_table_order(get_session(), table_id))


@tables_bp.route('/<int:table_id>/clear', methods=['POST'])
def clear(table_id):
    """Free the table and discard its pending order."""
    table_service.clear_table(get_session(), table_id)
    return jsonify({'success': True, 'cleared': True})
