"""Products blueprint - catalog CRUD."""
from flask import Blueprint, jsonify, request
from barpos.database import get_session
from barpos.services import inventory_service
from barpos.utils.http import json_payload

products_bp = Blueprint('products', __name__, url_prefix='/api/products')


@products_bp.route('', methods=['GET'])
def list_products():
    """Active products. ?forSale=true keeps only products with stock."""
    for_sale = request.args.get('forSale', '').lower() == 'true'
    products = inventory_service.list_products(get_session(), for_sale=for_sale)
    return jsonify([p.to_dict() for p in products])


@products_bp.route('', methods=['POST'])
def create():
    payload = json_payload()
    product_id = inventory_service.create_product(
        get_session(),
        payload.get('name'),
        payload.get('price'),
        payload.get('stock'),
        payload.get('category')
    )
    return jsonify({'success': True, 'id': product_id}), 201


@products_bp.route('/<int:product_id>', methods=['PUT'])
def update(product_id):
    payload = json_payload()
    changes = inventory_service.update_product(
        get_session(),
        product_id,
        payload.get('name'),
        payload.get('price'),
        payload.get('stock'),
        payload.get('category')
    )
    return jsonify({'success': True, 'changes': changes})


@products_bp.route('/<int:product_id>', methods=['DELETE'])
def delete(product_id):
    result = inventory_service.delete_product(get_session(), product_id)
    return jsonify({'success': True, 'changes': result['changes'], 'softDeleted': result['soft_deleted']})
