"""Sales blueprint - POS checkout and table orders."""
from flask import Blueprint, jsonify, request, current_app
from barpos.database import get_session
from barpos.exceptions import PosError
from barpos.middleware import resolve_actor_id
from barpos.services import sales_service
from barpos.blueprints.metrics import sales_processed_total
from barpos.utils.http import json_payload, optional_int, date_range_args

sales_bp = Blueprint('sales', __name__, url_prefix='/api/sales')


def _table_id(payload):
    return optional_int(payload.get('tableId', payload.get('table_id')), 'Mesa')


@sales_bp.route('/process', methods=['POST'])
def process():
    """Charge a sale (direct or for a table)."""
    payload = json_payload()
    db_session = get_session()

    try:
        result = sales_service.process_sale(
            db_session,
            items=payload.get('items'),
            table_id=_table_id(payload),
            payment_method=payload.get('payment_method', payload.get('paymentMethod')),
            total=payload.get('total'),
            idempotency_key=payload.get('idempotency_key', payload.get('idempotencyKey')),
            user_id=resolve_actor_id(payload)
        )
    except PosError:
        sales_processed_total.labels(outcome='failed').inc()
        raise

    if result.get('duplicate'):
        sales_processed_total.labels(outcome='duplicate').inc()
        return jsonify({'success': True, 'duplicate': True, 'saleId': result['sale_id']})
    if result.get('cleared'):
        sales_processed_total.labels(outcome='cleared').inc()
        return jsonify({'success': True, 'cleared': True})

    sales_processed_total.labels(outcome='processed').inc()
    current_app.logger.info(f"Sale {result['sale_id']} charged")
    return jsonify({'success': True, 'saleId': result['sale_id']})


@sales_bp.route('/save', methods=['POST'])
def save():
    """Save the pending order of a table."""
    payload = json_payload()
    db_session = get_session()

    try:
        result = sales_service.save_order(
            db_session,
            items=payload.get('items'),
            table_id=_table_id(payload),
            payment_method=payload.get('payment_method', payload.get('paymentMethod')),
            user_id=resolve_actor_id(payload)
        )
    except PosError:
        sales_processed_total.labels(outcome='failed').inc()
        raise

    if result.get('cleared'):
        sales_processed_total.labels(outcome='cleared').inc()
        return jsonify({'success': True, 'cleared': True})

    sales_processed_total.labels(outcome='saved').inc()
    return jsonify({'success': True, 'saleId': result['sale_id']})


@sales_bp.route('', methods=['GET'])
def list_sales():
    start_dt, end_dt = date_range_args()
    sales = sales_service.list_sales(
        get_session(),
        status=request.args.get('status'),
        start_dt=start_dt,
        end_dt=end_dt
    )
    return jsonify([sale.to_dict() for sale in sales])


@sales_bp.route('/<int:sale_id>', methods=['GET'])
def detail(sale_id):
    sale = sales_service.get_sale(get_session(), sale_id)
    return jsonify(sale.to_dict(include_items=True))
