"""Reports blueprint - balance series from the ledger."""
from flask import Blueprint, jsonify, request, current_app
from barpos.database import get_session
from barpos.exceptions import ValidationError
from barpos.services.balance_service import get_balance_series, get_totals
from barpos.utils.dates import parse_date

reports_bp = Blueprint('reports', __name__, url_prefix='/api/reports')


@reports_bp.route('/balance', methods=['GET'])
def balance():
    """
    Income / expense / net per period.

    Query params: view (daily|monthly|yearly), start, end (YYYY-MM-DD),
    method (all|cash|transfer).
    """
    view = request.args.get('view', 'monthly')
    method = request.args.get('method', 'all')
    try:
        start = parse_date(request.args.get('start'), field='fecha inicial')
        end = parse_date(request.args.get('end'), field='fecha final')
    except ValueError as e:
        raise ValidationError(str(e))

    series = get_balance_series(
        get_session(),
        view,
        start,
        end,
        method=method,
        ttl=current_app.config.get('CACHE_BALANCE_TTL', 60)
    )
    return jsonify({'view': view, 'method': method, 'series': series, 'totals': get_totals(series)})
