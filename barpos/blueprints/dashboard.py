"""Dashboard blueprint."""
from flask import Blueprint, jsonify, current_app
from barpos.database import get_session
from barpos.services.dashboard_service import get_cached_dashboard_summary

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/api/dashboard')


@dashboard_bp.route('/summary', methods=['GET'])
def summary():
    """Today's sales, occupied tables, low stock count and sale count."""
    data = get_cached_dashboard_summary(
        get_session(),
        low_stock_threshold=current_app.config.get('LOW_STOCK_THRESHOLD', 10),
        ttl=current_app.config.get('CACHE_DASHBOARD_TTL', 30)
    )
    return jsonify(data)
