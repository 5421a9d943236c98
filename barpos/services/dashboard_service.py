"""
Dashboard service.
Today's figures for the dashboard cards.
"""
import logging
from datetime import date

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from barpos.models import Sale, SaleStatus, DiningTable, TableStatus
from barpos.services import inventory_service
from barpos.utils.dates import day_bounds, get_today_datetime_range

logger = logging.getLogger(__name__)

EMPTY_SUMMARY = {
    'totalSales': 0,
    'activeTables': 0,
    'lowStockProducts': 0,
    'totalTransactions': 0,
}


def get_dashboard_summary(session, low_stock_threshold: int = 10, today: date = None) -> dict:
    """
    Get dashboard figures for today.

    Returns:
        dict with keys:
            - totalSales: sum of today's paid sales
            - activeTables: tables currently occupied
            - lowStockProducts: active products with stock below the threshold
            - totalTransactions: number of today's paid sales

    Storage failures degrade to zeros.
    """
    start_dt, end_dt = day_bounds(today, today) if today else get_today_datetime_range()

    try:
        sales_row = session.query(
            func.coalesce(func.sum(Sale.total), 0).label('total'),
            func.count(Sale.id).label('count')
        ).filter(
            Sale.status == SaleStatus.PAID,
            Sale.created_at >= start_dt,
            Sale.created_at < end_dt
        ).first()

        active_tables = session.query(func.count(DiningTable.id)).filter(
            DiningTable.status == TableStatus.OCCUPIED
        ).scalar() or 0

        low_stock = inventory_service.count_low_stock(session, low_stock_threshold)
    except SQLAlchemyError as e:
        logger.warning(f"Dashboard summary unavailable: {e}")
        session.rollback()
        return dict(EMPTY_SUMMARY)

    return {
        'totalSales': int(sales_row.total or 0) if sales_row else 0,
        'activeTables': int(active_tables),
        'lowStockProducts': int(low_stock),
        'totalTransactions': int(sales_row.count or 0) if sales_row else 0,
    }


def get_cached_dashboard_summary(session, low_stock_threshold: int = 10, ttl: int = 30) -> dict:
    """Dashboard summary through the Redis cache (falls through when Redis is down)."""
    from barpos.services.cache_service import get_cache

    cache_key = f"summary:{date.today().isoformat()}:{low_stock_threshold}"
    return get_cache().memoize(
        'dashboard',
        cache_key,
        lambda: get_dashboard_summary(session, low_stock_threshold),
        ttl=ttl
    )
