"""Balance service - Financial reporting from the ledger."""
from datetime import date, timedelta
import logging

from sqlalchemy.exc import SQLAlchemyError

from barpos.exceptions import ValidationError
from barpos.models import LedgerTransaction, TransactionType
from barpos.utils.dates import day_bounds

logger = logging.getLogger(__name__)

VIEWS = ('daily', 'monthly', 'yearly')
METHODS = ('all', 'cash', 'transfer')


def _build_balance_cache_key(view: str, start: date, end: date, method: str) -> str:
    return f"series:{view}:{start.isoformat()}:{end.isoformat()}:{method}"


def _period_of(moment, view: str) -> date:
    if view == 'daily':
        return moment.date()
    if view == 'monthly':
        return date(moment.year, moment.month, 1)
    return date(moment.year, 1, 1)


def _period_label(period: date, view: str) -> str:
    if view == 'daily':
        return period.strftime('%Y-%m-%d')
    if view == 'monthly':
        return period.strftime('%Y-%m')
    return period.strftime('%Y')


def get_default_date_range(view: str):
    """
    Default window per view: last 30 days, last 12 months or last 5 years.
    """
    today = date.today()
    if view == 'daily':
        return today - timedelta(days=30), today
    if view == 'monthly':
        return today - timedelta(days=365), today
    return today.replace(year=today.year - 5), today


def compute_balance_series(session, view: str, start: date, end: date, method: str = 'all') -> list:
    """
    Income, expense and net per period between start and end (inclusive).

    Grouping is done in Python so the same code runs on PostgreSQL and
    SQLite.

    Returns:
        list of {period, period_label, income, expense, net}, oldest first
    """
    start_dt, end_dt = day_bounds(start, end)
    query = (
        session.query(LedgerTransaction.created_at, LedgerTransaction.type, LedgerTransaction.amount)
        .filter(LedgerTransaction.created_at >= start_dt)
        .filter(LedgerTransaction.created_at < end_dt)
    )
    if method in ('cash', 'transfer'):
        query = query.filter(LedgerTransaction.payment_method == method)

    buckets = {}
    for created_at, type_, amount in query.all():
        period = _period_of(created_at, view)
        bucket = buckets.setdefault(period, {'income': 0, 'expense': 0})
        if type_ == TransactionType.INCOME:
            bucket['income'] += int(amount)
        else:
            bucket['expense'] += int(amount)

    series = []
    for period in sorted(buckets):
        income = buckets[period]['income']
        expense = buckets[period]['expense']
        series.append({
            'period': period.isoformat(),
            'period_label': _period_label(period, view),
            'income': income,
            'expense': expense,
            'net': income - expense,
        })
    return series


def get_balance_series(session, view: str, start: date = None, end: date = None,
                       method: str = 'all', ttl: int = 60) -> list:
    """
    Balance series through the Redis cache.

    Raises:
        ValidationError: unknown view/method or start after end
    """
    if view not in VIEWS:
        raise ValidationError('Vista inválida. Use daily, monthly o yearly.')
    if method not in METHODS:
        raise ValidationError('Método inválido. Use all, cash o transfer.')
    default_start, default_end = get_default_date_range(view)
    start = start or default_start
    end = end or default_end
    if start > end:
        raise ValidationError('La fecha inicial no puede ser posterior a la final')

    from barpos.services.cache_service import get_cache

    cache = get_cache()
    cache_key = _build_balance_cache_key(view, start, end, method)
    cached = cache.get('balance', cache_key)
    if cached is not None:
        logger.debug(f"[CACHE] Balance HIT: key={cache_key}")
        return cached

    try:
        series = compute_balance_series(session, view, start, end, method)
    except SQLAlchemyError as e:
        logger.warning(f"Balance series unavailable: {e}")
        session.rollback()
        return []

    cache.set('balance', cache_key, series, ttl=ttl)
    return series


def get_totals(series) -> dict:
    total_income = sum(item['income'] for item in series)
    total_expense = sum(item['expense'] for item in series)
    return {
        'total_income': total_income,
        'total_expense': total_expense,
        'total_net': total_income - total_expense,
    }
