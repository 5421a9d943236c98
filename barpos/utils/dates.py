"""Date helpers for request filters and reporting windows."""
from datetime import datetime, date, timedelta


def parse_date(value, field: str = 'fecha'):
    """
    Parse a 'YYYY-MM-DD' string to a date. Empty values return None.

    Raises:
        ValueError: if the value is not a valid date
    """
    if value is None or isinstance(value, date):
        return value
    value = str(value).strip()
    if not value:
        return None
    try:
        return datetime.strptime(value[:10], '%Y-%m-%d').date()
    except ValueError:
        raise ValueError(f'La {field} debe tener formato AAAA-MM-DD')


def day_bounds(start: date = None, end: date = None):
    """
    Turn an inclusive date range into datetime bounds [start_dt, end_dt).

    Either side may be None (open-ended).
    """
    start_dt = datetime.combine(start, datetime.min.time()) if start else None
    end_dt = datetime.combine(end + timedelta(days=1), datetime.min.time()) if end else None
    return start_dt, end_dt


def get_today_datetime_range():
    """Return (start, end) datetimes covering today in local time."""
    today = date.today()
    return day_bounds(today, today)
