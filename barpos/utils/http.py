"""Request parsing helpers shared by the API blueprints."""
from flask import request

from barpos.exceptions import ValidationError
from barpos.utils.dates import parse_date, day_bounds


def json_payload() -> dict:
    """Request JSON body as a dict ({} when missing or malformed)."""
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def optional_int(value, field: str):
    """Parse an optional integer id ('' and None -> None)."""
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} inválido')


def date_range_args(args=None):
    """
    Read ?from=YYYY-MM-DD&to=YYYY-MM-DD into datetime bounds [start, end).
    """
    args = args if args is not None else request.args
    try:
        start = parse_date(args.get('from'), field='fecha inicial')
        end = parse_date(args.get('to'), field='fecha final')
    except ValueError as e:
        raise ValidationError(str(e))
    return day_bounds(start, end)
