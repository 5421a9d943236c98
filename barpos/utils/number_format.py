"""Number parsing utilities for whole-unit amounts (COP has no cents)."""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

# "16000", "16.000", "16,000", "$ 16.000"
GROUPED_AMOUNT_PATTERN = re.compile(r"^\$?\s*(?:\d{1,3}(?:[.,]\d{3})+|\d+)$")


def parse_amount(value, field: str = 'monto', allow_zero: bool = True) -> int:
    """
    Parse a monetary amount to an integer number of currency units.

    Accepts ints, floats (rounded half up) and strings, including strings with
    thousands separators ("16.000"). Booleans are rejected.

    Raises:
        ValueError: if the value is missing, not a number or negative
            (or zero when allow_zero is False).
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f'El {field} es requerido')

    if isinstance(value, int):
        amount = value
    elif isinstance(value, float):
        amount = int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
    else:
        cleaned = str(value).strip()
        if not cleaned:
            raise ValueError(f'El {field} es requerido')
        if GROUPED_AMOUNT_PATTERN.match(cleaned):
            cleaned = re.sub(r"[^\d]", "", cleaned)
        try:
            amount = int(Decimal(cleaned).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
        except (InvalidOperation, ValueError):
            raise ValueError(f'El {field} es inválido')

    if amount < 0:
        raise ValueError(f'El {field} no puede ser negativo')
    if not allow_zero and amount == 0:
        raise ValueError(f'El {field} debe ser mayor a 0')
    return amount


def parse_quantity(value) -> int:
    """
    Parse an item quantity to int. Non-numeric input raises ValueError.

    Sign is not checked here: callers decide whether non-positive
    quantities are dropped or rejected.
    """
    if value is None or isinstance(value, bool):
        raise ValueError('La cantidad es requerida')
    try:
        quantity = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError('La cantidad es inválida')
    if quantity != quantity.to_integral_value():
        raise ValueError('La cantidad debe ser un número entero')
    return int(quantity)


def money_co(value) -> str:
    """Format an amount the Colombian way: 16000 -> '$16.000'."""
    if value is None:
        return '$0'
    sign = '-' if value < 0 else ''
    return f"{sign}${abs(int(value)):,}".replace(',', '.')
