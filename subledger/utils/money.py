"""
Money helpers: fixed-point Decimal amounts for the whole project.

Usage:
    from subledger.utils.money import to_money, money_str

    to_money("15,5")          -> Decimal("15.50")
    money_str(Decimal("10"))  -> "10.00"
    format_money(1200, "USD") -> "1 200.00 USD"
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from subledger.utils.validation import normalize_decimal_input

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """
    Привести сумму к Decimal с 2 знаками после запятой.

    Args:
        value: Decimal / int / str ("100", "100.5", "100,50")

    Returns:
        Decimal, quantized to cents (ROUND_HALF_UP)

    Raises:
        TypeError: для float (двоичная плавающая точка не допускается)
        ValueError: если строка не является числом
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Money must not be built from {type(value).__name__}")
    if isinstance(value, str):
        try:
            value = Decimal(normalize_decimal_input(value.strip()))
        except InvalidOperation:
            raise ValueError(f"Некорректная сумма: {value!r}")
    elif isinstance(value, int):
        value = Decimal(value)
    elif not isinstance(value, Decimal):
        raise TypeError(f"Unsupported money value: {type(value).__name__}")
    if not value.is_finite():
        raise ValueError("Сумма должна быть конечным числом")
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(value) -> str:
    """Decimal string for the API boundary, always 2 places: "10.00"."""
    return str(to_money(value))


def sum_money(values) -> Decimal:
    """Exact Decimal sum, starting from 0.00."""
    return sum((to_money(v) for v in values), ZERO)


def percentage(part: Decimal, total: Decimal, places: int = 2) -> Decimal:
    """part / total * 100, rounded half-up to `places`; 0 when total is 0."""
    quantum = Decimal(1).scaleb(-places)
    if total == 0:
        return Decimal(0).quantize(quantum)
    return (part * 100 / total).quantize(quantum, rounding=ROUND_HALF_UP)


def format_money(amount, currency: str = "CNY") -> str:
    """
    Отформатировать сумму с пробелами-разделителями тысяч и кодом валюты.

    Returns:
        "15 000.00 CNY"
    """
    formatted = "{:,.2f}".format(to_money(amount)).replace(",", " ")
    return f"{formatted} {currency}"
