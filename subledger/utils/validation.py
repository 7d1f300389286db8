"""
Validation utilities for request payloads
"""
import re
from decimal import Decimal, InvalidOperation

_CURRENCY_RE = re.compile(r"[A-Z]{3}")


def normalize_decimal_input(value: str) -> str:
    """
    Нормализовать ввод суммы: заменить запятую на точку

    Example:
        >>> normalize_decimal_input("100,50")
        "100.50"
    """
    return value.replace(",", ".")


def validate_decimal_amount(value: str, max_decimal_places: int = 2) -> tuple[bool, str | None]:
    """
    Валидация денежной суммы

    Args:
        value: Строка с суммой
        max_decimal_places: Максимум знаков после запятой (по умолчанию 2)

    Returns:
        (is_valid, error_message)

    Example:
        >>> validate_decimal_amount("100.50")
        (True, None)
        >>> validate_decimal_amount("100.505")
        (False, "At most 2 decimal places allowed")
    """
    normalized = normalize_decimal_input(value.strip())

    try:
        Decimal(normalized)
    except (InvalidOperation, ValueError):
        return False, "Invalid amount"

    pattern = rf"^-?\d+(\.\d{{1,{max_decimal_places}}})?$"
    if not re.match(pattern, normalized):
        return False, f"At most {max_decimal_places} decimal places allowed"

    return True, None


def validate_and_normalize_amount(value, max_decimal_places: int = 2, positive: bool = False) -> str:
    """
    Валидировать и нормализовать сумму (raise exception при ошибке)

    Принимает строку или число из JSON; float переводится в строку через repr,
    дальше работаем только с Decimal.

    Args:
        value: Сумма (str / int / float из JSON)
        max_decimal_places: Максимум знаков после запятой
        positive: Требовать сумму > 0 (иначе >= 0)

    Returns:
        Нормализованная строка

    Raises:
        ValueError: если валидация не прошла
    """
    if isinstance(value, bool):
        raise ValueError("Invalid amount")
    if isinstance(value, (int, float)):
        value = repr(value)

    is_valid, error = validate_decimal_amount(value, max_decimal_places)
    if not is_valid:
        raise ValueError(error)

    normalized = normalize_decimal_input(value.strip())
    amount = Decimal(normalized)
    if positive and amount <= 0:
        raise ValueError("Amount must be greater than zero")
    if not positive and amount < 0:
        raise ValueError("Amount must not be negative")

    return normalized


def validate_currency(value: str) -> str:
    """Currency code: strictly 3 upper-case latin letters (CNY, USD, EUR)."""
    if not _CURRENCY_RE.fullmatch(value):
        raise ValueError(
            f"Invalid currency code «{value}». Use 3 upper-case letters (e.g. CNY, USD, EUR)"
        )
    return value
