"""
core/validation.py — Input Typing & Validation
================================================
The ledger receives user-entered values as-is (strings from forms, numbers
from JSON). These helpers type them or raise ValidationError naming the field.
"""

import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from core.errors import ValidationError


def require_text(value, field: str) -> str:
    """Non-blank string, stripped."""
    if value is None or not str(value).strip():
        raise ValidationError(f"'{field}' is required.", {"field": field})
    return str(value).strip()


def optional_text(value) -> Optional[str]:
    """Blank strings become None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def positive_number(value, field: str) -> float:
    """A finite number > 0. Accepts numeric strings like "500" or "12.5"."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"'{field}' is required.", {"field": field})
    if isinstance(value, bool):
        raise ValidationError(f"'{field}' must be a number.", {"field": field, "value": value})
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"'{field}' must be a number.", {"field": field, "value": str(value)}) from None
    if not math.isfinite(number) or number <= 0:
        raise ValidationError(f"'{field}' must be a positive number.", {"field": field, "value": str(value)})
    return number


def non_negative_amount(value, field: str) -> Optional[Decimal]:
    """Optional money amount >= 0, rounded to cents."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"'{field}' must be a number.", {"field": field, "value": value})
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"'{field}' must be a number.", {"field": field, "value": str(value)}) from None
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"'{field}' must be zero or more.", {"field": field, "value": str(value)})
    return amount.quantize(Decimal("0.01"))


def calendar_date(value: Union[date, str, None], field: str) -> Optional[date]:
    """A date, or an ISO "YYYY-MM-DD" string. None passes through."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(
            f"'{field}' must be a date in YYYY-MM-DD format.", {"field": field, "value": str(value)}
        ) from None
