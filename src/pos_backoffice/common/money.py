from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from ..core.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any, field_name: str = "Amount") -> Decimal:
    """Coerce form/JSON/DB input to Decimal; blank means zero, NaN and infinity are rejected."""
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    else:
        v = str(value).strip().replace(",", "")
        if v.startswith("$"):
            v = v[1:]
        if not v:
            return ZERO
        try:
            result = Decimal(v)
        except InvalidOperation:
            raise ValidationError(f"{field_name} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{field_name} must be a number")
    return result


def optional_decimal(value: Any, field_name: str = "Amount") -> Optional[Decimal]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_decimal(value, field_name)


def quantize(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(value: Decimal) -> str:
    q = quantize(value)
    sign = "-" if q < 0 else ""
    return f"{sign}${abs(q):,.2f}"


def as_float(value: Optional[Decimal]) -> float:
    """JSON-friendly number for API payloads."""
    if value is None:
        return 0.0
    return float(quantize(value))
