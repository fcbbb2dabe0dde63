"""
Field coercion rules shared by the snapshot record schemas.

Source documents are loosely typed: numbers arrive as strings, dates in
several layouts, keys as ints or strings. These helpers turn them into the
stable shapes the relational target expects, never raising.
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional

MONEY_STEP = Decimal("0.01")
QUANTITY_STEP = Decimal("0.0001")
RATE_STEP = Decimal("0.0001")

# Exclusive magnitude bounds of the Money, Quantity and Rate column types
MONEY_LIMIT = Decimal(10) ** 12
QUANTITY_LIMIT = Decimal(10) ** 10
RATE_LIMIT = Decimal(10) ** 4

NO_PERIOD = "no-period"

_DATE_LAYOUTS = ("%d-%m-%Y", "%d/%m/%Y", "%Y/%m/%d")


def to_decimal(value: Any, step: Decimal, limit: Optional[Decimal] = None) -> Decimal:
    """
    Coerce to a quantized Decimal; missing or invalid values become zero.

    Values whose magnitude reaches ``limit`` do not fit the target column
    and are treated as invalid too.
    """
    zero = Decimal(0).quantize(step)
    if value is None or value == "" or isinstance(value, bool):
        return zero
    try:
        number = Decimal(str(value).strip())
        if not number.is_finite():
            return zero
        number = number.quantize(step, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return zero
    if limit is not None and abs(number) >= limit:
        return zero
    return number


def to_money(value: Any) -> Decimal:
    return to_decimal(value, MONEY_STEP, MONEY_LIMIT)


def to_quantity(value: Any) -> Decimal:
    return to_decimal(value, QUANTITY_STEP, QUANTITY_LIMIT)


def to_rate(value: Any) -> Decimal:
    return to_decimal(value, RATE_STEP, RATE_LIMIT)


def to_int(value: Any) -> Optional[int]:
    """Parse an integer (accepts "3", 3.0); anything else is None."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer():
        return None
    return int(number)


def to_text(value: Any) -> Optional[str]:
    """Strip text; empty strings become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def to_key(value: Any) -> Optional[str]:
    """Render an identifier as text. 7, 7.0 and "7" are the same key."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return to_text(value)


def to_email(value: Any) -> Optional[str]:
    text = to_text(value)
    return text.lower() if text else None


def to_mapping(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a free-form timestamp into naive UTC; None when unparsable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            parsed = None
            for layout in _DATE_LAYOUTS:
                try:
                    parsed = datetime.strptime(text, layout)
                    break
                except ValueError:
                    continue
            if parsed is None:
                return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_date(value: Any) -> Optional[date]:
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def period_key(value: Any) -> str:
    """Bucket a date into ``YYYY-MM``; unparsable dates go to ``no-period``."""
    parsed = parse_date(value)
    if parsed is None:
        return NO_PERIOD
    return f"{parsed.year:04d}-{parsed.month:02d}"
