"""Pure helpers shared by the receipt code: tolerant lookups, money, and en-IN dates."""

from __future__ import annotations

import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Final

D0: Final = Decimal("0")
D2: Final = Decimal("2")
CENT: Final = Decimal("0.01")

RUPEE: Final = "₹"


def dig(obj: Any, *path: str | int) -> Any:
    """Walk nested dicts/lists, returning None as soon as a step is missing.

    e.g. dig(order, "pricing", "total") or dig(item, "variants", 0, "option")
    """
    for step in path:
        if isinstance(obj, dict):
            obj = obj.get(step)  # type: ignore[arg-type]
        elif isinstance(obj, list) and isinstance(step, int) and -len(obj) <= step < len(obj):
            obj = obj[step]
        else:
            return None

    return obj


def firstPresent(*values: Any, default: Any = None) -> Any:
    """Return the first value that is neither None nor an empty string."""
    for value in values:
        if value is None or value == "":
            continue

        return value

    return default


def firstNonZero(*values: Any, default: Any = None) -> Any:
    """Return the first truthy value, so a 0 amount falls through to the next field."""
    for value in values:
        if value:
            return value

    return default


def toDecimal(value: Any, default: Decimal = D0) -> Decimal:
    """Coerce backend numbers (int, float, numeric strings) to Decimal."""
    if value is None or isinstance(value, bool):
        return default

    try:
        # str() first so floats like 0.1 keep their short repr instead of binary noise
        found = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default

    return found if found.is_finite() else default


def fmtmoney(val: Decimal | int | float) -> str:
    """Rupee amount with exactly two decimals, e.g. 236 -> '₹236.00'."""
    amount = toDecimal(val).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    return f"{sign}{RUPEE}{abs(amount)}"


def fmtqty(val: Decimal) -> str:
    """Quantities print without trailing zeros (2, not 2.00)."""
    if val == val.to_integral_value():
        return str(val.quantize(Decimal(1)))

    return str(val.normalize())


def parseTimestamp(value: Any) -> datetime.datetime | None:
    """Parse an ISO-8601 backend timestamp into local time, or None.

    A timestamp without an offset is taken to already be local time.
    """
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        found = datetime.datetime.fromisoformat(text)
    except ValueError:
        return None

    # naive values are interpreted in the local zone by astimezone()
    return found.astimezone()


def _ampm(dt: datetime.datetime) -> tuple[int, str]:
    hour = dt.hour % 12 or 12
    return hour, "am" if dt.hour < 12 else "pm"


def fmtOrderTime(dt: datetime.datetime) -> str:
    """en-IN date/time at minute precision with 2-digit fields: '19/10/2026, 02:05 pm'."""
    hour, suffix = _ampm(dt)
    return f"{dt:%d/%m/%Y}, {hour:02}:{dt:%M} {suffix}"


def fmtGeneratedTime(dt: datetime.datetime) -> str:
    """en-IN default date/time rendering: '19/10/2026, 2:05:09 pm'."""
    hour, suffix = _ampm(dt)
    return f"{dt:%d/%m/%Y}, {hour}:{dt:%M:%S} {suffix}"
