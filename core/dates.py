from __future__ import annotations
from datetime import date, datetime, timezone
from typing import Any, Optional

from core.errors import ValidationError


def today() -> date:
    return datetime.now(timezone.utc).date()


def to_date(value: Any, *, field: str = "date") -> Optional[date]:
    """Coerce ISO strings / datetimes to a plain ``date``; ``None`` stays ``None``."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        raw = value.strip()
        try:
            return date.fromisoformat(raw)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    raise ValidationError(f"Invalid {field}: {value!r}")


def is_currently_active(valid_from: Optional[date], valid_to: Optional[date], *, on: Optional[date] = None) -> bool:
    # date-only comparison, open-ended when valid_to is missing
    ref = on or today()
    if valid_from is None or valid_from > ref:
        return False
    return valid_to is None or valid_to >= ref


def ranges_overlap(
    start_a: date, end_a: Optional[date], start_b: date, end_b: Optional[date]
) -> bool:
    # closed ranges, a missing end is +inf
    a_before_b_ends = end_b is None or start_a <= end_b
    b_before_a_ends = end_a is None or start_b <= end_a
    return a_before_b_ends and b_before_a_ends


def ensure_window(valid_from: Optional[date], valid_to: Optional[date], *, message: str | None = None) -> None:
    if valid_from and valid_to and valid_from > valid_to:
        raise ValidationError(message or "validFrom must be less than or equal to validTo.")
