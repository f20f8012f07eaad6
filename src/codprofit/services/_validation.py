from __future__ import annotations

import math
import re
from datetime import date

from codprofit.domain.errors import ValidationError

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


def require_iso_date(value: str) -> str:
    text = (value or "").strip()
    if not _ISO_DATE.fullmatch(text):
        raise ValidationError("Date must be YYYY-MM-DD.")
    try:
        date.fromisoformat(text)
    except ValueError as e:
        raise ValidationError(f"Invalid date: {text}") from e
    return text


def require_non_negative(value: object, label: str) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{label} must be a number.") from e
    if not math.isfinite(number):
        raise ValidationError(f"{label} must be a finite number.")
    if number < 0:
        raise ValidationError(f"{label} must be >= 0.")
    return number
