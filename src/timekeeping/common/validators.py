from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def optional_text(value: Optional[str], *, max_length: int | None = None) -> Optional[str]:
    text = (value or "").strip() or None
    if text and max_length is not None and len(text) > max_length:
        raise ValidationError(f"Text must be at most {max_length} characters")
    return text


def require_date_range(start: date, end: Optional[date]) -> date:
    """Return the effective end date, rejecting inverted ranges."""
    end = end or start
    if end < start:
        raise ValidationError("End date must be on or after start date")
    return end


def to_decimal(value, field_name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number")
