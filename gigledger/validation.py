"""Input checks shared by the services. All raise ValidationError."""

import math
from numbers import Real
from typing import Any, Optional

from .errors import ValidationError


def require_number(value: Any, name: str, minimum: Optional[float] = 0) -> float:
    """Reject non-numbers, NaN/inf, and values below minimum."""
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if math.isnan(value) or math.isinf(value):
        raise ValidationError(f"{name} must be finite")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}, got {value}")
    return value


def require_positive(value: Any, name: str) -> float:
    require_number(value, name)
    if value <= 0:
        raise ValidationError(f"{name} must be greater than zero")
    return value


def require_text(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} is required")
    return value.strip()
