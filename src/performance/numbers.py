"""Lenient numeric coercion for the achievement engine."""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

logger = logging.getLogger(__name__)


def to_decimal(value, *, field: str = "value") -> Decimal | None:
    """Return *value* as a finite Decimal, or None.

    ``None`` and empty strings map to None silently. Anything else that is
    not a finite number (text, NaN, infinity, booleans) also maps to None
    and is logged, since it means the caller fed unvalidated data.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        logger.warning("Ignoring boolean %s=%r", field, value)
        return None
    try:
        if isinstance(value, Decimal):
            number = value
        elif isinstance(value, (int, float)):
            number = Decimal(str(value))
        else:
            number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        logger.warning("Ignoring non-numeric %s=%r", field, value)
        return None
    if not number.is_finite():
        logger.warning("Ignoring non-finite %s=%r", field, value)
        return None
    return number
