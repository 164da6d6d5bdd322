"""Strict numeric extraction from upstream JSON values."""

from decimal import Decimal, InvalidOperation
from typing import Any

from tradr.exceptions import ParseError, UpstreamDataError


def require_decimal(value: Any, field_name: str, source: str) -> Decimal:
    """Convert a JSON scalar to Decimal.

    Missing values are a data error; present-but-non-numeric values are a
    parse error. Booleans are rejected even though they are ints in Python.
    """
    if value is None:
        raise UpstreamDataError(f"{field_name} not found in {source} response", source=source)
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ParseError(f"{field_name} in {source} response is not a number: {value!r}", source=source)
    try:
        result = Decimal(str(value))
    except InvalidOperation as e:
        raise ParseError(
            f"{field_name} in {source} response is not a number: {value!r}", source=source
        ) from e
    if not result.is_finite():
        raise ParseError(f"{field_name} in {source} response is not finite", source=source)
    return result
