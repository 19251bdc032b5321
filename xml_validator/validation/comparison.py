"""
Value comparison rules used when validating XML values against the database.

Numeric-ness is decided by the document-side value only: when the XML value is
a decimal literal the database value is compared by decimal value if it parses
too, and by exact text otherwise. Non-numeric XML values are always compared as
exact text.
"""

from decimal import Decimal
from typing import Any, Optional

from ..utils import NumericUtils


# Tolerance for custom query aggregates (sums, totals)
AGGREGATE_EPSILON = Decimal("0.001")


def values_match(document_value: Optional[str], stored_value: Optional[str]) -> bool:
    """
    Compare an XML value with a database value.

    Examples:
        values_match("1.50", "1.5") -> True
        values_match("abc", "abc") -> True
        values_match("1.5", "abc") -> False

    Args:
        document_value: Value extracted from the XML document
        stored_value: Value read from the database

    Returns:
        True if both values are present and equal under the rules above
    """
    if document_value is None or stored_value is None:
        return False

    document_number = NumericUtils.parse_decimal(document_value)
    if document_number is not None:
        stored_number = NumericUtils.parse_decimal(stored_value)
        if stored_number is not None:
            return document_number.compare(stored_number) == 0

    return document_value == stored_value


def approximately_equals(first: Any, second: Any, epsilon: Decimal = AGGREGATE_EPSILON) -> bool:
    """
    Compare two numbers by absolute difference.

    Used only for custom query validations, where the database returns a
    computed aggregate that may carry extra precision.

    Args:
        first: Number or decimal text
        second: Number or decimal text
        epsilon: Largest difference (exclusive) still considered equal

    Returns:
        True if |first - second| < epsilon

    Raises:
        ValueError: If either value is not a number
    """
    first_number = _as_decimal(first)
    second_number = _as_decimal(second)
    return abs(first_number - second_number) < Decimal(str(epsilon))


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, float):
        value = repr(value)
    number = NumericUtils.parse_decimal(value)
    if number is None:
        raise ValueError(f"Not a numeric value: {value!r}")
    return number
