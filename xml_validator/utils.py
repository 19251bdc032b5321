"""
Utility functions for common patterns across the XML validation system.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional


class StringUtils:
    """Utility methods for string validation and processing."""

    # Cached regex patterns for performance
    _regex_cache = {
        'decimal': re.compile(r'[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?', re.ASCII),
    }

    @staticmethod
    def safe_string_check(value: Any) -> bool:
        """
        Standardized string validation.

        Args:
            value: Value to check

        Returns:
            True if value is a non-empty string after stripping whitespace
        """
        return value is not None and str(value).strip() != ''

    @staticmethod
    def split_list(value: Optional[str], separator: str = ',') -> List[str]:
        """
        Split a delimited configuration value into trimmed, non-empty items.

        Examples:
            ' a , b,,c ' -> ['a', 'b', 'c']
        """
        if not value:
            return []
        return [item.strip() for item in value.split(separator) if item.strip()]


class NumericUtils:
    """Utility methods for decimal detection and conversion."""

    @staticmethod
    def parse_decimal(value: Any) -> Optional[Decimal]:
        """
        Parse a plain decimal literal.

        Accepts an optional sign, digits with an optional fraction and an optional
        exponent. Surrounding whitespace, digit separators, NaN and Infinity are
        rejected.

        Examples:
            '1.50' -> Decimal('1.50')
            '-.5e2' -> Decimal('-50')
            ' 1.5' -> None
            'NaN' -> None

        Args:
            value: Text to parse

        Returns:
            Decimal value, or None if the text is not a decimal literal
        """
        if value is None:
            return None
        if isinstance(value, Decimal):
            return value if value.is_finite() else None
        text = str(value)
        if not StringUtils._regex_cache['decimal'].fullmatch(text):
            return None
        try:
            return Decimal(text)
        except InvalidOperation:
            return None

    @staticmethod
    def is_numeric(value: Any) -> bool:
        """Check if a value is a plain decimal literal."""
        return NumericUtils.parse_decimal(value) is not None
