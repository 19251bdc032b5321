"""Validation engine and value comparison rules."""

from .comparison import values_match, approximately_equals, AGGREGATE_EPSILON
from .validation_engine import ValidationEngine

__all__ = ['values_match', 'approximately_equals', 'AGGREGATE_EPSILON', 'ValidationEngine']
