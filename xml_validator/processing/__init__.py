"""
Processing module for the XML validator.

Runs one document through configuration, parsing, validation and reporting.
"""

from .validation_processor import ValidationProcessor

__all__ = ['ValidationProcessor']
