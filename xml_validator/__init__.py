"""
XML Validator

A configuration-driven tool for validating the field values of an XML document
against authoritative values held in database views.
"""

__version__ = "1.0.0"
__author__ = "Timothy J. Morris"

# Import core models and interfaces for easy access
from .models import (
    EMPTY_TAG,
    GroupKind,
    DocumentKeyRule,
    FieldMapping,
    CustomQueryMapping,
    MultiPathGroup,
    NamespaceBinding,
    LookupOutcome,
    ValidationResult,
    ValidationSummary
)

from .interfaces import (
    DocumentQueryInterface,
    DataAccessInterface,
    ReportSinkInterface
)

from .exceptions import (
    XMLValidationError,
    ConfigurationError,
    XMLParsingError,
    LocatorEvaluationError,
    DocumentKeyMissingError,
    DocumentKeyNotFoundError,
    DatabaseConnectionError,
    ReportWriteError
)

__all__ = [
    # Core models
    "EMPTY_TAG",
    "GroupKind",
    "DocumentKeyRule",
    "FieldMapping",
    "CustomQueryMapping",
    "MultiPathGroup",
    "NamespaceBinding",
    "LookupOutcome",
    "ValidationResult",
    "ValidationSummary",

    # Interfaces
    "DocumentQueryInterface",
    "DataAccessInterface",
    "ReportSinkInterface",

    # Exceptions
    "XMLValidationError",
    "ConfigurationError",
    "XMLParsingError",
    "LocatorEvaluationError",
    "DocumentKeyMissingError",
    "DocumentKeyNotFoundError",
    "DatabaseConnectionError",
    "ReportWriteError"
]
