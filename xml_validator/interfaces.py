"""
Abstract interfaces and base classes for the XML Validator system.

This module defines the contracts that the validation engine depends on, so the
XML query, database access and report output can be injected and replaced in
tests.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Sequence

from .models import LookupOutcome, ValidationResult


class DocumentQueryInterface(ABC):
    """Abstract interface for evaluating locators against a parsed document."""

    @abstractmethod
    def evaluate(self, xml_path: str, document: Any) -> List[str]:
        """
        Evaluate an XPath expression against a document.

        Args:
            xml_path: XPath expression, possibly using configured namespace prefixes
            document: Parsed XML document

        Returns:
            Text value of every matching node, in document order (empty when nothing matches)

        Raises:
            LocatorEvaluationError: If the expression is malformed or cannot be evaluated
        """
        pass


class DataAccessInterface(ABC):
    """Abstract interface for the database lookups used during validation."""

    @abstractmethod
    def confirm_document_key(self, view_name: str, document_key: str) -> bool:
        """
        Check that the document key exists in a view.

        Raises:
            DatabaseConnectionError: If the query fails
        """
        pass

    @abstractmethod
    def lookup_column(self, view_name: str, column_name: str,
                      document_value: str, document_key: str) -> LookupOutcome:
        """
        Compare a document value with the cached view row for the document key.

        Raises:
            DatabaseConnectionError: If the view row cannot be loaded
        """
        pass

    @abstractmethod
    def column_has_non_empty_value(self, view_name: str, column_name: str, document_key: str) -> bool:
        """Return True if the column holds a non-blank value for the document key."""
        pass

    @abstractmethod
    def run_custom_query(self, query: str, document_key: str, document_value: str) -> LookupOutcome:
        """Execute a custom validation query and compare its first column with the document value."""
        pass


class ReportSinkInterface(ABC):
    """Abstract interface for validation report output."""

    @abstractmethod
    def write_results(self, results: Sequence[ValidationResult]) -> str:
        """
        Write the ordered validation results.

        Args:
            results: Validation results in engine order

        Returns:
            Identifier of the written report (e.g. file path)

        Raises:
            ReportWriteError: If the report cannot be written
        """
        pass
