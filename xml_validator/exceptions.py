"""
Custom exceptions for the XML Validator system.

This module defines specific exception types for the error conditions that can
occur while loading configuration, reading the XML document, talking to the
database and writing the validation report.

Only configuration, document key and database connectivity errors are fatal to
a run. Per-mapping problems (bad XPath, failed custom query) are handled inside
the validation engine and never surface as exceptions.
"""


class XMLValidationError(Exception):
    """Base exception for all XML validation related errors."""

    def __init__(self, message: str, document_key: str = None):
        """
        Initialize XML validation error.

        Args:
            message: Error description
            document_key: Optional document key of the run that raised the error
        """
        super().__init__(message)
        self.document_key = document_key


class ConfigurationError(XMLValidationError):
    """Exception raised when configuration is invalid or missing."""
    pass


class XMLParsingError(XMLValidationError):
    """Exception raised when the XML document cannot be read or parsed."""

    def __init__(self, message: str, xml_file: str = None):
        """
        Initialize XML parsing error.

        Args:
            message: Error description
            xml_file: Optional path of the document that failed to parse
        """
        super().__init__(message)
        self.xml_file = xml_file


class LocatorEvaluationError(XMLValidationError):
    """Exception raised when an XPath locator cannot be compiled or evaluated."""

    def __init__(self, message: str, locator: str = None):
        """
        Initialize locator evaluation error.

        Args:
            message: Error description
            locator: XPath expression that failed
        """
        super().__init__(message)
        self.locator = locator


class DocumentKeyMissingError(XMLValidationError):
    """Exception raised when the document key is absent or blank in the XML."""
    pass


class DocumentKeyNotFoundError(XMLValidationError):
    """Exception raised when the document key does not exist in the key view."""

    def __init__(self, message: str, document_key: str = None, view_name: str = None):
        """
        Initialize document key not found error.

        Args:
            message: Error description
            document_key: Key extracted from the XML document
            view_name: View that was searched for the key
        """
        super().__init__(message, document_key)
        self.view_name = view_name


class DatabaseConnectionError(XMLValidationError):
    """Exception raised when the database connection or a run-critical query fails."""
    pass


class ReportWriteError(XMLValidationError):
    """Exception raised when the validation report cannot be written."""
    pass
