"""
Database access for XML validation.

DatabaseConnector is the single point of contact with the database during a
validation run. It owns one pyodbc connection and a per-document row cache:
the first lookup against a view loads the whole row for the document key, and
every later lookup against that view is answered from memory.

The cache only ever holds one document. Loading a row for a new document key
clears everything cached for the previous key.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, Optional

import pyodbc

from ..interfaces import DataAccessInterface
from ..exceptions import DatabaseConnectionError
from ..models import LookupOutcome
from ..utils import NumericUtils, StringUtils
from ..validation.comparison import approximately_equals, values_match


def quote_identifier(name: str) -> str:
    """
    Quote a column name for SQL Server.

    Examples:
        'TaxCurrencyCode' -> '[TaxCurrencyCode]'
        'odd]name' -> '[odd]]name]'
    """
    return f"[{name.replace(']', ']]')}]"


def qualify_name(name: str) -> str:
    """
    Quote a possibly schema-qualified view name.

    Names already carrying brackets or quotes are used as configured.

    Examples:
        'V_INVOICE' -> '[V_INVOICE]'
        'sales.V_INVOICE' -> '[sales].[V_INVOICE]'
    """
    if any(char in name for char in '[]"'):
        return name
    return '.'.join(quote_identifier(part) for part in name.split('.'))


class DatabaseConnector(DataAccessInterface):
    """
    Owns the database connection and the per-document view row cache.

    Use as a context manager so the connection is closed on every exit path:

        with DatabaseConnector(connection_string, "INV_NO") as connector:
            connector.confirm_document_key("V_INVOICE_HEADER", "INV-1001")

    Failure semantics:
    - Connection failures, document key confirmation failures and row load
      failures raise DatabaseConnectionError (fatal to the run)
    - Custom query and column probe failures are logged and reported as a
      non-match for that single mapping
    """

    def __init__(self, connection_string: str, document_key_column: str, connection_timeout: int = 30):
        """
        Initialize the connector. The connection is opened by open() or on entering the context.

        Args:
            connection_string: pyodbc connection string
            document_key_column: Column holding the document key in every view
            connection_timeout: Login timeout in seconds
        """
        self.logger = logging.getLogger(__name__)
        self.connection_string = connection_string
        self.document_key_column = document_key_column
        self.connection_timeout = connection_timeout

        self._connection = None
        self._view_data: Dict[str, Dict[str, Optional[str]]] = {}
        self._current_document_key: Optional[str] = None

        # Number of view rows fetched from the database
        self.rows_loaded = 0

    def __enter__(self) -> 'DatabaseConnector':
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def open(self) -> None:
        """
        Open the database connection.

        Raises:
            DatabaseConnectionError: If connection cannot be established
        """
        if self._connection is not None:
            return

        try:
            connection = pyodbc.connect(
                self.connection_string,
                autocommit=True,  # Read-only validation queries
                timeout=self.connection_timeout
            )
            connection.setdecoding(pyodbc.SQL_CHAR, encoding='utf-8')
            connection.setdecoding(pyodbc.SQL_WCHAR, encoding='utf-8')
            connection.setencoding(encoding='utf-8')
        except pyodbc.Error as e:
            self.logger.error(f"Database connection failed: {e}")
            raise DatabaseConnectionError(f"Failed to establish database connection: {e}") from e

        self._connection = connection
        self.logger.info("Database connection established successfully.")

    def close(self) -> None:
        """Close the database connection and drop the row cache."""
        self._view_data.clear()
        self._current_document_key = None

        if self._connection is None:
            return
        try:
            self._connection.close()
            self.logger.debug("Database connection closed")
        except pyodbc.Error as e:
            self.logger.warning(f"Error while closing database connection: {e}")
        finally:
            self._connection = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    @contextmanager
    def _cursor(self):
        if self._connection is None:
            raise DatabaseConnectionError("Database connection is not open")
        cursor = self._connection.cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    def confirm_document_key(self, view_name: str, document_key: str) -> bool:
        """
        Validate that the document key exists in the specified view.

        Args:
            view_name: The name of the view (usually the document header view)
            document_key: Key extracted from the XML

        Returns:
            True if the document key exists, False otherwise

        Raises:
            DatabaseConnectionError: If there's a database error
        """
        query = (
            f"SELECT 1 FROM {qualify_name(view_name)} "
            f"WHERE {quote_identifier(self.document_key_column)} = ?"
        )
        try:
            with self._cursor() as cursor:
                self.logger.debug(f"Document key query: {query}")
                cursor.execute(query, (document_key,))
                return cursor.fetchone() is not None
        except pyodbc.Error as e:
            self.logger.error(f"Failed to validate document key {document_key}: {e}")
            raise DatabaseConnectionError(f"Failed to validate document key: {e}", document_key) from e

    def lookup_column(self, view_name: str, column_name: str,
                      document_value: str, document_key: str) -> LookupOutcome:
        """
        Compare a document value with a view column for the document key.

        The whole view row is loaded and cached on first access.

        Raises:
            DatabaseConnectionError: If the view row cannot be loaded
        """
        cache_key = self._cache_key(view_name, document_key)
        if document_key != self._current_document_key or cache_key not in self._view_data:
            self._load_view_data(view_name, document_key)

        row_data = self._view_data.get(cache_key, {})
        stored_value = self._get_column_value(row_data, column_name)
        matched = values_match(document_value, stored_value)

        self.logger.debug(f"{view_name}.{column_name}: xml={document_value!r} db={stored_value!r} match={matched}")
        return LookupOutcome(matched=matched, stored_value=stored_value)

    def column_has_non_empty_value(self, view_name: str, column_name: str, document_key: str) -> bool:
        """
        Check whether a column holds a non-blank value for the document key.

        Bypasses the row cache. Query failures (e.g. the column does not exist
        in the view) are logged and reported as False.
        """
        query = (
            f"SELECT {quote_identifier(column_name)} FROM {qualify_name(view_name)} "
            f"WHERE {quote_identifier(self.document_key_column)} = ?"
        )
        try:
            with self._cursor() as cursor:
                self.logger.debug(f"Existence check query: {query}")
                cursor.execute(query, (document_key,))
                row = cursor.fetchone()
        except pyodbc.Error as e:
            self.logger.warning(f"Existence check failed for {view_name}.{column_name}: {e}")
            return False

        if row is None:
            return False
        return StringUtils.safe_string_check(_to_text(row[0]))

    def run_custom_query(self, query: str, document_key: str, document_value: str) -> LookupOutcome:
        """
        Execute a custom validation query from the configuration.

        Parameters are bound in order: the trimmed document value (as Decimal when it is
        numeric, text otherwise), then the document key. The first column of the
        first row is compared numerically with a 0.001 tolerance.
        """
        document_value = document_value.strip()
        number = NumericUtils.parse_decimal(document_value)
        parameters = (number if number is not None else document_value, document_key)

        try:
            with self._cursor() as cursor:
                self.logger.info(f"Executing query: {query}")
                cursor.execute(query, parameters)
                row = cursor.fetchone()
        except pyodbc.Error as e:
            self.logger.warning(f"Custom validation query failed: {e}")
            return LookupOutcome(matched=False, stored_value=None)

        if row is None:
            return LookupOutcome(matched=False, stored_value=None)

        stored_value = _to_text(row[0])
        try:
            matched = approximately_equals(document_value, stored_value)
        except ValueError as e:
            self.logger.warning(f"Custom validation values are not comparable: {e}")
            matched = False

        return LookupOutcome(matched=matched, stored_value=stored_value)

    def _load_view_data(self, view_name: str, document_key: str) -> None:
        """
        Load and cache all columns of a view for the document key.

        Clears the previous document's cache when a new document key arrives.

        Raises:
            DatabaseConnectionError: If the query fails
        """
        if self._current_document_key != document_key:
            if self._view_data:
                self.logger.info(f"Cleared cache for previous document. Starting new document: {document_key}")
            self._view_data.clear()
            self._current_document_key = document_key

        query = (
            f"SELECT * FROM {qualify_name(view_name)} "
            f"WHERE {quote_identifier(self.document_key_column)} = ?"
        )
        try:
            with self._cursor() as cursor:
                self.logger.info(f"Loading data from view {view_name} for document {document_key}")
                cursor.execute(query, (document_key,))
                columns = [description[0] for description in cursor.description or ()]
                row = cursor.fetchone()
        except pyodbc.Error as e:
            self.logger.error(f"Failed to load view {view_name} for document {document_key}: {e}")
            raise DatabaseConnectionError(f"Failed to load data from view {view_name}: {e}", document_key) from e

        row_data = {} if row is None else {column: _to_text(value) for column, value in zip(columns, row)}
        self._view_data[self._cache_key(view_name, document_key)] = row_data
        self.rows_loaded += 1

        if row is None:
            self.logger.warning(f"No row found in view {view_name} for document {document_key}")
        else:
            self.logger.info(f"Loaded {len(row_data)} columns from {view_name}")

    @staticmethod
    def _cache_key(view_name: str, document_key: str) -> str:
        return f"{view_name}:{document_key}"

    @staticmethod
    def _get_column_value(row_data: Dict[str, Optional[str]], column_name: str) -> Optional[str]:
        if column_name in row_data:
            return row_data[column_name]
        lowered = column_name.lower()
        for name, value in row_data.items():
            if name.lower() == lowered:
                return value
        return None


def _to_text(value: Any) -> Optional[str]:
    """Convert a database value to the text form used for comparison and reporting."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return '1' if value else '0'
    if isinstance(value, Decimal):
        return format(value, 'f')
    if isinstance(value, datetime):
        return value.isoformat(sep=' ')
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return value.hex().upper()
    if isinstance(value, float):
        return repr(value)
    return str(value)
