"""
Validation engine for comparing one XML document with the database.

The engine walks the configured mapping rules in a fixed order and produces an
ordered list of ValidationResult records:

1. Extract the document key from the XML
2. Confirm the document key exists in the primary view
3. Custom SQL validations
4. Priority multi-path groups, in ascending rank order
5. Standalone multi-path groups
6. Remaining simple field mappings

A locator matched by an earlier step is never validated again by a later one.
"""

import logging

from typing import Any, Dict, List, Optional, Set, Tuple

from ..interfaces import DataAccessInterface, DocumentQueryInterface
from ..config.validation_config import ValidationConfig
from ..config.processing_defaults import ValidationDefaults
from ..exceptions import DocumentKeyMissingError, DocumentKeyNotFoundError, LocatorEvaluationError
from ..models import EMPTY_TAG, CustomQueryMapping, FieldMapping, MultiPathGroup, ValidationResult, ValidationSummary


# Currency columns resolved by the tax currency gate
TAX_CURRENCY_COLUMN = "TaxCurrencyCode"
DOCUMENT_CURRENCY_COLUMN = "DocumentCurrencyCode"


class ValidationEngine:
    """
    Orchestrates the validation of one parsed XML document.

    The engine holds no database or XML state of its own: every lookup goes
    through the injected data access and document query implementations, so a
    new engine (or a new run() call) is cheap.
    """

    def __init__(self, config: ValidationConfig, data_access: DataAccessInterface,
                 document_query: DocumentQueryInterface):
        """
        Initialize the engine.

        Args:
            config: Validation mapping rules
            data_access: Database lookups (normally a DatabaseConnector)
            document_query: XPath evaluation against the parsed document
        """
        self.logger = logging.getLogger(__name__)
        self.config = config
        self.data_access = data_access
        self.document_query = document_query

    def run(self, document: Any) -> ValidationSummary:
        """
        Validate a parsed XML document against the database.

        Args:
            document: Parsed XML document

        Returns:
            ValidationSummary with results in validation order

        Raises:
            DocumentKeyMissingError: If the document key cannot be extracted
            DocumentKeyNotFoundError: If the document key is not in the primary view
            DatabaseConnectionError: If the database fails during key confirmation or row loading
        """
        document_key = self._extract_document_key(document)
        self._confirm_document_key(document_key)

        summary = ValidationSummary(document_key=document_key)
        processed_paths: Set[str] = set()
        processed_columns: Set[Tuple[str, str]] = set()

        self._validate_custom_queries(document, document_key, summary, processed_paths)
        self._validate_priority_groups(document, document_key, summary, processed_paths, processed_columns)
        self._validate_standalone_groups(document, document_key, summary, processed_paths, processed_columns)
        self._validate_mappings(document, document_key, summary, processed_paths)

        self.logger.info(
            f"Validation of document {document_key} complete: {summary.total} fields, "
            f"{summary.successful} matched, {summary.failed} mismatched"
        )
        return summary

    def _extract_document_key(self, document: Any) -> str:
        rule = self.config.document_key
        try:
            values = self.document_query.evaluate(rule.xml_path, document)
        except LocatorEvaluationError as e:
            raise DocumentKeyMissingError(f"Document key could not be evaluated at {rule.xml_path}: {e}") from e

        document_key = values[0].strip() if values else ''
        if not document_key:
            raise DocumentKeyMissingError(f"Document key not found in XML at path: {rule.xml_path}")

        self.logger.info(f"Extracted document key: {document_key}")
        return document_key

    def _confirm_document_key(self, document_key: str) -> None:
        view_name = self.config.document_key.view_name
        if not self.data_access.confirm_document_key(view_name, document_key):
            raise DocumentKeyNotFoundError(
                f"Document key {document_key} not found in {view_name}",
                document_key=document_key,
                view_name=view_name
            )
        self.logger.info(f"Document key {document_key} confirmed in {view_name}")

    def _validate_custom_queries(self, document: Any, document_key: str,
                                 summary: ValidationSummary, processed_paths: Set[str]) -> None:
        for custom_query in self.config.custom_queries.values():
            processed_paths.add(custom_query.xml_path)

            document_value = self._first_value(custom_query.xml_path, document)
            if document_value is None:
                continue

            result = self._run_custom_query(
                custom_query,
                ValidationDefaults.SQL_VALIDATION_VIEW,
                ValidationDefaults.SQL_VALIDATION_COLUMN,
                document_value,
                document_key
            )
            summary.add_result(result)

    def _validate_priority_groups(self, document: Any, document_key: str, summary: ValidationSummary,
                                  processed_paths: Set[str], processed_columns: Set[Tuple[str, str]]) -> None:
        for group in self.config.priority_groups():
            if group.slot in processed_columns:
                self.logger.debug(f"Skipping already processed column: {group.view_name}.{group.column_name}")
                continue

            if not self._passes_currency_gate(group, document_key):
                self.logger.info(f"Skipping {group.view_name}.{group.column_name}: currency gate not satisfied")
                processed_paths.update(group.xml_paths)
                continue

            # An unresolved group leaves the column open for its standalone group
            result = self._resolve_group(group, document, document_key)
            if result is not None:
                summary.add_result(result)
                processed_columns.add(group.slot)

            processed_paths.update(group.xml_paths)

    def _validate_standalone_groups(self, document: Any, document_key: str, summary: ValidationSummary,
                                    processed_paths: Set[str], processed_columns: Set[Tuple[str, str]]) -> None:
        for group in self.config.standalone_groups():
            if group.slot in processed_columns:
                self.logger.info(f"Skipping standalone validation for already processed column: {group.column_name}")
                continue

            result = self._resolve_group(group, document, document_key)
            if result is not None:
                summary.add_result(result)

            processed_columns.add(group.slot)
            processed_paths.update(group.xml_paths)

    def _validate_mappings(self, document: Any, document_key: str,
                           summary: ValidationSummary, processed_paths: Set[str]) -> None:
        for mapping in self.config.mappings:
            if mapping.xml_path in processed_paths:
                self.logger.debug(f"Skipping already processed path: {mapping.xml_path}")
                continue

            document_value = self._first_value(mapping.xml_path, document)
            if document_value is None:
                continue

            summary.add_result(self._validate_mapping(mapping, document_value, document_key))

    def _validate_mapping(self, mapping: FieldMapping, document_value: str, document_key: str) -> ValidationResult:
        custom_query = self.config.get_custom_query(mapping.xml_path)
        if custom_query is not None:
            return self._run_custom_query(
                custom_query, mapping.view_name, mapping.column_name, document_value, document_key
            )

        if not document_value.strip():
            return self._empty_tag_result(mapping.xml_path, mapping.view_name, mapping.column_name)

        outcome = self.data_access.lookup_column(mapping.view_name, mapping.column_name, document_value, document_key)
        return ValidationResult(
            xml_path=mapping.xml_path,
            view_name=mapping.view_name,
            column_name=mapping.column_name,
            matched=outcome.matched,
            document_value=document_value,
            stored_value=outcome.stored_value
        )

    def _run_custom_query(self, custom_query: CustomQueryMapping, view_name: str, column_name: str,
                          document_value: str, document_key: str) -> ValidationResult:
        if not document_value.strip():
            return self._empty_tag_result(custom_query.xml_path, view_name, column_name)

        outcome = self.data_access.run_custom_query(custom_query.query, document_key, document_value)
        return ValidationResult(
            xml_path=custom_query.xml_path,
            view_name=view_name,
            column_name=column_name,
            matched=outcome.matched,
            document_value=document_value,
            stored_value=outcome.stored_value
        )

    def _resolve_group(self, group: MultiPathGroup, document: Any, document_key: str) -> Optional[ValidationResult]:
        """
        Resolve a multi-path group to at most one result.

        Every non-blank value found at any of the group's locators is collected.
        No value gives no result; several distinct values give a failed result
        listing them all; a single value is compared with the database.
        """
        values: Dict[str, None] = {}
        matched_paths: List[str] = []

        for xml_path in group.xml_paths:
            found = False
            for value in self._evaluate(xml_path, document):
                value = value.strip()
                if value:
                    values[value] = None
                    found = True
            if found:
                matched_paths.append(xml_path)

        if not values:
            self.logger.debug(f"No value found for {group.view_name}.{group.column_name}")
            return None

        xml_path_label = ', '.join(matched_paths)
        distinct_values = list(values)

        if len(distinct_values) > 1:
            self.logger.warning(
                f"Inconsistent values for {group.view_name}.{group.column_name}: {', '.join(distinct_values)}"
            )
            return ValidationResult(
                xml_path=xml_path_label,
                view_name=group.view_name,
                column_name=group.column_name,
                matched=False,
                document_value=', '.join(distinct_values),
                stored_value=None
            )

        document_value = distinct_values[0]
        outcome = self.data_access.lookup_column(group.view_name, group.column_name, document_value, document_key)
        return ValidationResult(
            xml_path=xml_path_label,
            view_name=group.view_name,
            column_name=group.column_name,
            matched=outcome.matched,
            document_value=document_value,
            stored_value=outcome.stored_value
        )

    def _passes_currency_gate(self, group: MultiPathGroup, document_key: str) -> bool:
        """
        Decide whether a priority group is resolved for this document.

        When the view carries a tax currency, only the TaxCurrencyCode group is
        validated; otherwise only the DocumentCurrencyCode group is. Other
        columns are not gated.
        """
        if group.column_name not in (TAX_CURRENCY_COLUMN, DOCUMENT_CURRENCY_COLUMN):
            return True

        has_tax_currency = self.data_access.column_has_non_empty_value(
            group.view_name, TAX_CURRENCY_COLUMN, document_key
        )
        if group.column_name == TAX_CURRENCY_COLUMN:
            return has_tax_currency
        return not has_tax_currency

    def _first_value(self, xml_path: str, document: Any) -> Optional[str]:
        """Return the text of the first node matched by a locator, None when nothing matches."""
        values = self._evaluate(xml_path, document)
        if not values:
            self.logger.debug(f"No nodes found for XPath: {xml_path}")
            return None
        return values[0]

    def _evaluate(self, xml_path: str, document: Any) -> List[str]:
        try:
            return self.document_query.evaluate(xml_path, document)
        except LocatorEvaluationError as e:
            self.logger.warning(f"Skipping {xml_path}: {e}")
            return []

    @staticmethod
    def _empty_tag_result(xml_path: str, view_name: str, column_name: str) -> ValidationResult:
        return ValidationResult(
            xml_path=xml_path,
            view_name=view_name,
            column_name=column_name,
            matched=False,
            document_value=EMPTY_TAG,
            stored_value=None
        )
