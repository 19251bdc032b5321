"""
Validation Processor - validates one XML document end to end.

Wires the configuration, the parsed document, the database connector, the
validation engine and the report writer together. The database connection is
scoped to the engine run and released on every exit path; the report is only
written once validation has completed.
"""

import logging
import time

from pathlib import Path
from typing import Union

from ..config.config_manager import ConfigManager
from ..config.processing_defaults import ValidationDefaults
from ..database.connector import DatabaseConnector
from ..parsing.xml_document import XMLDocumentLoader, XPathDocumentQuery
from ..reporting.report_writer import create_report_writer
from ..validation.validation_engine import ValidationEngine
from ..models import ValidationSummary


class ValidationProcessor:
    """
    Runs a complete validation of one XML document.

    Features:
    - Configuration and database settings from a single ConfigManager
    - One database connection per document, closed after validation
    - CSV (default) or JSON report written after a successful run
    """

    def __init__(self,
                 config_manager: ConfigManager,
                 report_dir: Union[str, Path] = ValidationDefaults.REPORT_DIR,
                 report_format: str = ValidationDefaults.REPORT_FORMAT):
        """
        Initialize the validation processor.

        Args:
            config_manager: Source of mapping rules and database settings
            report_dir: Directory receiving the report file
            report_format: Report format, csv or json
        """
        self.logger = logging.getLogger(__name__)
        self.config_manager = config_manager
        self.report_dir = Path(report_dir)
        self.report_format = report_format

        self.document_loader = XMLDocumentLoader()

    def validate(self, xml_file: Union[str, Path]) -> ValidationSummary:
        """
        Validate an XML document against the database and write the report.

        Args:
            xml_file: Path to the XML document

        Returns:
            ValidationSummary with the report path attached

        Raises:
            ConfigurationError: If the configuration is invalid
            XMLParsingError: If the document cannot be parsed
            DocumentKeyMissingError: If the document key is absent from the XML
            DocumentKeyNotFoundError: If the document key is not in the database
            DatabaseConnectionError: If the database is unavailable
            ReportWriteError: If the report cannot be written
        """
        start_time = time.time()

        validation_config = self.config_manager.load_validation_config()
        database_config = self.config_manager.get_database_config()

        document = self.document_loader.load(xml_file)
        document_query = XPathDocumentQuery(validation_config.namespaces)

        with DatabaseConnector(
            database_config.effective_connection_string,
            validation_config.document_key.column_name,
            database_config.connection_timeout
        ) as connector:
            engine = ValidationEngine(validation_config, connector, document_query)
            summary = engine.run(document)

        report_writer = create_report_writer(self.report_format, self.report_dir, summary.document_key)
        summary.report_file = report_writer.write_results(summary.results)

        elapsed = time.time() - start_time
        self.logger.info(
            f"Validated {xml_file} in {elapsed:.2f}s: {summary.successful}/{summary.total} fields matched "
            f"({summary.success_rate:.1f}%)"
        )
        return summary
