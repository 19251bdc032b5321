"""
Validation report writers.

CSVReportWriter produces the field-by-field comparison report consumed by
downstream reconciliation; JSONReportWriter writes the same records with a
summary block for tooling that prefers structured output.
"""

import csv
import json
import logging

from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence, Union

from ..interfaces import ReportSinkInterface
from ..config.processing_defaults import ValidationDefaults
from ..exceptions import ReportWriteError
from ..models import EMPTY_TAG, ValidationResult


CSV_HEADER = ['XML_Path', 'View', 'Field', 'Match', 'XML_Value', 'DB_Value']


class _FileReportWriter(ReportSinkInterface):
    """Shared output directory and file naming for file based reports."""

    extension = ''

    def __init__(self, output_dir: Union[str, Path] = ValidationDefaults.REPORT_DIR):
        self.logger = logging.getLogger(__name__)
        self.output_dir = Path(output_dir)

    def _report_path(self, timestamp: Optional[datetime] = None) -> Path:
        stamp = (timestamp or datetime.now()).strftime(ValidationDefaults.REPORT_TIMESTAMP_FORMAT)
        return self.output_dir / f"{ValidationDefaults.REPORT_PREFIX}{stamp}.{self.extension}"

    def _prepare_output_dir(self) -> None:
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ReportWriteError(f"Cannot create report directory {self.output_dir}: {e}") from e

    @staticmethod
    def _document_value(result: ValidationResult) -> str:
        value = result.document_value
        return EMPTY_TAG if value is None or not value.strip() else value


class CSVReportWriter(_FileReportWriter):
    """
    Writes validation results as CSV.

    Columns: XML_Path, View, Field, Match, XML_Value, DB_Value. Match is written
    as true/false, a missing database value as an empty field. Fields holding a
    comma, quote or line break are quoted with embedded quotes doubled.
    """

    extension = 'csv'

    def write_results(self, results: Sequence[ValidationResult]) -> str:
        """
        Write the results to a timestamped CSV file in the output directory.

        Returns:
            Path of the written report

        Raises:
            ReportWriteError: If the file cannot be written
        """
        self._prepare_output_dir()
        report_path = self._report_path()

        try:
            with open(report_path, 'w', newline='', encoding='utf-8') as csvfile:
                writer = csv.writer(csvfile, lineterminator='\n')
                writer.writerow(CSV_HEADER)
                for result in results:
                    writer.writerow([
                        result.xml_path,
                        result.view_name,
                        result.column_name,
                        'true' if result.matched else 'false',
                        self._document_value(result),
                        '' if result.stored_value is None else result.stored_value,
                    ])
        except OSError as e:
            self.logger.error(f"Failed to write CSV report {report_path}: {e}")
            raise ReportWriteError(f"Failed to write CSV report {report_path}: {e}") from e

        self.logger.info(f"Results written to {report_path}")
        return str(report_path)


class JSONReportWriter(_FileReportWriter):
    """Writes validation results as a JSON document with a summary block."""

    extension = 'json'

    def __init__(self, output_dir: Union[str, Path] = ValidationDefaults.REPORT_DIR,
                 document_key: Optional[str] = None):
        super().__init__(output_dir)
        self.document_key = document_key

    def write_results(self, results: Sequence[ValidationResult]) -> str:
        """
        Write the results to a timestamped JSON file in the output directory.

        Raises:
            ReportWriteError: If the file cannot be written
        """
        self._prepare_output_dir()
        report_path = self._report_path()

        successful = sum(1 for result in results if result.matched)
        report = {
            'run_timestamp': datetime.now().isoformat(),
            'summary': {
                'document_key': self.document_key,
                'total': len(results),
                'successful': successful,
                'failed': len(results) - successful,
            },
            'results': [
                {
                    'xml_path': result.xml_path,
                    'view': result.view_name,
                    'field': result.column_name,
                    'match': result.matched,
                    'xml_value': self._document_value(result),
                    'db_value': result.stored_value,
                }
                for result in results
            ],
        }

        try:
            with open(report_path, 'w', encoding='utf-8') as f:
                json.dump(report, f, indent=2)
        except OSError as e:
            self.logger.error(f"Failed to write JSON report {report_path}: {e}")
            raise ReportWriteError(f"Failed to write JSON report {report_path}: {e}") from e

        self.logger.info(f"Results written to {report_path}")
        return str(report_path)


def create_report_writer(report_format: str, output_dir: Union[str, Path] = ValidationDefaults.REPORT_DIR,
                         document_key: Optional[str] = None) -> ReportSinkInterface:
    """
    Create the report writer for an output format.

    Raises:
        ValueError: If the format is not csv or json
    """
    report_format = report_format.lower()
    if report_format == 'csv':
        return CSVReportWriter(output_dir)
    if report_format == 'json':
        return JSONReportWriter(output_dir, document_key=document_key)
    raise ValueError(f"Unsupported report format: {report_format}")
