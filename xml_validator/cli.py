"""
Command-line interface for the XML Validator.

Validates one XML document against the database using the mapping rules in the
configuration file, then writes a field-by-field report.

Usage:
    xml_validator invoice.xml
    xml_validator invoice.xml --config configs.properties --report-dir reports
    xml_validator invoice.xml --format json --log-level DEBUG --log-to-file
"""

import argparse
import logging
import os
import sys

from datetime import datetime
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config.config_manager import ConfigManager
from .config.processing_defaults import ValidationDefaults
from .exceptions import XMLValidationError
from .processing.validation_processor import ValidationProcessor


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='xml_validator',
        description='Validate XML document field values against database views.'
    )
    parser.add_argument('xml_file', help='XML document to validate')
    parser.add_argument('--config', default=None,
                        help=f'Configuration file (.properties, .json, .yaml). '
                             f'Default: XML_VALIDATOR_CONFIG_PATH or ./{ValidationDefaults.CONFIG_FILE}')
    parser.add_argument('--report-dir', default=ValidationDefaults.REPORT_DIR,
                        help='Directory receiving the validation report')
    parser.add_argument('--format', dest='report_format', choices=['csv', 'json'],
                        default=ValidationDefaults.REPORT_FORMAT, help='Report format')
    parser.add_argument('--log-level', default=ValidationDefaults.LOG_LEVEL,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], help='Logging level')
    parser.add_argument('--log-to-file', action='store_true',
                        help=f'Also write the log to {ValidationDefaults.LOG_DIR}/')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def setup_logging(log_level: str, log_to_file: bool = False) -> None:
    """Configure the root logger without duplicating handlers on repeated calls."""
    level = getattr(logging, log_level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT)
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    if log_to_file:
        logs_dir = Path(ValidationDefaults.LOG_DIR)
        logs_dir.mkdir(exist_ok=True)
        log_file = logs_dir / f"xml_validator_{datetime.now().strftime(ValidationDefaults.REPORT_TIMESTAMP_FORMAT)}.log"
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger('lxml').setLevel(logging.WARNING)


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI application.

    Args:
        args: Optional command line arguments (defaults to sys.argv)

    Returns:
        Exit code: 0 on success, 1 on a validation failure, 2 on missing input files
    """
    if args is None:
        args = sys.argv[1:]

    options = build_parser().parse_args(args)
    setup_logging(options.log_level, options.log_to_file)
    logger = logging.getLogger(__name__)

    xml_file = Path(options.xml_file)
    if not xml_file.is_file():
        print(f"Error: XML file not found: {xml_file}", file=sys.stderr)
        return 2

    config_path = Path(options.config or os.environ.get('XML_VALIDATOR_CONFIG_PATH')
                       or Path.cwd() / ValidationDefaults.CONFIG_FILE)
    if not config_path.is_file():
        print(f"Error: configuration file not found: {config_path}", file=sys.stderr)
        return 2

    logger.info(f"XML Validator v{__version__}")
    if options.log_level.upper() == 'DEBUG':
        ValidationDefaults.log_summary(logger)

    try:
        processor = ValidationProcessor(
            ConfigManager(config_path),
            report_dir=options.report_dir,
            report_format=options.report_format
        )
        summary = processor.validate(xml_file)
    except XMLValidationError as e:
        logger.error(f"Validation failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Validation completed for document {summary.document_key}")
    print(f"Total validations: {summary.total}")
    print(f"Successful: {summary.successful}")
    print(f"Failed: {summary.failed}")
    print(f"Results written to: {summary.report_file}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
