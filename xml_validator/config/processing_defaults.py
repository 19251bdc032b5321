"""
Centralized configuration defaults for XML validation runs.

This module defines operational configuration constants used throughout the system.
CLI arguments and XML_VALIDATOR_* environment variables can override these defaults
at runtime.
"""


class ValidationDefaults:
    """
    Centralized operational configuration for XML validation.

    All values are defaults that can be overridden via CLI arguments:
    - xml_validator invoice.xml --config other.properties
    - xml_validator invoice.xml --report-dir reports --format json
    - xml_validator invoice.xml --log-level DEBUG
    """

    # Configuration file looked up in the current working directory
    CONFIG_FILE = "configs.properties"

    # Reporting
    REPORT_DIR = "."  # Directory receiving the report file
    REPORT_FORMAT = "csv"  # csv or json
    REPORT_PREFIX = "validation_results_"
    REPORT_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

    # Database connection (pyodbc)
    CONNECTION_TIMEOUT = 30  # Connection timeout in seconds
    DB_DRIVER = "ODBC Driver 17 for SQL Server"

    # Labels reported for custom SQL validations
    SQL_VALIDATION_VIEW = "SQL_VALIDATION"
    SQL_VALIDATION_COLUMN = "SQL_FIELD"

    # Logging
    LOG_LEVEL = "INFO"  # Default logging level (CRITICAL, ERROR, WARNING, INFO, DEBUG)
    LOG_DIR = "logs"

    @classmethod
    def to_dict(cls) -> dict:
        """
        Export all defaults as a dictionary.

        Returns:
            Dictionary of all ValidationDefaults class attributes.
        """
        return {
            key: getattr(cls, key)
            for key in dir(cls)
            if not key.startswith('_') and key.isupper()
        }

    @classmethod
    def log_summary(cls, logger=None):
        """
        Log a summary of all operational defaults.

        Args:
            logger: Optional logger instance. If None, prints to stdout.
        """
        config_dict = cls.to_dict()
        summary = "\n".join([f"  {key}: {value}" for key, value in sorted(config_dict.items())])
        message = f"Validation Configuration Defaults:\n{summary}"

        if logger:
            logger.info(message)
        else:
            print(message)
