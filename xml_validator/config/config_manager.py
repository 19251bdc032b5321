"""
Centralized configuration management for the XML Validator system.

This module provides the ConfigManager class that loads the validation
configuration file and resolves the database connection settings, with
environment variable support.

Supported configuration files:
- .properties (legacy key/value format)
    document.key.xpath / document.key.view / document.key.column
    xmlns.<prefix>=<uri>
    sql.validation.<name>.xpath and sql.validation.<name>.query
    view.<VIEW>.<Column>.xpath=<xpath>
    view.<VIEW>.<Column>.paths=<rank>,<xpath1>,<xpath2>,...
    view.<VIEW>.<Column>.standalone.paths=0,<xpath1>,<xpath2>,...
    db.url / db.username / db.password
- .json / .yaml / .yml (contract format)
    document_key, namespaces, mappings, sql_validations, multi_path_fields, database
"""

import os
import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Any, Optional, Tuple, Union
from dataclasses import dataclass

import yaml

from .processing_defaults import ValidationDefaults
from .validation_config import ValidationConfig
from ..exceptions import ConfigurationError
from ..models import (
    CustomQueryMapping,
    DocumentKeyRule,
    FieldMapping,
    GroupKind,
    MultiPathGroup,
    NamespaceBinding,
)
from ..utils import StringUtils


# view.<VIEW>.<Column>.<suffix>; column names may contain dots
VIEW_KEY_PATTERN = re.compile(r'^view\.([^.]+)\.(.+?)\.(standalone\.paths|paths|xpath)$')
SQL_VALIDATION_PATTERN = re.compile(r'^sql\.validation\.(.+)\.xpath$')
PROPERTIES_ESCAPE_PATTERN = re.compile(r'\\(u[0-9a-fA-F]{4}|.)')
PROPERTIES_LINE_PATTERN = re.compile(r'^((?:\\.|[^=:\s\\])+)\s*[=:\s]?\s*(.*)$')

PROPERTIES_SUFFIXES = ('.properties',)


@dataclass
class DatabaseConfig:
    """Database configuration with environment variable support."""
    connection_string: str
    username: Optional[str] = None
    password: Optional[str] = None
    connection_timeout: int = ValidationDefaults.CONNECTION_TIMEOUT
    server: Optional[str] = None
    database: Optional[str] = None

    @property
    def effective_connection_string(self) -> str:
        """Connection string with UID/PWD appended when credentials are configured separately."""
        connection_string = self.connection_string
        if self.username and 'uid=' not in connection_string.lower():
            if connection_string and not connection_string.endswith(';'):
                connection_string += ';'
            connection_string += f"UID={self.username};PWD={self.password or ''};"
        return connection_string

    @classmethod
    def from_environment(cls, file_settings: Optional[Dict[str, Any]] = None) -> 'DatabaseConfig':
        """
        Create database configuration from environment variables and file settings.

        Precedence:
        1. XML_VALIDATOR_CONNECTION_STRING
        2. connection_string from the configuration file (db.url)
        3. Connection string built from XML_VALIDATOR_DB_* components

        Args:
            file_settings: Database settings read from the configuration file
                (connection_string, username, password, connection_timeout)
        """
        file_settings = file_settings or {}

        username = os.environ.get('XML_VALIDATOR_DB_USERNAME', file_settings.get('username'))
        password = os.environ.get('XML_VALIDATOR_DB_PASSWORD', file_settings.get('password'))
        try:
            connection_timeout = int(os.environ.get(
                'XML_VALIDATOR_DB_CONNECTION_TIMEOUT',
                file_settings.get('connection_timeout') or ValidationDefaults.CONNECTION_TIMEOUT
            ))
        except ValueError as e:
            raise ConfigurationError(f"Invalid database connection timeout: {e}") from e

        connection_string = os.environ.get('XML_VALIDATOR_CONNECTION_STRING') or file_settings.get('connection_string')
        if connection_string:
            return cls(
                connection_string=connection_string,
                username=username,
                password=password,
                connection_timeout=connection_timeout
            )

        # Build connection string from individual components
        server = os.environ.get('XML_VALIDATOR_DB_SERVER')
        database = os.environ.get('XML_VALIDATOR_DB_DATABASE')
        if not server:
            return cls(connection_string="", username=username, password=password,
                       connection_timeout=connection_timeout)

        driver = os.environ.get('XML_VALIDATOR_DB_DRIVER', ValidationDefaults.DB_DRIVER)
        trusted_connection = os.environ.get('XML_VALIDATOR_DB_TRUSTED_CONNECTION', 'false').lower() == 'true'

        connection_string = (
            f"DRIVER={{{driver}}};"
            f"SERVER={server};"
        )
        if database:
            connection_string += f"DATABASE={database};"
        if trusted_connection:
            connection_string += "Trusted_Connection=yes;"
        connection_string += "TrustServerCertificate=yes;"

        return cls(
            connection_string=connection_string,
            username=None if trusted_connection else username,
            password=None if trusted_connection else password,
            connection_timeout=connection_timeout,
            server=server,
            database=database
        )


class ConfigManager:
    """
    Configuration manager for one validation run.

    Reads the configuration file once and serves:
    - the typed ValidationConfig (mapping rules)
    - the DatabaseConfig (connection settings)
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file. If None, uses XML_VALIDATOR_CONFIG_PATH
                or configs.properties in the current working directory.
        """
        self.logger = logging.getLogger(__name__)

        if config_path is None:
            config_path = os.environ.get('XML_VALIDATOR_CONFIG_PATH', Path.cwd() / ValidationDefaults.CONFIG_FILE)
        self.config_path = Path(config_path)

        # Cache for loaded configurations
        self._raw_settings: Optional[Tuple[str, Dict[str, Any]]] = None
        self._validation_config: Optional[ValidationConfig] = None
        self._database_config: Optional[DatabaseConfig] = None

        self.logger.info(f"ConfigManager initialized with config file: {self.config_path}")

    def load_validation_config(self) -> ValidationConfig:
        """
        Load the mapping rules with caching.

        Returns:
            Loaded and validated ValidationConfig

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        if self._validation_config is not None:
            self.logger.debug(f"Returning cached validation config for {self.config_path}")
            return self._validation_config

        file_format, settings = self._load_raw_settings()
        if file_format == 'properties':
            config = self._parse_properties_config(settings)
        else:
            config = self._parse_contract_config(settings)

        self._validation_config = config
        self.logger.info(
            f"Loaded validation config from {self.config_path}: {len(config.mappings)} mappings, "
            f"{len(config.custom_queries)} SQL validations, "
            f"{len(config.priority_groups())} priority groups, {len(config.standalone_groups())} standalone groups"
        )
        return config

    def get_database_config(self) -> DatabaseConfig:
        """
        Get database connection settings.

        Raises:
            ConfigurationError: If no connection string can be resolved
        """
        if self._database_config is not None:
            return self._database_config

        file_format, settings = self._load_raw_settings()
        if file_format == 'properties':
            file_settings = {
                'connection_string': settings.get('db.url'),
                'username': settings.get('db.username'),
                'password': settings.get('db.password'),
                'connection_timeout': settings.get('db.connection.timeout'),
            }
        else:
            file_settings = settings.get('database') or {}
            if not isinstance(file_settings, dict):
                raise ConfigurationError("'database' section must be a mapping")

        database_config = DatabaseConfig.from_environment(file_settings)
        if not database_config.connection_string:
            raise ConfigurationError(
                "No database connection configured. Set db.url in the configuration file, "
                "XML_VALIDATOR_CONNECTION_STRING or XML_VALIDATOR_DB_SERVER."
            )

        self._database_config = database_config
        return database_config

    def get_configuration_summary(self) -> Dict[str, Any]:
        """
        Get a summary of all configuration settings.

        Returns:
            Dictionary containing configuration summary (no credentials)
        """
        config = self.load_validation_config()
        database_config = self.get_database_config()
        return {
            'config_file': str(self.config_path),
            'document_key': {
                'xml_path': config.document_key.xml_path,
                'view': config.document_key.view_name,
                'column': config.document_key.column_name,
            },
            'validations': {
                'mappings': len(config.mappings),
                'sql_validations': len(config.custom_queries),
                'priority_groups': len(config.priority_groups()),
                'standalone_groups': len(config.standalone_groups()),
                'namespaces': sorted(config.namespaces),
            },
            'database': {
                'server': database_config.server,
                'database': database_config.database,
                'username': database_config.username,
                'connection_timeout': database_config.connection_timeout,
            },
        }

    def clear_cache(self) -> None:
        """Clear all cached configurations."""
        self._raw_settings = None
        self._validation_config = None
        self._database_config = None

        self.logger.info("Configuration cache cleared")

    def _load_raw_settings(self) -> Tuple[str, Dict[str, Any]]:
        """Read the configuration file once, returning its format and raw content."""
        if self._raw_settings is not None:
            return self._raw_settings

        full_path = self.config_path
        if not full_path.exists():
            raise ConfigurationError(f"Configuration file not found: {full_path}")

        suffix = full_path.suffix.lower()
        try:
            with open(full_path, 'r', encoding='utf-8') as file:
                if suffix in PROPERTIES_SUFFIXES:
                    raw = ('properties', self._parse_properties(file.read()))
                elif suffix in ['.yaml', '.yml']:
                    raw = ('contract', yaml.safe_load(file) or {})
                elif suffix == '.json':
                    raw = ('contract', json.load(file))
                else:
                    raise ConfigurationError(f"Unsupported file format: {full_path.suffix}")
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to parse configuration file {full_path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration file {full_path}: {e}") from e

        if not isinstance(raw[1], dict):
            raise ConfigurationError(f"Configuration file {full_path} must contain a mapping at the top level")

        self._raw_settings = raw
        return raw

    @staticmethod
    def _parse_properties(content: str) -> Dict[str, str]:
        """
        Parse .properties content into an ordered key/value dictionary.

        Supports '#' and '!' comments, '=' / ':' / whitespace separators,
        backslash line continuations and backslash escapes (including \\uXXXX).
        """
        properties: Dict[str, str] = {}
        logical_line = ""

        for raw_line in content.splitlines():
            line = raw_line.lstrip() if logical_line else raw_line.strip()
            if not logical_line and (not line or line[0] in '#!'):
                continue

            trailing_backslashes = len(line) - len(line.rstrip('\\'))
            if trailing_backslashes % 2 == 1:
                logical_line += line[:-1]
                continue

            logical_line += line
            match = PROPERTIES_LINE_PATTERN.match(logical_line)
            logical_line = ""
            if not match:
                continue
            key = ConfigManager._unescape(match.group(1))
            properties[key] = ConfigManager._unescape(match.group(2).rstrip())

        if logical_line:
            match = PROPERTIES_LINE_PATTERN.match(logical_line)
            if match:
                properties[ConfigManager._unescape(match.group(1))] = ConfigManager._unescape(match.group(2).rstrip())

        return properties

    @staticmethod
    def _unescape(value: str) -> str:
        def replace(match):
            escaped = match.group(1)
            if escaped.startswith('u') and len(escaped) == 5:
                return chr(int(escaped[1:], 16))
            return {'t': '\t', 'n': '\n', 'r': '\r', 'f': '\f'}.get(escaped, escaped)
        return PROPERTIES_ESCAPE_PATTERN.sub(replace, value)

    def _parse_properties_config(self, properties: Dict[str, str]) -> ValidationConfig:
        """
        Resolve raw property keys into a typed ValidationConfig.

        Raises:
            ConfigurationError: If any rule is malformed
        """
        document_key = DocumentKeyRule(
            xml_path=properties.get('document.key.xpath', ''),
            view_name=properties.get('document.key.view', ''),
            column_name=properties.get('document.key.column', '')
        )

        namespaces = [
            NamespaceBinding(prefix=key[len('xmlns.'):], uri=value)
            for key, value in properties.items()
            if key.startswith('xmlns.')
        ]

        mappings: List[FieldMapping] = []
        custom_queries: List[CustomQueryMapping] = []
        groups: List[MultiPathGroup] = []

        try:
            for key, value in properties.items():
                sql_match = SQL_VALIDATION_PATTERN.match(key)
                if sql_match:
                    name = sql_match.group(1)
                    query = properties.get(f"sql.validation.{name}.query")
                    if not value or not query:
                        self.logger.warning(f"Incomplete SQL validation '{name}' ignored (xpath and query are both required)")
                        continue
                    custom_queries.append(CustomQueryMapping(xml_path=value, query=query, name=name))
                    continue

                view_match = VIEW_KEY_PATTERN.match(key)
                if not view_match:
                    continue

                view_name, column_name, suffix = view_match.groups()
                if suffix == 'xpath':
                    mappings.append(FieldMapping(xml_path=value, view_name=view_name, column_name=column_name))
                elif suffix == 'paths':
                    rank, xml_paths = self._parse_group_paths(key, value, priority=True)
                    groups.append(MultiPathGroup(view_name=view_name, column_name=column_name,
                                                 kind=GroupKind.PRIORITY, xml_paths=xml_paths, rank=rank))
                else:
                    _, xml_paths = self._parse_group_paths(key, value, priority=False)
                    groups.append(MultiPathGroup(view_name=view_name, column_name=column_name,
                                                 kind=GroupKind.STANDALONE, xml_paths=xml_paths))
        except ValueError as e:
            raise ConfigurationError(f"Invalid validation rule in {self.config_path}: {e}") from e

        return ValidationConfig(
            document_key=document_key,
            mappings=mappings,
            custom_queries=custom_queries,
            multi_path_groups=groups,
            namespaces=namespaces
        )

    @staticmethod
    def _parse_group_paths(key: str, value: str, priority: bool) -> Tuple[Optional[int], Tuple[str, ...]]:
        """
        Split a '<rank>,<xpath1>,<xpath2>,...' value.

        For standalone groups the leading rank is a placeholder and is dropped
        when present.
        """
        items = StringUtils.split_list(value)
        rank = None
        if items and re.fullmatch(r'[+-]?\d+', items[0]):
            rank = int(items.pop(0))
        elif priority:
            raise ConfigurationError(f"{key}: priority paths must start with an integer rank")

        if not items:
            raise ConfigurationError(f"{key}: no XPath expressions configured")

        return (rank if priority else None), tuple(items)

    @staticmethod
    def _contract_text(data: Dict[str, Any], key: str) -> str:
        """Read a scalar contract value as text; YAML may hand back numbers."""
        value = data.get(key)
        return '' if value is None else str(value)

    @staticmethod
    def _contract_paths(group_data: Dict[str, Any]) -> Tuple[str, ...]:
        """Read a multi-path group's xml_paths, accepting a single XPath string."""
        paths = group_data.get('xml_paths') or []
        if isinstance(paths, str):
            paths = [paths]
        if not isinstance(paths, list):
            raise ValueError(f"xml_paths must be a list of XPath expressions, got {type(paths).__name__}")
        return tuple(str(path) for path in paths)

    def _parse_contract_config(self, contract_data: Dict[str, Any]) -> ValidationConfig:
        """
        Parse JSON/YAML contract data into a ValidationConfig.

        Raises:
            ConfigurationError: If contract structure is invalid
        """
        try:
            key_data = contract_data.get('document_key') or {}
            document_key = DocumentKeyRule(
                xml_path=self._contract_text(key_data, 'xml_path'),
                view_name=self._contract_text(key_data, 'view'),
                column_name=self._contract_text(key_data, 'column')
            )

            namespaces = [
                NamespaceBinding(prefix=prefix, uri=uri)
                for prefix, uri in (contract_data.get('namespaces') or {}).items()
            ]

            mappings = [
                FieldMapping(
                    xml_path=self._contract_text(mapping_data, 'xml_path'),
                    view_name=self._contract_text(mapping_data, 'view'),
                    column_name=self._contract_text(mapping_data, 'column')
                )
                for mapping_data in contract_data.get('mappings') or []
            ]

            custom_queries = [
                CustomQueryMapping(
                    xml_path=self._contract_text(query_data, 'xml_path'),
                    query=self._contract_text(query_data, 'query'),
                    name=query_data.get('name')
                )
                for query_data in contract_data.get('sql_validations') or []
            ]

            groups = []
            for group_data in contract_data.get('multi_path_fields') or []:
                standalone = bool(group_data.get('standalone', False))
                rank = group_data.get('priority')
                if not standalone and rank is None:
                    raise ValueError(
                        f"multi_path_fields entry for {group_data.get('view')}.{group_data.get('column')} "
                        f"needs either 'priority' or 'standalone: true'"
                    )
                groups.append(MultiPathGroup(
                    view_name=self._contract_text(group_data, 'view'),
                    column_name=self._contract_text(group_data, 'column'),
                    kind=GroupKind.STANDALONE if standalone else GroupKind.PRIORITY,
                    xml_paths=self._contract_paths(group_data),
                    rank=None if standalone else int(rank)
                ))
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Failed to parse validation contract {self.config_path}: {e}") from e

        return ValidationConfig(
            document_key=document_key,
            mappings=mappings,
            custom_queries=custom_queries,
            multi_path_groups=groups,
            namespaces=namespaces
        )
