"""
Tests for the ConfigManager.

This module tests loading of the .properties, JSON and YAML configuration
formats into a ValidationConfig, and resolution of the database settings from
the configuration file and environment variables.
"""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from xml_validator.config.config_manager import ConfigManager, DatabaseConfig
from xml_validator.exceptions import ConfigurationError
from xml_validator.models import GroupKind


DB_ENV_VARS = [
    'XML_VALIDATOR_CONFIG_PATH',
    'XML_VALIDATOR_CONNECTION_STRING',
    'XML_VALIDATOR_DB_SERVER',
    'XML_VALIDATOR_DB_DATABASE',
    'XML_VALIDATOR_DB_DRIVER',
    'XML_VALIDATOR_DB_TRUSTED_CONNECTION',
    'XML_VALIDATOR_DB_USERNAME',
    'XML_VALIDATOR_DB_PASSWORD',
    'XML_VALIDATOR_DB_CONNECTION_TIMEOUT',
]

SAMPLE_PROPERTIES = """
# Invoice validation
! legacy comment style
db.url=DRIVER={ODBC Driver 17 for SQL Server};SERVER=db01\\\\SQLEXPRESS;DATABASE=Invoicing;
db.username=validator
db.password=secret

xmlns.inv=urn:test:invoice

document.key.xpath=/inv:Invoice/inv:Header/inv:Number
document.key.view=V_INVOICE_HEADER
document.key.column=INV_NO

view.V_INVOICE_LINES.QTY.xpath=/inv:Invoice/inv:Item/inv:Qty
view.V_INVOICE_LINES.INV_NO.xpath=/inv:Invoice/inv:Header/inv:Number
view.V_INVOICE_HEADER.Tax.Rate.xpath : /inv:Invoice/inv:Header/inv:TaxRate
view.V_INVOICE_HEADER.TaxCurrencyCode.paths=1,/inv:Invoice/inv:TaxCurrency, /inv:Invoice/inv:Tax/@currency
view.V_INVOICE_HEADER.DocumentCurrencyCode.paths=2,/inv:Invoice/inv:Header/inv:Currency
view.V_INVOICE_HEADER.DocumentCurrencyCode.standalone.paths=0,/inv:Invoice/inv:Header/inv:Currency

sql.validation.total.xpath=/inv:Invoice/inv:Item/inv:Amount
sql.validation.total.query=SELECT SUM(AMOUNT) \\
    FROM V_INVOICE_LINES WHERE ? IS NOT NULL AND INV_NO = ?
"""


class ConfigFileTestCase(unittest.TestCase):
    """Base class writing configuration files into a temporary directory."""

    def setUp(self):
        """Set up test environment."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.env_patcher = patch.dict(os.environ, {}, clear=False)
        self.env_patcher.start()
        for var in DB_ENV_VARS:
            os.environ.pop(var, None)

    def tearDown(self):
        """Clean up test environment."""
        self.env_patcher.stop()
        self.temp_dir.cleanup()

    def write_config(self, name: str, content: str) -> Path:
        path = Path(self.temp_dir.name) / name
        path.write_text(content, encoding='utf-8')
        return path


class TestPropertiesConfig(ConfigFileTestCase):
    """Test the legacy .properties format."""

    def setUp(self):
        super().setUp()
        self.manager = ConfigManager(self.write_config('configs.properties', SAMPLE_PROPERTIES))
        self.config = self.manager.load_validation_config()

    def test_document_key(self):
        self.assertEqual(self.config.document_key.xml_path, '/inv:Invoice/inv:Header/inv:Number')
        self.assertEqual(self.config.document_key.view_name, 'V_INVOICE_HEADER')
        self.assertEqual(self.config.document_key.column_name, 'INV_NO')

    def test_namespaces(self):
        self.assertEqual(dict(self.config.namespaces), {'inv': 'urn:test:invoice'})

    def test_simple_mappings_exclude_document_key_column(self):
        columns = [(mapping.view_name, mapping.column_name) for mapping in self.config.mappings]
        self.assertEqual(columns, [('V_INVOICE_LINES', 'QTY'), ('V_INVOICE_HEADER', 'Tax.Rate')])

    def test_priority_groups(self):
        groups = self.config.priority_groups()
        self.assertEqual([group.column_name for group in groups], ['TaxCurrencyCode', 'DocumentCurrencyCode'])
        self.assertEqual(groups[0].rank, 1)
        self.assertEqual(groups[0].xml_paths, ('/inv:Invoice/inv:TaxCurrency', '/inv:Invoice/inv:Tax/@currency'))

    def test_standalone_group_drops_rank_placeholder(self):
        group = self.config.get_group('V_INVOICE_HEADER', 'DocumentCurrencyCode', GroupKind.STANDALONE)
        self.assertIsNotNone(group)
        self.assertIsNone(group.rank)
        self.assertEqual(group.xml_paths, ('/inv:Invoice/inv:Header/inv:Currency',))

    def test_custom_query_with_line_continuation(self):
        custom_query = self.config.get_custom_query('/inv:Invoice/inv:Item/inv:Amount')
        self.assertIsNotNone(custom_query)
        self.assertEqual(custom_query.name, 'total')
        self.assertEqual(
            custom_query.query,
            'SELECT SUM(AMOUNT) FROM V_INVOICE_LINES WHERE ? IS NOT NULL AND INV_NO = ?'
        )

    def test_database_config(self):
        database_config = self.manager.get_database_config()
        self.assertIn('SERVER=db01\\SQLEXPRESS', database_config.connection_string)
        self.assertEqual(database_config.username, 'validator')
        self.assertTrue(database_config.effective_connection_string.endswith('UID=validator;PWD=secret;'))

    def test_validation_config_is_cached(self):
        self.assertIs(self.manager.load_validation_config(), self.config)

    def test_clear_cache(self):
        self.manager.clear_cache()
        self.assertIsNot(self.manager.load_validation_config(), self.config)

    def test_configuration_summary_has_no_password(self):
        summary = self.manager.get_configuration_summary()
        self.assertEqual(summary['validations']['sql_validations'], 1)
        self.assertEqual(summary['validations']['priority_groups'], 2)
        self.assertNotIn('secret', json.dumps(summary))


class TestPropertiesErrors(ConfigFileTestCase):
    """Test malformed .properties configurations."""

    KEY_RULES = (
        "document.key.xpath=/Invoice/Number\n"
        "document.key.view=V_INVOICE_HEADER\n"
        "document.key.column=INV_NO\n"
    )

    def load(self, content: str):
        return ConfigManager(self.write_config('configs.properties', content)).load_validation_config()

    def test_missing_document_key(self):
        with self.assertRaises(ConfigurationError):
            self.load("view.V.QTY.xpath=/Invoice/Qty\n")

    def test_non_integer_rank(self):
        with self.assertRaises(ConfigurationError):
            self.load(self.KEY_RULES + "view.V.Currency.paths=first,/a,/b\n")

    def test_empty_path_list(self):
        with self.assertRaises(ConfigurationError):
            self.load(self.KEY_RULES + "view.V.Currency.paths=1\n")

    def test_empty_mapping_xpath(self):
        with self.assertRaises(ConfigurationError):
            self.load(self.KEY_RULES + "view.V.QTY.xpath=\n")

    def test_incomplete_sql_validation_is_ignored(self):
        config = self.load(self.KEY_RULES + "sql.validation.total.xpath=/Invoice/Total\n")
        self.assertEqual(len(config.custom_queries), 0)

    def test_missing_file(self):
        manager = ConfigManager(Path(self.temp_dir.name) / 'missing.properties')
        with self.assertRaises(ConfigurationError):
            manager.load_validation_config()

    def test_unsupported_suffix(self):
        manager = ConfigManager(self.write_config('configs.ini', self.KEY_RULES))
        with self.assertRaises(ConfigurationError):
            manager.load_validation_config()

    def test_missing_connection(self):
        manager = ConfigManager(self.write_config('configs.properties', self.KEY_RULES))
        with self.assertRaises(ConfigurationError):
            manager.get_database_config()


class TestContractConfig(ConfigFileTestCase):
    """Test the JSON and YAML contract formats."""

    CONTRACT = {
        'database': {'connection_string': 'DSN=invoicing', 'connection_timeout': 15},
        'namespaces': {'inv': 'urn:test:invoice'},
        'document_key': {'xml_path': '/inv:Invoice/inv:Number', 'view': 'V_INVOICE_HEADER', 'column': 'INV_NO'},
        'mappings': [
            {'xml_path': '/inv:Invoice/inv:Item/inv:Qty', 'view': 'V_INVOICE_LINES', 'column': 'QTY'},
        ],
        'sql_validations': [
            {'name': 'total', 'xml_path': '/inv:Invoice/inv:Total', 'query': 'SELECT ? + 0 WHERE ? IS NOT NULL'},
        ],
        'multi_path_fields': [
            {'view': 'V_INVOICE_HEADER', 'column': 'DocumentCurrencyCode', 'priority': 2,
             'xml_paths': ['/inv:Invoice/inv:Currency']},
            {'view': 'V_INVOICE_HEADER', 'column': 'DocumentCurrencyCode', 'standalone': True,
             'xml_paths': ['/inv:Invoice/inv:Currency']},
        ],
    }

    def test_json_contract(self):
        manager = ConfigManager(self.write_config('contract.json', json.dumps(self.CONTRACT)))
        config = manager.load_validation_config()

        self.assertEqual(config.document_key.column_name, 'INV_NO')
        self.assertEqual(len(config.mappings), 1)
        self.assertEqual(config.get_custom_query('/inv:Invoice/inv:Total').name, 'total')
        self.assertEqual(config.priority_groups()[0].rank, 2)
        self.assertEqual(len(config.standalone_groups()), 1)

        database_config = manager.get_database_config()
        self.assertEqual(database_config.connection_string, 'DSN=invoicing')
        self.assertEqual(database_config.connection_timeout, 15)

    def test_yaml_contract(self):
        content = """
document_key:
  xml_path: /Invoice/Number
  view: V_INVOICE_HEADER
  column: INV_NO
mappings:
  - xml_path: /Invoice/Item/Qty
    view: V_INVOICE_LINES
    column: QTY
"""
        config = ConfigManager(self.write_config('contract.yaml', content)).load_validation_config()
        self.assertEqual(config.mappings[0].column_name, 'QTY')
        self.assertEqual(dict(config.namespaces), {})

    def test_yaml_numeric_values_read_as_text(self):
        content = """
document_key:
  xml_path: /Invoice/Number
  view: V_INVOICE_HEADER
  column: 123
mappings:
  - xml_path: /Invoice/Item/Qty
    view: V_INVOICE_LINES
    column: 42
"""
        config = ConfigManager(self.write_config('contract.yaml', content)).load_validation_config()
        self.assertEqual(config.document_key.column_name, '123')
        self.assertEqual(config.mappings[0].column_name, '42')

    def test_yaml_single_xml_path(self):
        content = """
document_key:
  xml_path: /Invoice/Number
  view: V_INVOICE_HEADER
  column: INV_NO
multi_path_fields:
  - view: V_INVOICE_HEADER
    column: DocumentCurrencyCode
    standalone: true
    xml_paths: //cbc:ID
"""
        config = ConfigManager(self.write_config('contract.yaml', content)).load_validation_config()
        self.assertEqual(config.standalone_groups()[0].xml_paths, ('//cbc:ID',))

    def test_xml_paths_must_be_a_list(self):
        contract = dict(self.CONTRACT, multi_path_fields=[
            {'view': 'V', 'column': 'C', 'standalone': True, 'xml_paths': {'path': '/a'}},
        ])
        manager = ConfigManager(self.write_config('contract.json', json.dumps(contract)))
        with self.assertRaises(ConfigurationError):
            manager.load_validation_config()

    def test_group_without_priority_or_standalone(self):
        contract = dict(self.CONTRACT, multi_path_fields=[
            {'view': 'V', 'column': 'C', 'xml_paths': ['/a']},
        ])
        manager = ConfigManager(self.write_config('contract.json', json.dumps(contract)))
        with self.assertRaises(ConfigurationError):
            manager.load_validation_config()

    def test_invalid_json(self):
        manager = ConfigManager(self.write_config('contract.json', '{"document_key": '))
        with self.assertRaises(ConfigurationError):
            manager.load_validation_config()

    def test_top_level_must_be_mapping(self):
        manager = ConfigManager(self.write_config('contract.yaml', '- just\n- a list\n'))
        with self.assertRaises(ConfigurationError):
            manager.load_validation_config()


class TestDatabaseConfig(ConfigFileTestCase):
    """Test DatabaseConfig resolution from environment and file settings."""

    def test_environment_connection_string_wins(self):
        os.environ['XML_VALIDATOR_CONNECTION_STRING'] = 'DSN=from_env'
        config = DatabaseConfig.from_environment({'connection_string': 'DSN=from_file'})
        self.assertEqual(config.connection_string, 'DSN=from_env')

    def test_file_connection_string(self):
        config = DatabaseConfig.from_environment({'connection_string': 'DSN=from_file', 'connection_timeout': '45'})
        self.assertEqual(config.connection_string, 'DSN=from_file')
        self.assertEqual(config.connection_timeout, 45)

    def test_built_from_components(self):
        os.environ['XML_VALIDATOR_DB_SERVER'] = 'db01'
        os.environ['XML_VALIDATOR_DB_DATABASE'] = 'Invoicing'
        os.environ['XML_VALIDATOR_DB_TRUSTED_CONNECTION'] = 'true'

        config = DatabaseConfig.from_environment()

        self.assertIn('DRIVER={ODBC Driver 17 for SQL Server}', config.connection_string)
        self.assertIn('SERVER=db01;', config.connection_string)
        self.assertIn('DATABASE=Invoicing;', config.connection_string)
        self.assertIn('Trusted_Connection=yes;', config.connection_string)
        self.assertEqual(config.server, 'db01')

    def test_no_connection_configured(self):
        config = DatabaseConfig.from_environment()
        self.assertEqual(config.connection_string, '')
        self.assertEqual(config.connection_timeout, 30)

    def test_environment_credentials_override_file(self):
        os.environ['XML_VALIDATOR_DB_USERNAME'] = 'env_user'
        os.environ['XML_VALIDATOR_DB_PASSWORD'] = 'env_pass'
        config = DatabaseConfig.from_environment(
            {'connection_string': 'DSN=x', 'username': 'file_user', 'password': 'file_pass'}
        )
        self.assertEqual(config.effective_connection_string, 'DSN=x;UID=env_user;PWD=env_pass;')

    def test_existing_uid_is_kept(self):
        config = DatabaseConfig(connection_string='DSN=x;UID=inline;PWD=p;', username='other', password='q')
        self.assertEqual(config.effective_connection_string, 'DSN=x;UID=inline;PWD=p;')

    def test_invalid_timeout(self):
        os.environ['XML_VALIDATOR_DB_CONNECTION_TIMEOUT'] = 'soon'
        with self.assertRaises(ConfigurationError):
            DatabaseConfig.from_environment({'connection_string': 'DSN=x'})

    def test_config_path_from_environment(self):
        path = self.write_config('other.properties', '')
        os.environ['XML_VALIDATOR_CONFIG_PATH'] = str(path)
        self.assertEqual(ConfigManager().config_path, path)


if __name__ == '__main__':
    unittest.main()
