"""
Shared fixtures for the XML validator test suite.

FakeDataAccess stands in for DatabaseConnector: view rows are plain
dictionaries and custom query results are looked up by query text, so engine
tests run without a database.
"""

import os
import sys

from typing import Dict, List, Optional, Tuple

import pytest

base_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if base_dir not in sys.path:
    sys.path.insert(0, base_dir)

from xml_validator.interfaces import DataAccessInterface
from xml_validator.models import LookupOutcome
from xml_validator.validation.comparison import approximately_equals, values_match


class FakeDataAccess(DataAccessInterface):
    """In-memory data access with call recording."""

    def __init__(self,
                 views: Optional[Dict[str, Dict[str, Optional[str]]]] = None,
                 known_keys: Tuple[str, ...] = ('INV-1001',),
                 custom_results: Optional[Dict[str, Optional[str]]] = None):
        self.views = views or {}
        self.known_keys = known_keys
        self.custom_results = custom_results or {}
        self.lookups: List[Tuple[str, str, str]] = []
        self.probes: List[Tuple[str, str]] = []
        self.custom_queries: List[Tuple[str, str, str]] = []

    def confirm_document_key(self, view_name, document_key):
        return document_key in self.known_keys

    def lookup_column(self, view_name, column_name, document_value, document_key):
        self.lookups.append((view_name, column_name, document_value))
        stored = self.views.get(view_name, {}).get(column_name)
        return LookupOutcome(values_match(document_value, stored), stored)

    def column_has_non_empty_value(self, view_name, column_name, document_key):
        self.probes.append((view_name, column_name))
        value = self.views.get(view_name, {}).get(column_name)
        return value is not None and value.strip() != ''

    def run_custom_query(self, query, document_key, document_value):
        self.custom_queries.append((query, document_key, document_value))
        stored = self.custom_results.get(query)
        if stored is None:
            return LookupOutcome(False, None)
        return LookupOutcome(approximately_equals(document_value, stored), stored)


@pytest.fixture
def fake_data_access_class():
    """The FakeDataAccess class, for tests that build their own view data."""
    return FakeDataAccess


@pytest.fixture
def invoice_xml():
    """Small namespaced invoice used across the suite."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<inv:Invoice xmlns:inv="urn:test:invoice">
  <inv:Header>
    <inv:Number>INV-1001</inv:Number>
    <inv:Currency>USD</inv:Currency>
    <inv:Buyer></inv:Buyer>
  </inv:Header>
  <inv:Item>
    <inv:Qty>5</inv:Qty>
    <inv:Amount>100.00</inv:Amount>
  </inv:Item>
</inv:Invoice>"""
