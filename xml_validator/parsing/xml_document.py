"""
XML document loading and namespace-aware XPath evaluation.

This module parses the document to validate with lxml and evaluates the
configured XPath locators against it, returning the text value of every
matching node.
"""

import logging

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from lxml import etree

from ..interfaces import DocumentQueryInterface
from ..exceptions import XMLParsingError, LocatorEvaluationError


class XMLDocumentLoader:
    """
    Loads XML documents into lxml trees.

    The parser is namespace aware (lxml always is) and hardened: external
    entities are not resolved and network access is disabled. Malformed
    documents are rejected rather than recovered, so a validation run never
    works on a partially parsed document.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._parser = etree.XMLParser(
            recover=False,
            strip_cdata=False,  # Preserve CDATA sections
            resolve_entities=False,  # Security: don't resolve external entities
            no_network=True  # Security: disable network access
        )

    def load(self, xml_file: Union[str, Path]) -> etree._ElementTree:
        """
        Parse an XML file.

        Args:
            xml_file: Path to the XML document

        Returns:
            Parsed document tree

        Raises:
            XMLParsingError: If the file is missing or not well-formed
        """
        path = Path(xml_file)
        if not path.is_file():
            raise XMLParsingError(f"XML file does not exist: {path}", str(path))

        try:
            with open(path, 'rb') as file:
                document = etree.parse(file, self._parser)
        except etree.XMLSyntaxError as e:
            self.logger.error(f"Failed to parse XML file {path}: {e}")
            raise XMLParsingError(f"XML syntax error in {path}: {e}", str(path)) from e
        except OSError as e:
            raise XMLParsingError(f"Failed to read XML file {path}: {e}", str(path)) from e

        self.logger.info(f"Parsed XML document {path} (root element: {document.getroot().tag})")
        return document

    def load_string(self, xml_content: Union[str, bytes]) -> etree._ElementTree:
        """
        Parse XML content held in memory.

        Raises:
            XMLParsingError: If the content is empty or not well-formed
        """
        if not xml_content or not xml_content.strip():
            raise XMLParsingError("XML content is empty or None")

        if isinstance(xml_content, str):
            # lxml rejects str input carrying an encoding declaration
            xml_content = xml_content.strip().lstrip('\ufeff').encode('utf-8')

        try:
            root = etree.fromstring(xml_content, self._parser)
        except etree.XMLSyntaxError as e:
            raise XMLParsingError(f"XML syntax error: {e}") from e

        return etree.ElementTree(root)


class XPathDocumentQuery(DocumentQueryInterface):
    """
    Evaluates XPath locators with the configured namespace prefixes.

    Compiled expressions are cached per locator, since the same mapping rules
    are evaluated for every document.

    Result conversion:
    - element nodes give their full text content (all descendant text)
    - attribute and text() results give their string value
    - string, number and boolean expressions (e.g. sum(), count()) give one value
    """

    _string_value = etree.XPath('string()')

    def __init__(self, namespaces: Optional[Mapping[str, str]] = None):
        """
        Initialize the query evaluator.

        Args:
            namespaces: Namespace URIs indexed by prefix. An empty prefix cannot be
                used in XPath 1.0 and is ignored.
        """
        self.logger = logging.getLogger(__name__)
        self.namespaces: Dict[str, str] = {
            prefix: uri for prefix, uri in (namespaces or {}).items() if prefix
        }
        self._compiled: Dict[str, etree.XPath] = {}

        if namespaces and len(self.namespaces) != len(namespaces):
            self.logger.warning("Default (empty prefix) namespace binding ignored for XPath evaluation")

    def evaluate(self, xml_path: str, document: Any) -> List[str]:
        """
        Evaluate an XPath expression against a document.

        Raises:
            LocatorEvaluationError: If the expression is malformed or cannot be evaluated
        """
        expression = self._compile(xml_path)
        try:
            result = expression(document)
        except etree.XPathError as e:
            raise LocatorEvaluationError(f"XPath evaluation failed for {xml_path}: {e}", xml_path) from e

        return self._to_text_values(result)

    def _compile(self, xml_path: str) -> etree.XPath:
        compiled = self._compiled.get(xml_path)
        if compiled is None:
            try:
                compiled = etree.XPath(xml_path, namespaces=self.namespaces)
            except etree.XPathError as e:
                raise LocatorEvaluationError(f"Invalid XPath expression {xml_path}: {e}", xml_path) from e
            self._compiled[xml_path] = compiled
        return compiled

    def _to_text_values(self, result: Any) -> List[str]:
        if isinstance(result, bool):
            return ['true' if result else 'false']
        if isinstance(result, float):
            return [self._format_number(result)]
        if isinstance(result, str):
            return [str(result)]

        values = []
        for item in result:
            if isinstance(item, str):
                values.append(str(item))
            elif isinstance(item, etree._Element) and not isinstance(item.tag, str):
                # Comments and processing instructions
                values.append(item.text or '')
            else:
                values.append(str(self._string_value(item)))
        return values

    @staticmethod
    def _format_number(value: float) -> str:
        """Format an XPath number the way XPath string() does (no trailing .0 for integers)."""
        if value != value:
            return 'NaN'
        if value in (float('inf'), float('-inf')):
            return 'Infinity' if value > 0 else '-Infinity'
        if value.is_integer():
            return str(int(value))
        return repr(value)
