"""XML document loading and XPath evaluation."""

from .xml_document import XMLDocumentLoader, XPathDocumentQuery

__all__ = ['XMLDocumentLoader', 'XPathDocumentQuery']
