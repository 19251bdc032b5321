"""
Typed, read-only validation configuration.

ValidationConfig holds every mapping rule for a run: the document key rule,
namespace bindings, simple field mappings, custom SQL validations and
multi-path field groups. It is built once by the ConfigManager and never
modified afterwards.
"""

import logging

from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from ..exceptions import ConfigurationError
from ..models import (
    CustomQueryMapping,
    DocumentKeyRule,
    FieldMapping,
    GroupKind,
    MultiPathGroup,
    NamespaceBinding,
)


class ValidationConfig:
    """
    Immutable set of mapping rules for validating one XML document.

    The document key column is excluded from the simple field mappings of every
    view, since the key is validated separately before any field.
    """

    def __init__(self,
                 document_key: Optional[DocumentKeyRule],
                 mappings: Iterable[FieldMapping] = (),
                 custom_queries: Iterable[CustomQueryMapping] = (),
                 multi_path_groups: Iterable[MultiPathGroup] = (),
                 namespaces: Iterable[NamespaceBinding] = ()):
        """
        Build the validation configuration.

        Args:
            document_key: Document key rule (required)
            mappings: Simple XML-to-column mappings
            custom_queries: Custom SQL validations; the last one wins for a repeated XPath
            multi_path_groups: Priority and standalone multi-path groups
            namespaces: Namespace prefixes used by the XPath expressions

        Raises:
            ConfigurationError: If the document key rule is missing or incomplete,
                or a multi-path group is defined twice for the same column and kind
        """
        self.logger = logging.getLogger(__name__)

        if document_key is None or not document_key.is_complete:
            raise ConfigurationError("Document key configuration is incomplete.")
        self._document_key = document_key

        key_column = document_key.column_name
        self._mappings: Tuple[FieldMapping, ...] = tuple(
            mapping for mapping in mappings if mapping.column_name != key_column
        )

        custom_query_index: Dict[str, CustomQueryMapping] = {}
        for custom_query in custom_queries:
            custom_query_index[custom_query.xml_path] = custom_query
        self._custom_queries = MappingProxyType(custom_query_index)

        group_index: Dict[Tuple[str, str, GroupKind], MultiPathGroup] = {}
        for group in multi_path_groups:
            group_key = (group.view_name, group.column_name, group.kind)
            if group_key in group_index:
                raise ConfigurationError(
                    f"Duplicate {group.kind.value} paths for {group.view_name}.{group.column_name}"
                )
            group_index[group_key] = group
        self._groups = MappingProxyType(group_index)

        self._namespaces = MappingProxyType({binding.prefix: binding.uri for binding in namespaces})

        self.logger.debug(
            f"ValidationConfig built: {len(self._mappings)} mappings, "
            f"{len(self._custom_queries)} SQL validations, {len(self._groups)} multi-path groups"
        )

    @property
    def document_key(self) -> DocumentKeyRule:
        return self._document_key

    @property
    def mappings(self) -> Tuple[FieldMapping, ...]:
        """Simple field mappings, document key column excluded."""
        return self._mappings

    @property
    def custom_queries(self) -> Mapping[str, CustomQueryMapping]:
        """Custom SQL validations indexed by XPath."""
        return self._custom_queries

    @property
    def namespaces(self) -> Mapping[str, str]:
        """Namespace URIs indexed by prefix."""
        return self._namespaces

    def get_custom_query(self, xml_path: str) -> Optional[CustomQueryMapping]:
        """Return the custom SQL validation configured for an XPath, if any."""
        return self._custom_queries.get(xml_path)

    def get_group(self, view_name: str, column_name: str,
                  kind: GroupKind = GroupKind.PRIORITY) -> Optional[MultiPathGroup]:
        """Return the multi-path group of the given kind for a view column, if any."""
        return self._groups.get((view_name, column_name, kind))

    def priority_groups(self) -> Tuple[MultiPathGroup, ...]:
        """Priority groups in ascending rank order (configuration order on ties)."""
        groups = [group for group in self._groups.values() if group.kind == GroupKind.PRIORITY]
        return tuple(sorted(groups, key=lambda group: group.rank))

    def standalone_groups(self) -> Tuple[MultiPathGroup, ...]:
        """Standalone groups in configuration order."""
        return tuple(group for group in self._groups.values() if group.kind == GroupKind.STANDALONE)

    def __repr__(self) -> str:
        return (
            f"ValidationConfig(document_key={self._document_key!r}, mappings={len(self._mappings)}, "
            f"custom_queries={len(self._custom_queries)}, groups={len(self._groups)})"
        )
