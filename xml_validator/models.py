"""
Core data models for the XML Validator system.

This module defines the immutable mapping rule records produced from the
validation configuration, plus the result records produced by a validation run.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from enum import Enum


# Document value written for a location that exists but has no text.
EMPTY_TAG = "empty tag"


class GroupKind(Enum):
    """Kinds of multi-path field groups."""
    PRIORITY = "priority"
    STANDALONE = "standalone"


@dataclass(frozen=True)
class DocumentKeyRule:
    """
    Defines how the document key is located and where it is stored.

    Attributes:
        xml_path: XPath expression locating the document key in the XML
        view_name: View holding the document key (the primary view)
        column_name: Column holding the document key in every view
    """
    xml_path: str
    view_name: str
    column_name: str

    @property
    def is_complete(self) -> bool:
        return all(value and value.strip() for value in (self.xml_path, self.view_name, self.column_name))


@dataclass(frozen=True)
class FieldMapping:
    """
    Maps one XML location to one database view column.

    Attributes:
        xml_path: XPath expression to locate the XML element
        view_name: Name of the database view holding the authoritative value
        column_name: Name of the column in the view
    """
    xml_path: str
    view_name: str
    column_name: str

    def __post_init__(self):
        """Validate field mapping configuration."""
        if not self.xml_path:
            raise ValueError("xml_path cannot be empty")
        if not self.view_name:
            raise ValueError("view_name cannot be empty")
        if not self.column_name:
            raise ValueError("column_name cannot be empty")


@dataclass(frozen=True)
class CustomQueryMapping:
    """
    Custom SQL validation for one XML location.

    The query is executed verbatim with two positional parameters: the value
    extracted from the XML and the document key, in that order.

    Attributes:
        xml_path: XPath expression to locate the XML element
        query: Parameterized SQL template
        name: Label of the validation in the configuration file
    """
    xml_path: str
    query: str
    name: Optional[str] = None

    def __post_init__(self):
        """Validate custom query configuration."""
        if not self.xml_path:
            raise ValueError("xml_path cannot be empty")
        if not self.query:
            raise ValueError("query cannot be empty")


@dataclass(frozen=True)
class MultiPathGroup:
    """
    One logical field that can appear at several locations in the XML.

    Priority groups carry a rank; lower ranks are resolved first. Standalone
    groups have no rank and are always resolved.

    Attributes:
        view_name: View holding the authoritative value
        column_name: Column holding the authoritative value
        kind: Priority or standalone
        xml_paths: Alternative XPath expressions, in configuration order
        rank: Resolution order among priority groups
    """
    view_name: str
    column_name: str
    kind: GroupKind
    xml_paths: Tuple[str, ...]
    rank: Optional[int] = None

    def __post_init__(self):
        """Validate multi-path group configuration."""
        if not self.view_name:
            raise ValueError("view_name cannot be empty")
        if not self.column_name:
            raise ValueError("column_name cannot be empty")
        if not self.xml_paths:
            raise ValueError("At least one xml_path must be specified")
        if self.kind == GroupKind.PRIORITY and self.rank is None:
            raise ValueError("Priority groups require a rank")
        if self.kind == GroupKind.STANDALONE and self.rank is not None:
            raise ValueError("Standalone groups cannot have a rank")

    @property
    def is_priority(self) -> bool:
        return self.kind == GroupKind.PRIORITY

    @property
    def slot(self) -> Tuple[str, str]:
        """The (view, column) pair this group validates."""
        return (self.view_name, self.column_name)


@dataclass(frozen=True)
class NamespaceBinding:
    """XML namespace prefix bound for every XPath evaluation."""
    prefix: str
    uri: str


@dataclass(frozen=True)
class LookupOutcome:
    """
    Result of comparing one document value with the database.

    Attributes:
        matched: Whether the values are considered equal
        stored_value: Value found in the database, None when absent
    """
    matched: bool
    stored_value: Optional[str] = None


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating one mapping.

    Attributes:
        xml_path: Locator, or comma-joined locators for multi-path fields
        view_name: View the value was compared against
        column_name: Column the value was compared against
        matched: Whether document and database agree
        document_value: Value extracted from the XML ("empty tag" for blank elements)
        stored_value: Value found in the database, None when absent
    """
    xml_path: str
    view_name: str
    column_name: str
    matched: bool
    document_value: str
    stored_value: Optional[str] = None


@dataclass
class ValidationSummary:
    """
    Results from validating one document.

    Attributes:
        document_key: Key of the validated document
        results: Ordered validation results
        successful: Number of matched results
        failed: Number of unmatched results
        report_file: Identifier of the written report, once written
    """
    document_key: Optional[str] = None
    results: List[ValidationResult] = field(default_factory=list)
    successful: int = 0
    failed: int = 0
    report_file: Optional[str] = None

    def add_result(self, result: ValidationResult) -> None:
        """Append a result and update the running counts."""
        self.results.append(result)
        if result.matched:
            self.successful += 1
        else:
            self.failed += 1

    @property
    def total(self) -> int:
        return self.successful + self.failed

    @property
    def success_rate(self) -> float:
        """Calculate the success rate as a percentage."""
        if self.total == 0:
            return 0.0
        return (self.successful / self.total) * 100
