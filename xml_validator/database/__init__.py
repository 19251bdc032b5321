"""Database access for validation lookups."""

from .connector import DatabaseConnector

__all__ = ['DatabaseConnector']
