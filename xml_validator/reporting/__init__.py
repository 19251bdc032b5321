"""Validation report writers."""

from .report_writer import CSVReportWriter, JSONReportWriter, create_report_writer

__all__ = ['CSVReportWriter', 'JSONReportWriter', 'create_report_writer']
