"""Bulk spreadsheet import and reconciliation for civil-registry records."""

__version__ = "0.1.0"
