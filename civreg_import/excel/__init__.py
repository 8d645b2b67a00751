"""Spreadsheet reading (CLI edge only)."""
