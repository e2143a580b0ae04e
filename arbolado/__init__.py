"""Spreadsheet import and reconciliation for the urban tree inventory."""

__version__ = "0.1.0"
