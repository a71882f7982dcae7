"""Tabular readers that turn uploaded files into raw rows for the engine."""

from .readers import read_csv_rows, read_rows, read_xlsx_rows

__all__ = ["read_csv_rows", "read_rows", "read_xlsx_rows"]
