"""CSV / XLSX → raw rows (column name → cell value).

Rows are returned as plain dicts keyed by the header cells exactly as they
appear in the file; alias resolution happens later in the normalizer. Only
the first worksheet of a workbook is read, with the first row as the header
and empty cells as ``""``.

Failure mode
------------
Unreadable, encrypted or unsupported files raise
:class:`~ledger_recon.errors.SpreadsheetError` with an actionable message.
"""

from __future__ import annotations

import csv
import zipfile
from os import PathLike
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..errors import SpreadsheetError
from ..logging_setup import get_logger

_logger = get_logger("ledger_recon.ingest.readers")

_EXCEL_SUFFIXES = {".xlsx", ".xlsm"}

_ENCRYPTED_HINT = (
    "The workbook looks password-protected or encrypted. Open it in Excel, "
    "save it as a plain .xlsx without 'Save with password', and upload that copy."
)


def _is_blank(row: dict[str, Any]) -> bool:
    return all(v is None or str(v).strip() == "" for v in row.values())


def read_csv_rows(path: str | PathLike[str]) -> list[dict[str, Any]]:
    """Read a UTF-8 CSV (BOM tolerated) into row dicts, skipping blank lines."""

    p = Path(path)
    try:
        with p.open(encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f)
            if not reader.fieldnames:
                raise SpreadsheetError(f"CSV appears to have no header row: {p}")
            rows: list[dict[str, Any]] = []
            for row in reader:
                # DictReader collects surplus cells under a None key; drop them.
                cleaned = {k: (v if v is not None else "") for k, v in row.items() if k is not None}
                if _is_blank(cleaned):
                    continue
                rows.append(cleaned)
    except UnicodeDecodeError as exc:
        raise SpreadsheetError(f"CSV is not valid UTF-8: {p}") from exc
    except csv.Error as exc:
        raise SpreadsheetError(f"Failed to parse CSV {p}: {exc}") from exc
    return rows


def read_xlsx_rows(path: str | PathLike[str]) -> list[dict[str, Any]]:
    """Read the first worksheet of an Excel workbook into row dicts."""

    p = Path(path)
    try:
        wb = load_workbook(p, read_only=True, data_only=True)
    except (zipfile.BadZipFile, InvalidFileException) as exc:
        raise SpreadsheetError(f"Cannot open workbook {p}. {_ENCRYPTED_HINT}") from exc

    try:
        ws = wb.worksheets[0]
        values = ws.iter_rows(values_only=True)
        header_cells = next(values, None)
        if header_cells is None:
            raise SpreadsheetError(f"Workbook has an empty first sheet: {p}")
        header = [str(c).strip() if c is not None else "" for c in header_cells]

        rows: list[dict[str, Any]] = []
        for cells in values:
            row = {
                name: ("" if cell is None else cell)
                for name, cell in zip(header, cells, strict=False)
                if name
            }
            if not row or _is_blank(row):
                continue
            # Pad short rows so every header column is present.
            for name in header:
                if name and name not in row:
                    row[name] = ""
            rows.append(row)
    finally:
        wb.close()
    return rows


def read_rows(path: str | PathLike[str]) -> list[dict[str, Any]]:
    """Dispatch on the file suffix and return raw rows."""

    p = Path(path)
    if not p.is_file():
        raise SpreadsheetError(f"File not found: {p}")
    suffix = p.suffix.lower()
    if suffix == ".csv":
        rows = read_csv_rows(p)
    elif suffix in _EXCEL_SUFFIXES:
        rows = read_xlsx_rows(p)
    else:
        raise SpreadsheetError(
            f"Unsupported file type {suffix or '(none)'} for {p.name}; use .csv or .xlsx"
        )
    _logger.info("Read %d rows from %s", len(rows), p.name)
    return rows


__all__ = ["read_csv_rows", "read_xlsx_rows", "read_rows"]
