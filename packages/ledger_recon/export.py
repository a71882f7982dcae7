"""Export of classified records and re-import of exported rows.

Exports carry every field needed to audit a run (dates and narrations
verbatim, the original amount text and reference, parsed amount and sign, both
narration slices and helper keys, side, status and remark). Feeding an exported row's
date/narration/original amount back through the normalizer reproduces the
same helper keys, which :func:`records_from_export` relies on.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Mapping
from os import PathLike
from pathlib import Path
from typing import Any

from openpyxl import Workbook

from .config import ReconSettings
from .models import EXPORT_COLUMNS, ExportRow, TransactionRecord
from .normalizers import normalize_row

# Optional columns where an empty cell means "not set".
_NULLABLE = ("record_id", "side", "remark", "matched_with")


def to_export_row(record: TransactionRecord) -> ExportRow:
    return ExportRow(
        record_id=record.record_id or None,
        date=record.date,
        narration=record.narration,
        original_amount=record.original_amount_text,
        reference=record.reference,
        signed_amount=record.signed_amount,
        is_negative=record.is_negative,
        first15=record.first15,
        last15=record.last15,
        helper_key1=record.helper_key1,
        helper_key2=record.helper_key2,
        side=record.side,
        status=record.status,
        remark=record.remark,
        matched_with=record.matched_with,
    )


def to_export_rows(records: Iterable[TransactionRecord]) -> list[ExportRow]:
    return [to_export_row(r) for r in records]


def rows_from_table(rows: Iterable[Mapping[str, Any]]) -> list[ExportRow]:
    """Validate rows read back from an exported CSV/XLSX file.

    Empty cells in optional columns become ``None``; unknown columns are
    ignored.
    """

    out: list[ExportRow] = []
    for row in rows:
        data = {k: v for k, v in row.items() if k in EXPORT_COLUMNS}
        for k in _NULLABLE:
            if data.get(k) == "":
                data[k] = None
        for k in ("date", "narration", "original_amount", "reference", "first15", "last15"):
            if data.get(k) is not None:
                data[k] = str(data[k])
        out.append(ExportRow.model_validate(data))
    return out


def records_from_export(
    rows: Iterable[ExportRow], *, settings: ReconSettings | None = None
) -> list[TransactionRecord]:
    """Rebuild unclassified records from exported identity fields.

    Only date, narration, original amount and reference are read; keys are
    re-derived, so they match the exported keys when the same settings are used.
    """

    cfg = settings or ReconSettings()
    records: list[TransactionRecord] = []
    for row in rows:
        raw = {
            cfg.aliases.date[0]: row.date,
            cfg.aliases.narration[0]: row.narration,
            cfg.aliases.amount[0]: row.original_amount,
            cfg.aliases.reference[0]: row.reference,
        }
        records.append(
            normalize_row(
                raw,
                aliases=cfg.aliases,
                key_length=cfg.narration_key_length,
                side=row.side,
                record_id=row.record_id,
            )
        )
    return records


def write_csv(rows: Iterable[ExportRow], path: str | PathLike[str]) -> Path:
    p = Path(path)
    with p.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(EXPORT_COLUMNS))
        writer.writeheader()
        for row in rows:
            writer.writerow(row.model_dump(mode="json"))
    return p


def write_xlsx(
    rows: Iterable[ExportRow], path: str | PathLike[str], *, sheet: str = "Results"
) -> Path:
    p = Path(path)
    wb = Workbook()
    ws = wb.active
    ws.title = sheet
    ws.append(list(EXPORT_COLUMNS))
    for row in rows:
        data = row.model_dump(mode="json")
        ws.append([data[c] for c in EXPORT_COLUMNS])
    wb.save(p)
    return p


def write_export(rows: Iterable[ExportRow], path: str | PathLike[str]) -> Path:
    """Write ``rows`` as CSV or XLSX depending on the file suffix."""

    suffix = Path(path).suffix.lower()
    if suffix == ".csv":
        return write_csv(rows, path)
    if suffix in {".xlsx", ".xlsm"}:
        return write_xlsx(rows, path)
    raise ValueError(f"Unsupported export format: {suffix or '(none)'}; use .csv or .xlsx")


__all__ = [
    "to_export_row",
    "to_export_rows",
    "rows_from_table",
    "records_from_export",
    "write_csv",
    "write_xlsx",
    "write_export",
]
