import csv

import pytest
from openpyxl import load_workbook

from ledger_recon import reconcile_ledgers, reconcile_tickets
from ledger_recon.export import (
    records_from_export,
    rows_from_table,
    to_export_rows,
    write_export,
)
from ledger_recon.ingest import read_rows
from ledger_recon.models import EXPORT_COLUMNS, Side, Status

DEBITS = [
    {"Date": "2024-02-28", "Narration": "PAYMENT TO JOHN DOE REF001", "Amount": "₦1,000.00"},
    {"Date": "2024-02-28", "Narration": "Cheque   0042", "Amount": "(250.75)"},
]
CREDITS = [
    {"Date": "2024-03-01", "Narration": "payment to john doe ref001", "Amount": "1000"},
]


def _export_rows():
    return to_export_rows(reconcile_ledgers(DEBITS, CREDITS).rows())


def test_export_row_carries_every_audit_field():
    rows = _export_rows()
    pending = rows[-1]

    assert pending.status is Status.PENDING_DEBIT
    assert pending.side is Side.DEBIT
    assert pending.original_amount == "(250.75)"
    assert pending.signed_amount == -250.75
    assert pending.is_negative is True
    assert pending.narration == "Cheque   0042"
    assert pending.first15 == "CHEQUE 0042"
    assert pending.helper_key1 == "CHEQUE 0042_-250.75"
    assert rows[0].matched_with == "credit:0"
    assert set(EXPORT_COLUMNS) >= {
        "date",
        "narration",
        "original_amount",
        "reference",
        "signed_amount",
        "is_negative",
        "first15",
        "last15",
        "helper_key1",
        "helper_key2",
        "side",
        "status",
        "remark",
    }


@pytest.mark.parametrize("suffix", [".csv", ".xlsx"])
def test_exported_rows_reproduce_helper_keys(tmp_path, suffix):
    rows = _export_rows()
    path = write_export(rows, tmp_path / f"results{suffix}")

    back = rows_from_table(read_rows(path))
    rebuilt = records_from_export(back)

    assert [(r.helper_key1, r.helper_key2) for r in rebuilt] == [
        (r.helper_key1, r.helper_key2) for r in rows
    ]
    assert [r.status for r in back] == [r.status for r in rows]
    assert [r.record_id for r in rebuilt] == [r.record_id for r in rows]


def test_csv_export_layout(tmp_path):
    path = write_export(_export_rows(), tmp_path / "out.csv")

    with path.open(encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        assert tuple(reader.fieldnames or ()) == EXPORT_COLUMNS
        first = next(reader)

    assert first["status"] == "matched"
    assert first["side"] == "debit"
    assert first["remark"] == ""


def test_xlsx_export_uses_results_sheet(tmp_path):
    path = write_export(_export_rows(), tmp_path / "out.xlsx")

    wb = load_workbook(path, read_only=True)
    try:
        assert wb.sheetnames == ["Results"]
        header = next(wb["Results"].iter_rows(values_only=True))
    finally:
        wb.close()
    assert tuple(header) == EXPORT_COLUMNS


def test_unknown_export_format_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        write_export(_export_rows(), tmp_path / "out.json")


def test_reference_set_duplicates_are_auditable_from_the_export(tmp_path):
    result = reconcile_tickets(
        [{"Narration": "POS SHOPRITE", "Amount": "10", "Ticket No": "T1"}],
        [
            {"Narration": "SALARY OCTOBER", "Amount": "200", "Reference": "R3"},
            {"Narration": "SALARY OCTOBER B", "Amount": "200", "Reference": "R3"},
        ],
    )
    path = write_export(to_export_rows(result.rows()), tmp_path / "out.csv")

    back = rows_from_table(read_rows(path))

    assert [(r.reference, r.status, r.remark) for r in back] == [
        ("T1", Status.PENDING_POST, "missing in reference set"),
        ("R3", Status.DUPLICATE, "duplicate in reference set"),
        ("R3", Status.DUPLICATE, "duplicate in reference set"),
    ]
    assert [r.reference for r in records_from_export(back)] == ["T1", "R3", "R3"]
