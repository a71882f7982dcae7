from datetime import datetime

import pytest
from openpyxl import Workbook

from ledger_recon import SpreadsheetError, reconcile_ledgers
from ledger_recon.ingest import read_csv_rows, read_rows, read_xlsx_rows


def _write_workbook(path, rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    wb.save(path)
    return path


def test_csv_rows_tolerate_bom_and_skip_blank_lines(tmp_path):
    path = tmp_path / "ledger.csv"
    path.write_text(
        "\ufeffDate,Narration,Amount\n2024-03-01,RENT,\"1,000.00\"\n,,\n2024-03-02,FEES,5\n",
        encoding="utf-8",
    )

    rows = read_csv_rows(path)

    assert rows == [
        {"Date": "2024-03-01", "Narration": "RENT", "Amount": "1,000.00"},
        {"Date": "2024-03-02", "Narration": "FEES", "Amount": "5"},
    ]


def test_csv_surplus_cells_are_dropped(tmp_path):
    path = tmp_path / "ledger.csv"
    path.write_text("Narration,Amount\nRENT,10,extra\n", encoding="utf-8")
    assert read_csv_rows(path) == [{"Narration": "RENT", "Amount": "10"}]


def test_empty_csv_is_an_error(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")
    with pytest.raises(SpreadsheetError, match="no header"):
        read_csv_rows(path)


def test_non_utf8_csv_is_an_error(tmp_path):
    path = tmp_path / "latin1.csv"
    path.write_bytes("Narration,Amount\nCAF\xc9,1\n".encode("latin-1"))
    with pytest.raises(SpreadsheetError, match="UTF-8"):
        read_csv_rows(path)


def test_xlsx_first_sheet_with_header_row(tmp_path):
    path = _write_workbook(
        tmp_path / "ledger.xlsx",
        [
            ["Date", "Narration", "Amount", None],
            [datetime(2024, 3, 1), "RENT", 1000, None],
            [None, None, None, None],
            [datetime(2024, 3, 2), "FEES"],
        ],
    )

    rows = read_xlsx_rows(path)

    assert rows == [
        {"Date": datetime(2024, 3, 1), "Narration": "RENT", "Amount": 1000},
        {"Date": datetime(2024, 3, 2), "Narration": "FEES", "Amount": ""},
    ]


def test_xlsx_rows_feed_the_engine(tmp_path):
    prev = _write_workbook(
        tmp_path / "previous.xlsx",
        [["Date", "Narration", "Amount"], [datetime(2024, 3, 1), "RENT MARCH", "(1,000.00)"]],
    )
    cur = _write_workbook(
        tmp_path / "current.xlsx",
        [["DATE", "NARRATIVE", "AMOUNT"], [datetime(2024, 3, 5), "rent march", -1000]],
    )

    result = reconcile_ledgers(read_rows(prev), read_rows(cur))

    assert result.summary.matched_count == 1
    assert result.debits[0].date == "2024-03-01"


def test_corrupt_workbook_reports_encryption_hint(tmp_path):
    path = tmp_path / "locked.xlsx"
    path.write_bytes(b"\xd0\xcf\x11\xe0 not a zip archive")
    with pytest.raises(SpreadsheetError, match="password-protected"):
        read_rows(path)


def test_missing_file_and_unknown_suffix(tmp_path):
    with pytest.raises(SpreadsheetError, match="not found"):
        read_rows(tmp_path / "nope.csv")

    other = tmp_path / "data.json"
    other.write_text("{}", encoding="utf-8")
    with pytest.raises(SpreadsheetError, match="Unsupported file type"):
        read_rows(other)
