from pathlib import Path

import pytest
from db.client import session_scope
from db.models.recon import ReconResult
from sqlalchemy import func, select

from ledger_recon import reconcile_ledgers, reconcile_tickets
from ledger_recon.cache import compute_run_id
from ledger_recon.errors import PersistenceError
from ledger_recon.export import to_export_rows
from ledger_recon.models import Side, Status
from ledger_recon.persistence import (
    DEFAULT_BRANCH,
    delete_results,
    insert_results,
    query_results,
)
from tests.helpers.db import bootstrap_sqlite_db, seed_results

DEBITS = [
    {"Date": "2024-02-28", "Narration": "PAYMENT TO JOHN DOE REF001", "Amount": "1,000.00"},
    {"Date": "2024-02-28", "Narration": "CHEQUE 0042", "Amount": "(250)"},
]
CREDITS = [
    {"Date": "2024-03-01", "Narration": "payment to john doe ref001", "Amount": "1000"},
    {"Date": "2024-03-01", "Narration": "NEW CREDIT", "Amount": "99"},
]


def _export_rows():
    return to_export_rows(reconcile_ledgers(DEBITS, CREDITS).rows())


def test_insert_and_query_round_trip(tmp_path: Path):
    url = bootstrap_sqlite_db(tmp_path / "recon.sqlite3")
    rows = _export_rows()
    run_id = compute_run_id(DEBITS, CREDITS)

    with session_scope(database_url=url) as s:
        n = insert_results(s, rows, run_id=run_id, branch_code="LAGOS-01", user_id="u-1")
    assert n == 4

    with session_scope(database_url=url) as s:
        stored = query_results(s, run_id=run_id)
        users = s.execute(select(ReconResult.user_id).distinct()).scalars().all()

    assert stored == rows
    assert users == ["u-1"]


def test_inserts_are_chunked(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    url = bootstrap_sqlite_db(tmp_path / "recon.sqlite3")
    rows = _export_rows() * 5

    calls: list[int] = []
    with session_scope(database_url=url) as s:
        real_execute = s.execute

        def _spy(stmt, params=None, *a, **kw):
            if isinstance(params, list):
                calls.append(len(params))
            return real_execute(stmt, params, *a, **kw)

        monkeypatch.setattr(s, "execute", _spy)
        insert_results(s, rows, run_id="a" * 64, chunk_size=6)

    assert calls == [6, 6, 6, 2]
    with session_scope(database_url=url) as s:
        assert s.execute(select(func.count()).select_from(ReconResult)).scalar_one() == 20


def test_blank_branch_falls_back_to_default(tmp_path: Path):
    url = bootstrap_sqlite_db(tmp_path / "recon.sqlite3")
    seed_results(database_url=url, rows=_export_rows(), branch_code="  ")

    with session_scope(database_url=url) as s:
        assert len(query_results(s, branch_code=DEFAULT_BRANCH)) == 4


def test_query_filters_by_status_side_and_branch(tmp_path: Path):
    url = bootstrap_sqlite_db(tmp_path / "recon.sqlite3")
    seed_results(database_url=url, rows=_export_rows(), branch_code="A")
    seed_results(database_url=url, rows=_export_rows(), branch_code="B")

    with session_scope(database_url=url) as s:
        pending_debits = query_results(s, status=Status.PENDING_DEBIT, side=Side.DEBIT)
        pending_b = query_results(
            s, status=[Status.PENDING_DEBIT, Status.PENDING_CREDIT], branch_code="B"
        )
        matched_credit_a = query_results(
            s, status="matched", side=Side.CREDIT, branch_code="A"
        )

    assert [r.narration for r in pending_debits] == ["CHEQUE 0042", "CHEQUE 0042"]
    assert [r.status for r in pending_b] == [Status.PENDING_DEBIT, Status.PENDING_CREDIT]
    assert [r.record_id for r in matched_credit_a] == ["credit:0"]


def test_delete_results_by_branch(tmp_path: Path):
    url = bootstrap_sqlite_db(tmp_path / "recon.sqlite3")
    seed_results(database_url=url, rows=_export_rows(), branch_code="A")
    seed_results(database_url=url, rows=_export_rows(), branch_code="B")

    with session_scope(database_url=url) as s:
        assert delete_results(s, branch_code="A") == 4
    with session_scope(database_url=url) as s:
        assert {r.record_id for r in query_results(s)} == {
            "debit:0",
            "credit:0",
            "debit:1",
            "credit:1",
        }
        assert delete_results(s) == 4
        assert query_results(s) == []


def test_store_errors_become_persistence_errors(tmp_path: Path):
    # Schema never created
    url = f"sqlite+pysqlite:///{tmp_path / 'empty.sqlite3'}"

    with pytest.raises(PersistenceError):
        with session_scope(database_url=url) as s:
            insert_results(s, _export_rows(), run_id="b" * 64)

    with pytest.raises(PersistenceError):
        with session_scope(database_url=url) as s:
            query_results(s)


def test_chunk_size_must_be_positive(tmp_path: Path):
    url = bootstrap_sqlite_db(tmp_path / "recon.sqlite3")
    with pytest.raises(ValueError):
        with session_scope(database_url=url) as s:
            insert_results(s, _export_rows(), run_id="c" * 64, chunk_size=0)


def test_reference_column_is_stored(tmp_path: Path):
    url = bootstrap_sqlite_db(tmp_path / "recon.sqlite3")
    result = reconcile_tickets(
        [{"Narration": "POS SHOPRITE", "Amount": "10", "Ticket No": "T1"}],
        [
            {"Narration": "SALARY OCTOBER", "Amount": "200", "Reference": "R7"},
            {"Narration": "SALARY OCTOBER B", "Amount": "200", "Reference": "R7"},
        ],
    )
    seed_results(database_url=url, rows=to_export_rows(result.rows()))

    with session_scope(database_url=url) as s:
        dupes = query_results(s, status=Status.DUPLICATE)
        pending = query_results(s, status=Status.PENDING_POST)

    assert [(r.reference, r.remark) for r in dupes] == [("R7", "duplicate in reference set")] * 2
    assert [r.reference for r in pending] == ["T1"]
