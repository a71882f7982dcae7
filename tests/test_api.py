# ruff: noqa: E501
from ledger_recon import Status, reconcile_ledgers, reconcile_tickets
from ledger_recon.config import ReconSettings

PREVIOUS = [
    {"Date": "2024-02-28", "Narration": "PAYMENT TO JOHN DOE REF001", "Amount": "1,000.00"},
    {"Date": "2024-02-28", "Narration": "CHEQUE 0042 CLEARING", "Amount": "(250)"},
    {"Date": "2024-02-29", "Narration": "UNMATCHED DEBIT", "Amount": "10"},
]
CURRENT = [
    {"DATE": "2024-03-01", "NARRATION": "cheque 0042 clearing", "AMOUNT": "-250"},
    {"DATE": "2024-03-01", "NARRATION": "payment to john doe ref001", "AMOUNT": "1000"},
    {"DATE": "2024-03-02", "NARRATION": "NEW CREDIT", "AMOUNT": "99"},
]


def test_reconcile_ledgers_summary_and_statuses():
    result = reconcile_ledgers(PREVIOUS, CURRENT)

    assert result.summary == (2, 1, 1, 0)
    assert [d.status for d in result.debits] == [
        Status.MATCHED,
        Status.MATCHED,
        Status.PENDING_DEBIT,
    ]
    assert [c.status for c in result.credits] == [
        Status.MATCHED,
        Status.MATCHED,
        Status.PENDING_CREDIT,
    ]
    assert result.debits[1].matched_with == "credit:0"
    assert result.invalid == []


def test_rows_are_pairs_then_pending_debits_then_pending_credits():
    result = reconcile_ledgers(PREVIOUS, CURRENT)

    ids = [r.record_id for r in result.rows()]

    assert ids == ["debit:0", "credit:1", "debit:1", "credit:0", "debit:2", "credit:2"]


def test_no_record_is_left_unclassified():
    result = reconcile_ledgers(PREVIOUS, CURRENT)
    assert all(r.status is not Status.UNCLASSIFIED for r in result.rows())
    assert len(list(result.rows())) == len(PREVIOUS) + len(CURRENT)


def test_runs_are_independent_and_repeatable():
    first = reconcile_ledgers(PREVIOUS, CURRENT)
    second = reconcile_ledgers(PREVIOUS, CURRENT)

    assert first.debits[0] is not second.debits[0]
    assert [(r.record_id, r.status, r.matched_with) for r in first.rows()] == [
        (r.record_id, r.status, r.matched_with) for r in second.rows()
    ]


def test_empty_credit_side_is_not_an_error():
    result = reconcile_ledgers(PREVIOUS, [])
    assert result.summary == (0, 3, 0, 0)


def test_invalid_rows_are_reported_without_aborting():
    result = reconcile_ledgers([PREVIOUS[0], "garbage"], CURRENT)  # type: ignore[list-item]

    assert result.summary.matched_count == 1
    assert [(i.position, i.side) for i in result.invalid] == [(1, "debit")]


def test_optional_duplicate_flagging_within_each_side():
    debits = [
        {"Narration": "A", "Amount": "5", "Reference": "X"},
        {"Narration": "B", "Amount": "5", "Reference": "X"},
    ]
    credits = [{"Narration": "A", "Amount": "5", "Reference": "Y"}]

    result = reconcile_ledgers(debits, credits, duplicate_identity=("signed_amount", "reference"))

    assert [d.status for d in result.debits] == [Status.DUPLICATE, Status.DUPLICATE]
    assert result.debits[0].remark == "duplicate in debit set"
    # The matcher already paired credit 0; the count comes from the matcher pass
    assert result.summary.matched_count == 1
    assert result.summary.duplicate_count == 2


def test_settings_change_key_length():
    debits = [{"Narration": "ABCDE-1", "Amount": "1"}]
    credits = [{"Narration": "ABCDE-2", "Amount": "1"}]

    assert reconcile_ledgers(debits, credits).summary.matched_count == 0
    short = ReconSettings(narration_key_length=5)
    assert reconcile_ledgers(debits, credits, settings=short).summary.matched_count == 1


# ---- Ticket workflow -----------------------------------------------------------

TICKETS = [
    {"Date": "2024-03-01", "Narration": "CASH DEPOSIT BY TUNDE", "Amount": "5000", "Ticket No": "T1"},
    {"Date": "2024-03-01", "Narration": "TRANSFER FUNDS ABC", "Amount": "500", "Ticket No": "T2"},
    {"Date": "2024-03-01", "Narration": "ATM WITHDRAWAL LEKKI", "Amount": "200", "Ticket No": "T3"},
]
REFERENCES = [
    {"Date": "2024-03-01", "Narration": "Cash deposit by Tunde", "Amount": "5000", "Reference": "R1"},
    {"Date": "2024-03-01", "Narration": "TRANSFER FUNDS ABC LTD", "Amount": "450", "Reference": "R2"},
    {"Date": "2024-03-01", "Narration": "SALARY OCTOBER", "Amount": "200", "Reference": "R3"},
    {"Date": "2024-03-02", "Narration": "SALARY OCTOBER B", "Amount": "200", "Reference": "R3"},
]


def test_reconcile_tickets_classifies_and_flags_reference_duplicates():
    result = reconcile_tickets(TICKETS, REFERENCES)

    assert [t.status for t in result.tickets] == [
        Status.MATCHED,
        Status.MISMATCH,
        Status.PENDING_POST,
    ]
    assert result.tickets[0].matched_with == "reference:0"
    assert result.tickets[1].remark == "amount mismatch: 500 vs 450"
    assert result.tickets[2].remark == "missing in reference set"
    assert [r.status for r in result.references] == [
        Status.UNCLASSIFIED,
        Status.UNCLASSIFIED,
        Status.DUPLICATE,
        Status.DUPLICATE,
    ]
    assert result.summary == (1, 1, 1, 2)


def test_ticket_rows_list_tickets_then_references():
    result = reconcile_tickets(TICKETS, REFERENCES)
    ids = [r.record_id for r in result.rows()]
    assert ids[:3] == ["ticket:0", "ticket:1", "ticket:2"]
    assert ids[3:] == [f"reference:{i}" for i in range(4)]


def test_ticket_threshold_comes_from_settings():
    tickets = [{"Narration": "BILL PAYMENT DSTV", "Amount": "10"}]
    references = [{"Narration": "BILL PAYMENT DSTV SUBSCRIPTION", "Amount": "10"}]

    # A token subset scores distance 0, which is below any positive threshold
    tight = reconcile_tickets(tickets, references, settings=ReconSettings(fuzzy_threshold=0.05))
    assert tight.tickets[0].status is Status.MATCHED

    closed = reconcile_tickets(tickets, references, settings=ReconSettings(fuzzy_threshold=0.0))
    assert closed.tickets[0].status is Status.PENDING_POST
