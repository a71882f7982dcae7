# ruff: noqa: I001
"""CLI for the ``ledger_recon`` package.

This module exposes callable command handlers (e.g., ``cmd_reconcile``) and a
Typer-based console interface. Environment variables (``DATABASE_URL``,
``LEDGER_RECON_*``) are loaded from a local ``.env`` using ``python-dotenv``
before delegating to command logic. Business logic lives in
``ledger_recon.api`` and related modules.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from .config import ReconSettings, load_settings
from .errors import PersistenceError, SpreadsheetError
from .export import to_export_rows, write_export
from .logging_setup import configure_logging, get_logger
from .models import ExportRow, InvalidInput, Side, Status

_logger = get_logger("ledger_recon.cli")


# ---- Small module-level helpers used by CLI commands -------------------------


def _error(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)


def _settings(**overrides: Any) -> ReconSettings | None:
    try:
        return load_settings(**overrides)
    except ValueError as e:
        _error(f"invalid settings: {e}")
        return None


def _read_side(path: Path, label: str) -> list[dict[str, Any]] | None:
    from .ingest import read_rows

    try:
        return read_rows(path)
    except SpreadsheetError as e:
        _error(f"cannot read {label} file: {e}")
        return None


def _report_invalid(invalid: list[InvalidInput]) -> None:
    for item in invalid:
        side = item.side.value if item.side is not None else "-"
        print(f"Skipped {side} row {item.position}: {item.reason}", file=sys.stderr)


def _write_output(rows: list[ExportRow], output: Path | None) -> bool:
    if output is None:
        return True
    try:
        path = write_export(rows, output)
    except (OSError, ValueError) as e:
        _error(f"failed to write {output}: {e}")
        return False
    print(f"Wrote {len(rows)} rows to {path}")
    return True


def _store_results(
    rows: list[ExportRow],
    *,
    run_id: str,
    database_url: str | None,
    branch_code: str,
    user_id: str | None,
) -> None:
    """Persist ``rows``; on any store failure keep them in the local fallback file.

    The run itself has succeeded at this point, so a failing store is reported
    as a warning and never changes the exit code.
    """

    from db.client import session_scope

    from .cache import write_fallback
    from .persistence import insert_results

    try:
        with session_scope(database_url=database_url) as session:
            n = insert_results(
                session, rows, run_id=run_id, branch_code=branch_code, user_id=user_id
            )
    except (PersistenceError, SQLAlchemyError, RuntimeError) as e:
        _logger.warning("Storing results failed: %s", e)
        path = write_fallback(run_id, rows, branch_code=branch_code, user_id=user_id)
        print(
            f"Warning: could not store results ({e}); saved a local copy to {path}",
            file=sys.stderr,
        )
        return
    print(f"Stored {n} rows (run {run_id[:12]}, branch {branch_code})")


# ---- Command handlers ---------------------------------------------------------


def cmd_reconcile(
    previous: Path,
    current: Path,
    *,
    output: Path | None = None,
    persist: bool = False,
    database_url: str | None = None,
    branch_code: str = "DEFAULT_BRANCH",
    user_id: str | None = None,
    flag_duplicates: bool = False,
) -> int:
    """Match the previous pending sheet (debits) against the current sheet (credits).

    With ``flag_duplicates`` each side is also checked for rows sharing the
    same amount and reference, which are then marked ``duplicate``.
    """

    from .api import reconcile_ledgers
    from .cache import compute_run_id
    from .duplicates import DEFAULT_IDENTITY

    settings = _settings()
    if settings is None:
        return 1
    debit_rows = _read_side(previous, "previous")
    if debit_rows is None:
        return 1
    credit_rows = _read_side(current, "current")
    if credit_rows is None:
        return 1

    identity = DEFAULT_IDENTITY if flag_duplicates else None
    result = reconcile_ledgers(
        debit_rows, credit_rows, settings=settings, duplicate_identity=identity
    )
    _report_invalid(result.invalid)

    s = result.summary
    print(f"Matched pairs:   {s.matched_count}")
    print(f"Pending debits:  {s.pending_debit_count}")
    print(f"Pending credits: {s.pending_credit_count}")
    print(f"Duplicates:      {s.duplicate_count}")

    rows = to_export_rows(result.rows())
    if not _write_output(rows, output):
        return 1
    if persist:
        workflow = "ledgers+duplicates" if flag_duplicates else "ledgers"
        run_id = compute_run_id(debit_rows, credit_rows, settings=settings, workflow=workflow)
        _store_results(
            rows,
            run_id=run_id,
            database_url=database_url,
            branch_code=branch_code,
            user_id=user_id,
        )
    return 0


def cmd_match_tickets(
    tickets: Path,
    reference: Path,
    *,
    threshold: float | None = None,
    output: Path | None = None,
) -> int:
    """Fuzzy-match teller tickets against a reference export."""

    from .api import reconcile_tickets

    settings = _settings(fuzzy_threshold=threshold)
    if settings is None:
        return 1
    ticket_rows = _read_side(tickets, "tickets")
    if ticket_rows is None:
        return 1
    reference_rows = _read_side(reference, "reference")
    if reference_rows is None:
        return 1

    result = reconcile_tickets(ticket_rows, reference_rows, settings=settings)
    _report_invalid(result.invalid)

    s = result.summary
    print(f"Matched:              {s.matched_count}")
    print(f"Mismatched:           {s.mismatch_count}")
    print(f"Pending post:         {s.pending_post_count}")
    print(f"Duplicate references: {s.duplicate_count}")

    if not _write_output(to_export_rows(result.rows()), output):
        return 1
    return 0


def cmd_pending_report(
    *,
    database_url: str | None = None,
    branch_code: str | None = None,
    output: Path | None = None,
) -> int:
    """Print stored pending debits and credits with absolute-amount totals.

    When the store cannot be reached, the pending rows of the runs saved in the
    local fallback cache are reported instead.
    """

    from db.client import session_scope

    from .cache import iter_fallbacks
    from .persistence import query_results

    try:
        with session_scope(database_url=database_url) as session:
            debits = query_results(
                session, status=Status.PENDING_DEBIT, side=Side.DEBIT, branch_code=branch_code
            )
            credits = query_results(
                session, status=Status.PENDING_CREDIT, side=Side.CREDIT, branch_code=branch_code
            )
    except (PersistenceError, SQLAlchemyError, RuntimeError) as e:
        saved = list(iter_fallbacks(branch_code=branch_code))
        if not saved:
            _error(f"failed to load pending results: {e}")
            return 1
        print(
            f"Warning: could not load stored results ({e}); "
            f"reporting local copies from {len(saved)} run(s)",
            file=sys.stderr,
        )
        local = [r for doc in saved for r in doc.rows]
        debits = [r for r in local if r.status is Status.PENDING_DEBIT and r.side is Side.DEBIT]
        credits = [r for r in local if r.status is Status.PENDING_CREDIT and r.side is Side.CREDIT]

    for title, rows in (("Pending debits", debits), ("Pending credits", credits)):
        total = sum(abs(r.signed_amount) for r in rows)
        print(f"{title}: {len(rows)} (total {total:,.2f})")
        for r in rows:
            print(f"  {r.date}\t{r.narration}\t{r.original_amount}")

    if not _write_output([*debits, *credits], output):
        return 1
    return 0


def cmd_clear_results(
    *,
    database_url: str | None = None,
    branch_code: str | None = None,
    yes: bool = False,
) -> int:
    """Delete stored results for a branch (or all of them)."""

    from db.client import session_scope

    from .persistence import delete_results

    if not yes:
        _error("refusing to delete stored results without --yes")
        return 1
    try:
        with session_scope(database_url=database_url) as session:
            n = delete_results(session, branch_code=branch_code)
    except (PersistenceError, SQLAlchemyError, RuntimeError) as e:
        _error(f"failed to clear results: {e}")
        return 1
    scope = f"branch {branch_code}" if branch_code else "all branches"
    print(f"Deleted {n} stored rows ({scope})")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Reconcile ledger spreadsheets (exact helper-key matching) and teller tickets "
        "(fuzzy narration matching). Loads DATABASE_URL and LEDGER_RECON_* from a local "
        ".env before running."
    ),
)


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("reconcile")
def reconcile_cmd(
    previous: Annotated[Path, typer.Option(help="Previous pending sheet (debit side).")],
    current: Annotated[Path, typer.Option(help="Current period sheet (credit side).")],
    *,
    output: Path | None = typer.Option(
        None, help="Write results to this .csv or .xlsx file.", dir_okay=False
    ),
    persist: bool = typer.Option(False, help="Store classified rows in the database."),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    branch_code: str = typer.Option("DEFAULT_BRANCH", help="Branch the results belong to."),
    user_id: str | None = typer.Option(None, help="Operator identifier stored with results."),
    flag_duplicates: bool = typer.Option(
        False, help="Mark rows sharing amount and reference within a side as duplicates."
    ),
) -> None:
    """Match previous-period debits against current-period credits."""

    _exit(
        cmd_reconcile(
            previous,
            current,
            output=output,
            persist=persist,
            database_url=database_url,
            branch_code=branch_code,
            user_id=user_id,
            flag_duplicates=flag_duplicates,
        )
    )


@app.command("match-tickets")
def match_tickets_cmd(
    tickets: Annotated[Path, typer.Option(help="Teller ticket sheet.")],
    reference: Annotated[Path, typer.Option(help="Reference (general ledger) sheet.")],
    *,
    threshold: float | None = typer.Option(
        None, help="Fuzzy distance threshold in [0, 1]; 0 is identical (default 0.3)."
    ),
    output: Path | None = typer.Option(
        None, help="Write results to this .csv or .xlsx file.", dir_okay=False
    ),
) -> None:
    """Classify tickets as matched, mismatch or pending post."""

    _exit(cmd_match_tickets(tickets, reference, threshold=threshold, output=output))


@app.command("pending-report")
def pending_report_cmd(
    *,
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    branch_code: str | None = typer.Option(None, help="Only this branch."),
    output: Path | None = typer.Option(
        None, help="Write results to this .csv or .xlsx file.", dir_okay=False
    ),
) -> None:
    """List stored pending debits and credits."""

    _exit(cmd_pending_report(database_url=database_url, branch_code=branch_code, output=output))


@app.command("clear-results")
def clear_results_cmd(
    *,
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    branch_code: str | None = typer.Option(None, help="Only this branch."),
    yes: bool = typer.Option(False, "--yes", help="Confirm deletion."),
) -> None:
    """Delete stored reconciliation results."""

    _exit(cmd_clear_results(database_url=database_url, branch_code=branch_code, yes=yes))


@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging()

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m ledger_recon.cli`
    app()
