#!/usr/bin/env python3
from __future__ import annotations

from rich import box
from rich.table import Table

from ...core.durations import NOT_PERFORMED, format_duration, format_timestamp
from ...core.models import AttemptStatus, BackupAttempt
from ...engine.robocopy import describe_exit_code
from ...ledger.history import HistoryLedger
from ...ledger.timing import TimingLog
from . import build_kv_table, console, console_err, panel
from .state import panel_style, status_style


def attempt_rows(attempt: BackupAttempt) -> list[tuple[str, str]]:
    rows = [
        ("Source", attempt.source),
        ("Destination", attempt.destination),
        ("Started", format_timestamp(attempt.started)),
    ]
    if attempt.exit_code is not None:
        notes = "; ".join(describe_exit_code(attempt.exit_code))
        rows.append(("Exit code", f"{attempt.exit_code} ({notes})"))
    rows.append(("File count", format_duration(attempt.count_duration)))
    rows.append(("Copy", format_duration(attempt.copy_duration)))
    if attempt.verification is None:
        rows.append(("Verification", NOT_PERFORMED))
    else:
        rows.append(
            (
                "Verification",
                f"{attempt.verification.value} in {format_duration(attempt.verify_duration)}",
            )
        )
    rows.append(("Total", format_duration(attempt.total_duration)))
    if attempt.file_total is not None:
        rows.append(("Files", f"~{attempt.files_seen or 0} of {attempt.file_total} (approximate)"))
    if attempt.summary_path is not None:
        rows.append(("Summary", str(attempt.summary_path)))
    if attempt.report_path is not None:
        rows.append(("Engine report", str(attempt.report_path)))
    if attempt.verify_report_path is not None:
        rows.append(("Difference report", str(attempt.verify_report_path)))
    return rows


def print_backup_summary(attempt: BackupAttempt, *, quiet: bool) -> None:
    status = attempt.status or AttemptStatus.FAILED
    label = status_style(status)
    style = panel_style(status)
    output = console_err if status is AttemptStatus.FAILED else console
    if status is AttemptStatus.FAILED or not quiet:
        output.print(f"[{label}]Backup {status.value}[/{label}]")
    if quiet:
        return
    output.print(panel("Backup summary", build_kv_table(attempt_rows(attempt)), style=style))
    if attempt.error_lines:
        errors = Table(show_header=False, box=box.SIMPLE)
        errors.add_column("Engine errors", style="error")
        for line in attempt.error_lines:
            errors.add_row(line)
        output.print(panel("Engine errors", errors, style="error"))


def build_history_table(ledger: HistoryLedger) -> Table:
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("Destination", style="bold", no_wrap=True)
    table.add_column("Last backup")
    table.add_column("Tag", style="accent")
    for entry, tag in ledger.tagged_rows():
        table.add_row(entry.identity, format_timestamp(entry.timestamp), tag)
    return table


def build_timing_table(log: TimingLog) -> Table:
    table = Table(box=box.SIMPLE_HEAD)
    for header in ("Started", "Source", "Destination", "Count", "Copy", "Verify", "Total"):
        table.add_column(header, no_wrap=True)
    table.add_column("Flags")
    table.add_column("Status", no_wrap=True)
    for entry in log.entries:
        table.add_row(
            format_timestamp(entry.started),
            entry.source,
            entry.destination,
            format_duration(entry.count_duration),
            format_duration(entry.copy_duration),
            format_duration(entry.verify_duration),
            format_duration(entry.total_duration),
            entry.flags,
            entry.status,
        )
    return table
