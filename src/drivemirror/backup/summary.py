#!/usr/bin/env python3
# Copyright (C) 2026 Alex Stoyanov
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License along with this program.
# If not, see <https://www.gnu.org/licenses/>.

from __future__ import annotations

from pathlib import Path

from ..core.durations import NOT_PERFORMED, format_duration, format_timestamp
from ..core.models import AttemptStatus, BackupAttempt
from ..engine.robocopy import describe_exit_code


def _exit_code_text(code: int | None) -> str:
    if code is None:
        return "n/a"
    return f"{code} ({'; '.join(describe_exit_code(code))})"


def summary_lines(
    attempt: BackupAttempt,
    *,
    status: AttemptStatus,
    destination_path: Path,
) -> list[str]:
    lines = [
        "drivemirror backup summary",
        "==========================",
        f"Status: {status.value}",
        f"Date: {format_timestamp(attempt.started)}",
        f"Source: {attempt.source}",
        f"Destination: {attempt.destination} ({destination_path})",
        f"Exit code: {_exit_code_text(attempt.exit_code)}",
        f"Count duration: {format_duration(attempt.count_duration)}",
        f"Copy duration: {format_duration(attempt.copy_duration)}",
        f"Flags: {attempt.mode.describe()}",
    ]
    if attempt.file_total is not None:
        lines.append(
            f"Files: ~{attempt.files_seen or 0} of {attempt.file_total} counted (approximate)"
        )
    if attempt.report_path is not None:
        lines.append(f"Engine report: {attempt.report_path}")
    lines.append("Errors:")
    if attempt.error_lines:
        lines.extend(f"  {line}" for line in attempt.error_lines)
    else:
        lines.append("  (none)")
    return lines


def write_summary(
    path: Path,
    attempt: BackupAttempt,
    *,
    status: AttemptStatus,
    destination_path: Path,
) -> None:
    """Write the attempt summary once; later changes are only appended."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = "\n".join(summary_lines(attempt, status=status, destination_path=destination_path))
    with path.open("x", encoding="utf-8") as handle:
        handle.write(text + "\n")


def append_verification(path: Path, attempt: BackupAttempt) -> None:
    lines = ["", "Verification", "------------"]
    if attempt.verification is None:
        lines.append(f"Verification: {NOT_PERFORMED}")
        lines.append(f"Verify duration: {NOT_PERFORMED}")
    else:
        lines.append(f"Verification: {attempt.verification.value}")
        lines.append(f"Verify duration: {format_duration(attempt.verify_duration)}")
        lines.append(f"Verify exit code: {_exit_code_text(attempt.verify_exit_code)}")
        if attempt.verify_report_path is not None:
            lines.append(f"Difference report: {attempt.verify_report_path}")
    with path.open("a", encoding="utf-8") as handle:
        handle.write("\n".join(lines) + "\n")


def append_final_status(path: Path, status: AttemptStatus) -> None:
    with path.open("a", encoding="utf-8") as handle:
        handle.write(f"\nFinal status: {status.value}\n")
