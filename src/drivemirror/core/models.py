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

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path


class OutputMode(str, Enum):
    SILENT = "silent"
    ECHO = "echo"
    PROGRESS = "progress"


class VerifyMode(str, Enum):
    ALWAYS = "always"
    NEVER = "never"
    ASK = "ask"


class AttemptStatus(str, Enum):
    OK = "OK"
    OK_WITH_DIFFERENCES = "OK (differences found)"
    FAILED = "FAILED"


class VerificationResult(str, Enum):
    PASSED = "PASSED"
    DIFFERENCES_FOUND = "DIFFERENCES FOUND"


@dataclass(frozen=True)
class BackupMode:
    output: OutputMode = OutputMode.SILENT
    verify: VerifyMode = VerifyMode.ASK

    def describe(self) -> str:
        parts = []
        if self.output is not OutputMode.SILENT:
            parts.append(f"--{self.output.value}")
        parts.append(f"--verify={self.verify.value}")
        return " ".join(parts)


@dataclass(frozen=True)
class HistoryEntry:
    identity: str
    timestamp: datetime


@dataclass(frozen=True)
class TimingEntry:
    """One finished backup attempt as recorded in the timing log.

    Durations are ``None`` when the phase was not performed.
    """

    started: datetime
    source: str
    destination: str
    count_duration: timedelta | None
    copy_duration: timedelta | None
    verify_duration: timedelta | None
    total_duration: timedelta | None
    flags: str
    status: str


@dataclass
class BackupAttempt:
    """Orchestrator-local record of a single backup run.

    Built when the run starts, finalized once, then projected into the
    summary document and both ledgers. Never persisted as-is.
    """

    source: str
    destination: str
    mode: BackupMode
    started: datetime
    count_duration: timedelta | None = None
    copy_duration: timedelta | None = None
    verify_duration: timedelta | None = None
    total_duration: timedelta | None = None
    exit_code: int | None = None
    verify_exit_code: int | None = None
    status: AttemptStatus | None = None
    verification: VerificationResult | None = None
    file_total: int | None = None
    files_seen: int | None = None
    report_path: Path | None = None
    summary_path: Path | None = None
    verify_report_path: Path | None = None
    error_lines: list[str] = field(default_factory=list)
    write_errors: list[str] = field(default_factory=list)

    @property
    def finalized(self) -> bool:
        return self.status is not None

    def finalize(self, status: AttemptStatus, *, finished: datetime) -> None:
        if self.status is not None:
            raise RuntimeError("backup attempt already finalized")
        self.status = status
        self.total_duration = finished - self.started

    def to_timing_entry(self) -> TimingEntry:
        if self.status is None:
            raise RuntimeError("backup attempt is not finalized")
        return TimingEntry(
            started=self.started,
            source=self.source,
            destination=self.destination,
            count_duration=self.count_duration,
            copy_duration=self.copy_duration,
            verify_duration=self.verify_duration,
            total_duration=self.total_duration,
            flags=self.mode.describe(),
            status=self.status.value,
        )
