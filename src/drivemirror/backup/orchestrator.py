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

"""End-to-end mirror backup run.

``Validated -> Copying -> Summarizing -> (HistoryUpdated) -> VerifyDecision ->
{Verifying -> Finalized | Finalized}``. Preconditions are checked by the
caller (:mod:`drivemirror.core.preflight`) before :meth:`BackupOrchestrator.run`.
Ledgers are only written after the copy phase has returned, so an
interrupted copy leaves the source untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import closing
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from ..core.durations import file_stamp
from ..core.errors import LedgerLockedError
from ..core.models import (
    AttemptStatus,
    BackupAttempt,
    BackupMode,
    OutputMode,
    VerificationResult,
    VerifyMode,
)
from ..engine.progress import ProgressParser, ProgressState, count_source_files
from ..engine.robocopy import (
    EngineInvocation,
    EngineSettings,
    MirrorEngine,
    build_copy_invocation,
    build_verify_invocation,
    extract_error_lines,
    is_failure,
)
from ..engine.verify import interpret_verification, read_report_lines
from ..ledger.history import record_backup
from ..ledger.store import DEFAULT_LOCK_TIMEOUT
from ..ledger.timing import record_timing
from .summary import append_final_status, append_verification, write_summary

logger = logging.getLogger(__name__)

DEFAULT_WORK_DIR = "BackupLogs"
DEFAULT_EXCLUDED_NAMES = ("$RECYCLE.BIN", "System Volume Information")
HISTORY_FILENAME = "drive_history.txt"
TIMING_FILENAME = "timing_log.txt"

PHASE_COUNT = "count"
PHASE_COPY = "copy"
PHASE_VERIFY = "verify"


@dataclass(frozen=True)
class BackupPaths:
    """Where a run keeps its artifacts; everything lives on the source."""

    work_root: Path

    @classmethod
    def for_source(cls, source: Path, work_dir: str = DEFAULT_WORK_DIR) -> BackupPaths:
        return cls(work_root=source / work_dir)

    @property
    def logs_dir(self) -> Path:
        return self.work_root / "logs"

    @property
    def history_dir(self) -> Path:
        return self.work_root / "history"

    @property
    def history_file(self) -> Path:
        return self.history_dir / HISTORY_FILENAME

    @property
    def timing_file(self) -> Path:
        return self.history_dir / TIMING_FILENAME

    def mirrored_history_dir(self, source: Path, destination: Path) -> Path:
        return destination / self.history_dir.relative_to(source)


def reserve_artifact_stamp(logs_dir: Path, started: datetime) -> str:
    """Pick the file stamp for a run's report, summary and verify report.

    Runs started within the same second get ``_2``, ``_3``... suffixes. The
    engine report is created here so a concurrent run cannot take the stamp.
    """
    base = file_stamp(started)
    stamp, number = base, 1
    while True:
        taken = any(
            (logs_dir / name).exists() for name in (f"summary_{stamp}.txt", f"verify_{stamp}.log")
        )
        if not taken:
            try:
                (logs_dir / f"backup_{stamp}.log").open("x").close()
            except FileExistsError:
                pass
            else:
                return stamp
        number += 1
        stamp = f"{base}_{number}"


@dataclass(frozen=True)
class OrchestratorSettings:
    engine: EngineSettings = field(default_factory=EngineSettings)
    excluded_names: tuple[str, ...] = DEFAULT_EXCLUDED_NAMES
    work_dir: str = DEFAULT_WORK_DIR
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    report_encoding: str | None = None


@dataclass
class BackupHooks:
    """Optional callbacks the caller uses to render a run as it happens."""

    on_phase: Callable[[str], None] | None = None
    on_progress: Callable[[ProgressState], None] | None = None
    on_line: Callable[[str], None] | None = None
    ask_verify: Callable[[], bool] | None = None

    def phase(self, name: str) -> None:
        if self.on_phase is not None:
            self.on_phase(name)


class BackupOrchestrator:
    def __init__(
        self,
        engine: MirrorEngine,
        settings: OrchestratorSettings | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.engine = engine
        self.settings = settings or OrchestratorSettings()
        self._clock = clock

    def paths_for(self, source: Path) -> BackupPaths:
        return BackupPaths.for_source(source, self.settings.work_dir)

    def run(
        self,
        source: Path,
        destination: Path,
        destination_label: str,
        mode: BackupMode,
        *,
        hooks: BackupHooks | None = None,
    ) -> BackupAttempt:
        hooks = hooks or BackupHooks()
        attempt = BackupAttempt(
            source=str(source),
            destination=destination_label,
            mode=mode,
            started=self._clock(),
        )
        paths = self.paths_for(source)
        paths.logs_dir.mkdir(parents=True, exist_ok=True)
        stamp = reserve_artifact_stamp(paths.logs_dir, attempt.started)
        attempt.report_path = paths.logs_dir / f"backup_{stamp}.log"
        attempt.summary_path = paths.logs_dir / f"summary_{stamp}.txt"
        logger.info("backup %s -> %s (%s)", source, destination_label, mode.describe())

        total = None
        if mode.output is OutputMode.PROGRESS:
            hooks.phase(PHASE_COUNT)
            counted_at = self._clock()
            total = count_source_files(
                source,
                excluded_names=self.settings.excluded_names,
                excluded_paths=(paths.logs_dir,),
            )
            attempt.count_duration = self._clock() - counted_at
            attempt.file_total = total

        hooks.phase(PHASE_COPY)
        invocation = build_copy_invocation(
            source,
            destination,
            log_path=attempt.report_path,
            output_mode=mode.output,
            settings=self.settings.engine,
            excluded_names=self.settings.excluded_names,
            work_log_dir=paths.logs_dir,
        )
        copy_started = self._clock()
        attempt.exit_code = self._run_copy(invocation, attempt, hooks, total=total)
        attempt.copy_duration = self._clock() - copy_started
        with closing(self._report_lines(attempt.report_path)) as lines:
            attempt.error_lines = extract_error_lines(lines)

        if is_failure(attempt.exit_code):
            logger.warning("engine failed with exit code %s", attempt.exit_code)
            if self._write_summary(attempt, AttemptStatus.FAILED, destination):
                self._append_verification(attempt)
            attempt.finalize(AttemptStatus.FAILED, finished=self._clock())
            self._record_timing(paths, attempt)
            return attempt

        summary_written = self._write_summary(attempt, AttemptStatus.OK, destination)
        self._record_history(paths, attempt)

        status = AttemptStatus.OK
        if self._should_verify(mode, hooks):
            hooks.phase(PHASE_VERIFY)
            self._run_verify(source, destination, paths, attempt, stamp)
            if attempt.verification is VerificationResult.DIFFERENCES_FOUND:
                status = AttemptStatus.OK_WITH_DIFFERENCES
        if summary_written:
            self._append_verification(attempt)
            if status is not AttemptStatus.OK:
                self._guard(
                    "summary", append_final_status, attempt.summary_path, status, attempt=attempt
                )
        attempt.finalize(status, finished=self._clock())
        self._record_timing(paths, attempt)
        return attempt

    def _run_copy(
        self,
        invocation: EngineInvocation,
        attempt: BackupAttempt,
        hooks: BackupHooks,
        *,
        total: int | None,
    ) -> int:
        with self.engine.invoke(invocation) as run:
            if invocation.output_mode is OutputMode.PROGRESS:
                parser = ProgressParser(total or 0)
                state = parser.consume(run.lines, on_update=hooks.on_progress)
                attempt.files_seen = state.count
            else:
                for line in run.lines:
                    if hooks.on_line is not None:
                        hooks.on_line(line)
            return run.wait()

    def _should_verify(self, mode: BackupMode, hooks: BackupHooks) -> bool:
        if mode.verify is VerifyMode.ALWAYS:
            return True
        if mode.verify is VerifyMode.NEVER:
            return False
        if hooks.ask_verify is None:
            logger.debug("verify mode is 'ask' but nobody can answer; skipping")
            return False
        return bool(hooks.ask_verify())

    def _run_verify(
        self,
        source: Path,
        destination: Path,
        paths: BackupPaths,
        attempt: BackupAttempt,
        stamp: str,
    ) -> None:
        attempt.verify_report_path = paths.logs_dir / f"verify_{stamp}.log"
        invocation = build_verify_invocation(
            source,
            destination,
            log_path=attempt.verify_report_path,
            settings=self.settings.engine,
            excluded_names=self.settings.excluded_names,
            work_log_dir=paths.logs_dir,
            history_dirs=(paths.history_dir, paths.mirrored_history_dir(source, destination)),
        )
        verify_started = self._clock()
        with self.engine.invoke(invocation) as run:
            for _line in run.lines:
                pass
            exit_code = run.wait()
        attempt.verify_duration = self._clock() - verify_started
        attempt.verify_exit_code = exit_code
        with closing(self._report_lines(attempt.verify_report_path)) as lines:
            attempt.verification = interpret_verification(exit_code, lines)
        logger.info("verification %s (exit code %s)", attempt.verification.value, exit_code)

    def _write_summary(
        self,
        attempt: BackupAttempt,
        status: AttemptStatus,
        destination: Path,
    ) -> bool:
        return self._guard(
            "summary",
            write_summary,
            attempt.summary_path,
            attempt,
            attempt=attempt,
            status=status,
            destination_path=destination,
        )

    def _append_verification(self, attempt: BackupAttempt) -> None:
        self._guard("summary", append_verification, attempt.summary_path, attempt, attempt=attempt)

    def _record_history(self, paths: BackupPaths, attempt: BackupAttempt) -> None:
        self._guard(
            "history ledger",
            record_backup,
            paths.history_file,
            attempt.destination,
            self._clock(),
            attempt=attempt,
            lock_timeout=self.settings.lock_timeout,
        )

    def _record_timing(self, paths: BackupPaths, attempt: BackupAttempt) -> None:
        self._guard(
            "timing log",
            record_timing,
            paths.timing_file,
            attempt.to_timing_entry(),
            attempt=attempt,
            lock_timeout=self.settings.lock_timeout,
        )

    def _report_lines(self, path: Path) -> Iterator[str]:
        return read_report_lines(path, encoding=self.settings.report_encoding)

    @staticmethod
    def _guard(
        what: str, func: Callable[..., object], *args, attempt: BackupAttempt, **kwargs
    ) -> bool:
        # The copy already happened: report write failures, never undo the run.
        try:
            func(*args, **kwargs)
        except (OSError, LedgerLockedError) as exc:
            logger.warning("could not write %s: %s", what, exc)
            attempt.write_errors.append(f"{what}: {exc}")
            return False
        return True
