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

import shutil
import sys
from contextlib import ExitStack
from dataclasses import replace
from pathlib import Path

from rich.progress import Progress, TaskID

from ...backup.orchestrator import PHASE_COPY, BackupHooks, BackupOrchestrator
from ...config import BackupDefaults, load_app_config
from ...core.models import AttemptStatus, BackupMode, OutputMode, VerifyMode
from ...core.preflight import run_preflight
from ...engine.progress import ProgressState
from ...engine.robocopy import MirrorEngine
from ..core.log import _warn
from ..core.types import EXIT_DIFFERENCES, EXIT_FAILED, EXIT_OK, BackupArgs
from ..ui import (
    confirm_mirror,
    confirm_verify,
    console_err,
    copy_progress,
    echo_header,
    echo_line,
    phase_status,
)
from ..ui.summary import print_backup_summary


def resolve_mode(args: BackupArgs, defaults: BackupDefaults) -> BackupMode:
    if args.echo and args.progress:
        raise ValueError("use either --echo or --progress, not both")
    mode = defaults.mode()
    if args.progress:
        mode = replace(mode, output=OutputMode.PROGRESS)
    elif args.echo:
        mode = replace(mode, output=OutputMode.ECHO)
    if args.verify:
        try:
            mode = replace(mode, verify=VerifyMode(args.verify.strip().lower()))
        except ValueError:
            raise ValueError("verify must be one of always, never, ask") from None
    return mode


def default_label(destination: Path) -> str:
    return destination.name or destination.anchor.rstrip("\\/:") or str(destination)


def _disk_usage(source: Path, destination: Path) -> tuple[int | None, int | None]:
    try:
        return shutil.disk_usage(source).used, shutil.disk_usage(destination).total
    except OSError:
        return None, None


class _RunDisplay:
    """Renders orchestrator phases; one live display at a time."""

    def __init__(self, *, quiet: bool, interactive: bool) -> None:
        self.quiet = quiet
        self.interactive = interactive
        self.output = OutputMode.SILENT
        self._stack = ExitStack()
        self._progress: Progress | None = None
        self._task: TaskID | None = None

    def hooks(self, mode: BackupMode) -> BackupHooks:
        self.output = mode.output
        return BackupHooks(
            on_phase=self.on_phase,
            on_progress=self.on_progress,
            on_line=self.on_line,
            ask_verify=self.ask_verify if self.interactive else None,
        )

    def close(self) -> None:
        self._stack.close()
        self._stack = ExitStack()
        self._progress = None
        self._task = None

    def on_phase(self, name: str) -> None:
        self.close()
        if name != PHASE_COPY or self.output is OutputMode.SILENT:
            self._stack.enter_context(phase_status(name, quiet=self.quiet))
        elif self.output is OutputMode.PROGRESS:
            self._progress = self._stack.enter_context(copy_progress(quiet=self.quiet))
            if self._progress is not None:
                self._task = self._progress.add_task(
                    "Mirroring", total=None, percent=0, files="counting..."
                )
        else:
            echo_header(quiet=self.quiet)

    def on_progress(self, state: ProgressState) -> None:
        if self._progress is None or self._task is None:
            return
        total = state.total or None
        completed = state.count if total is None else min(state.count, total)
        self._progress.update(
            self._task,
            total=total,
            completed=completed,
            percent=state.percent,
            files=f"~{state.count}/{state.total} files",
        )

    def on_line(self, line: str) -> None:
        echo_line(line, quiet=self.quiet)

    def ask_verify(self) -> bool:
        self.close()
        return confirm_verify()


def run_backup_command(args: BackupArgs) -> int:
    config = load_app_config(args.config)
    mode = resolve_mode(args, config.cli_defaults.backup)
    source = Path(args.source).expanduser()
    destination = Path(args.destination).expanduser()
    label = args.label or default_label(destination)
    source_used, destination_total = _disk_usage(source, destination)
    report = run_preflight(
        source,
        destination,
        label,
        engine_command=config.engine_command,
        destination_pattern=config.destination_pattern,
        source_used=source_used,
        destination_total=destination_total,
    )
    for warning in report.warnings:
        _warn(warning, quiet=args.quiet)

    interactive = sys.stdin.isatty()
    if not args.assume_yes:
        if not interactive:
            raise ValueError("confirmation required; pass --yes to run non-interactively")
        confirmed = confirm_mirror(report.source, report.destination, report.destination_label)
        if not confirmed:
            console_err.print("Backup cancelled.")
            return EXIT_FAILED
    if mode.verify is VerifyMode.ASK and not interactive:
        _warn("verification skipped: no terminal to ask on (use --verify)", quiet=args.quiet)

    engine = MirrorEngine(config.engine_command, encoding=config.engine_encoding)
    orchestrator = BackupOrchestrator(engine, config.orchestrator_settings())
    display = _RunDisplay(quiet=args.quiet, interactive=interactive)
    try:
        attempt = orchestrator.run(
            report.source,
            report.destination,
            report.destination_label,
            mode,
            hooks=display.hooks(mode),
        )
    finally:
        display.close()

    for error in attempt.write_errors:
        _warn(f"could not record {error}", quiet=False)
    print_backup_summary(attempt, quiet=args.quiet)
    if attempt.status is AttemptStatus.FAILED:
        console_err.print(
            f"Mirroring engine exit code {attempt.exit_code}. "
            f"Details: {attempt.report_path} (summary: {attempt.summary_path})"
        )
        return EXIT_FAILED
    if attempt.status is AttemptStatus.OK_WITH_DIFFERENCES:
        return EXIT_DIFFERENCES
    return EXIT_OK
