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

import typer

from ...backup.orchestrator import BackupPaths
from ...config import load_app_config
from ...ledger.history import HistoryLedger
from ...ledger.timing import TimingLog
from ..core.common import _ctx_value, _run_cli
from ..ui import console, panel
from ..ui.summary import build_history_table, build_timing_table

_HISTORY_HELP = (
    "Show when each backup drive was last mirrored from SOURCE.\n\n"
    "Example:\n"
    "  drivemirror history C:\\\n"
)
_TIMINGS_HELP = (
    "Show phase durations of the most recent backups from SOURCE.\n\n"
    "Example:\n"
    "  drivemirror timings C:\\\n"
)


def register(app: typer.Typer) -> None:
    app.command(help=_HISTORY_HELP)(history)
    app.command(help=_TIMINGS_HELP)(timings)


def _paths_for(ctx: typer.Context, source: Path) -> BackupPaths:
    config = load_app_config(_ctx_value(ctx, "config"))
    return BackupPaths.for_source(source.expanduser(), config.work_dir)


def history(
    ctx: typer.Context,
    source: Path = typer.Argument(..., help="Drive or folder that was backed up."),
) -> None:
    def _run() -> int:
        path = _paths_for(ctx, source).history_file
        ledger = HistoryLedger.load(path)
        if not len(ledger):
            console.print(f"[muted]No backups recorded in {path}[/muted]")
            return 0
        console.print(panel("Backup history", build_history_table(ledger)))
        return 0

    _run_cli(_run, debug=bool(_ctx_value(ctx, "debug")))


def timings(
    ctx: typer.Context,
    source: Path = typer.Argument(..., help="Drive or folder that was backed up."),
) -> None:
    def _run() -> int:
        path = _paths_for(ctx, source).timing_file
        log = TimingLog.load(path)
        if not len(log):
            console.print(f"[muted]No timings recorded in {path}[/muted]")
            return 0
        console.print(panel("Recent backups", build_timing_table(log)))
        return 0

    _run_cli(_run, debug=bool(_ctx_value(ctx, "debug")))
