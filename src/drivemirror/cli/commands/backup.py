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

import functools
from pathlib import Path

import typer

from ..core.common import _check_output_flags, _ctx_flag, _ctx_value, _run_cli, _verify_callback
from ..core.types import BackupArgs
from ..flows.backup import run_backup_command

_BACKUP_HELP = (
    "Mirror SOURCE onto DESTINATION (files missing from SOURCE are deleted).\n\n"
    "Exit codes: 0 backed up, 1 failed or cancelled, 2 usage/precondition error,\n"
    "3 backed up but verification found differences.\n\n"
    "Examples:\n"
    "  drivemirror backup C:\\ E:\\ --label BACKUP_A\n"
    "  drivemirror backup C:\\ E:\\ --progress --verify always --yes\n"
)


def register(app: typer.Typer) -> None:
    app.command(help=_BACKUP_HELP)(backup)


def backup(
    ctx: typer.Context,
    source: Path = typer.Argument(..., help="Drive or folder to back up."),
    destination: Path = typer.Argument(..., help="Backup drive to mirror onto."),
    label: str | None = typer.Option(
        None,
        "--label",
        "-l",
        help="Destination volume label (default: last path component).",
        rich_help_panel="Destination",
    ),
    echo: bool = typer.Option(
        False,
        "--echo",
        help="Stream every engine line to the terminal.",
        rich_help_panel="Output",
    ),
    progress: bool = typer.Option(
        False,
        "--progress",
        help="Count source files first and show an approximate progress line.",
        rich_help_panel="Output",
    ),
    verify: str | None = typer.Option(
        None,
        "--verify",
        help="Verify after copying: always, never or ask (default from config).",
        callback=_verify_callback,
        rich_help_panel="Verification",
    ),
    assume_yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation before mirroring.",
        rich_help_panel="Behavior",
    ),
    config: str | None = typer.Option(
        None,
        "--config",
        help="Use this TOML config file.",
        rich_help_panel="Config",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Show debug logging and tracebacks.",
        rich_help_panel="Debug",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        help="Hide non-error output.",
        rich_help_panel="Behavior",
    ),
) -> None:
    _check_output_flags(echo, progress)
    debug_value = _ctx_flag(ctx, "debug", debug)
    args = BackupArgs(
        source=str(source),
        destination=str(destination),
        label=label,
        config=config or _ctx_value(ctx, "config"),
        echo=echo,
        progress=progress,
        verify=verify,
        assume_yes=assume_yes,
        debug=debug_value,
        quiet=_ctx_flag(ctx, "quiet", quiet),
    )
    _run_cli(functools.partial(run_backup_command, args), debug=debug_value)
