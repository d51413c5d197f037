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

import os
import shlex
import subprocess
from pathlib import Path

import typer

from ...config import load_app_config, resolve_config_path
from ..core.common import _ctx_value, _run_cli
from ..ui import build_kv_table, console, panel

_CONFIG_HELP = (
    "Edit or inspect the TOML config that backups read.\n\n"
    "If no editor is specified, $VISUAL / $EDITOR is used when set, otherwise the file\n"
    "opens with the system default application.\n\n"
    "Examples:\n"
    "  drivemirror config\n"
    "  drivemirror config --show\n"
    "  drivemirror config --editor notepad\n"
)
_SYSTEM_OPENER = {"default", "system"}


def register(app: typer.Typer) -> None:
    app.command(help=_CONFIG_HELP)(config)


def config(
    ctx: typer.Context,
    config: str | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Open this config file (overrides the default).",
        rich_help_panel="Config",
    ),
    editor: str | None = typer.Option(
        None,
        "--editor",
        "-e",
        help="Editor command (defaults to $VISUAL/$EDITOR; use 'default' for system opener).",
        rich_help_panel="Behavior",
    ),
    print_path: bool = typer.Option(
        False,
        "--print-path",
        help="Print the resolved config path and exit.",
        rich_help_panel="Behavior",
    ),
    show: bool = typer.Option(
        False,
        "--show",
        help="Validate the config and print the effective settings.",
        rich_help_panel="Behavior",
    ),
) -> None:
    config_value = config or _ctx_value(ctx, "config")
    quiet_value = bool(_ctx_value(ctx, "quiet"))
    debug_value = bool(_ctx_value(ctx, "debug"))

    def _run() -> None:
        path = resolve_config_path(config_value)
        if print_path:
            console.print(str(path), soft_wrap=True, highlight=False)
            return
        if show:
            _show_config(path)
            return
        _open_in_editor(path, editor=editor, quiet=quiet_value)

    _run_cli(_run, debug=debug_value)


def _show_config(path: Path) -> None:
    settings = load_app_config(path)
    defaults = settings.cli_defaults.backup
    rows = [
        ("File", str(path)),
        ("Engine command", " ".join(settings.engine_command)),
        ("Engine flags", " ".join(settings.engine.flags())),
        ("Work folder", settings.work_dir),
        ("Excluded folders", ", ".join(settings.excluded_dirs) or "-"),
        ("Destination pattern", settings.destination_pattern),
        ("Ledger lock timeout", f"{settings.lock_timeout:g}s"),
        ("Default output", defaults.output.value),
        ("Default verify", defaults.verify.value),
    ]
    console.print(panel("Effective config", build_kv_table(rows)))


def _open_in_editor(path: Path, *, editor: str | None, quiet: bool) -> None:
    target = Path(os.path.expandvars(str(path))).expanduser()
    if not target.is_file():
        raise FileNotFoundError(
            f"config file not found: {target} (run `drivemirror --init-config` to create it)"
        )
    command = _editor_command(editor)
    if not quiet:
        opener = " ".join(command) if command else "the default application"
        console.print(f"[muted]Opening {target} with {opener}...[/muted]")
    if command is None:
        typer.launch(str(target))
    else:
        subprocess.run([*command, str(target)], check=False)


def _editor_command(editor: str | None) -> list[str] | None:
    """Split the editor command line; ``None`` means the system opener."""
    raw = editor if editor is not None else os.environ.get("VISUAL") or os.environ.get("EDITOR")
    value = (raw or "").strip()
    if not value or value.lower() in _SYSTEM_OPENER:
        return None
    return shlex.split(value, posix=os.name != "nt")
