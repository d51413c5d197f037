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

import importlib.metadata
from collections.abc import Callable
from typing import Any

import typer
from rich.traceback import install as install_rich_traceback

from ...core.models import VerifyMode
from ..ui import console_err
from .types import EXIT_ERROR

# Errors reported as a one-line message instead of a traceback.
_REPORTED_ERRORS = (OSError, RuntimeError, ValueError, TypeError, LookupError)


def _run_cli(func: Callable[[], Any], *, debug: bool) -> None:
    if debug:
        install_rich_traceback(show_locals=True)
    try:
        result = func()
    except _REPORTED_ERRORS as exc:
        if debug:
            raise
        console_err.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=EXIT_ERROR)
    if isinstance(result, int) and result != 0:
        raise typer.Exit(code=result)


def _ctx_value(ctx: typer.Context, key: str) -> Any:
    if ctx.obj is None:
        return None
    return ctx.obj.get(key)


def _ctx_flag(ctx: typer.Context, key: str, local: bool) -> bool:
    """A command flag that may also have been given before the subcommand."""
    return local or bool(_ctx_value(ctx, key))


def _verify_callback(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in {mode.value for mode in VerifyMode}:
        raise typer.BadParameter("verify must be one of always, never, ask")
    return normalized


def _check_output_flags(echo: bool, progress: bool) -> None:
    if echo and progress:
        raise typer.BadParameter("use either --echo or --progress, not both")


def _get_version() -> str:
    try:
        return importlib.metadata.version("drivemirror")
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0"
