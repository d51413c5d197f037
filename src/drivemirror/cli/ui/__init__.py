#!/usr/bin/env python3
from __future__ import annotations

import sys
from collections.abc import Sequence
from contextlib import contextmanager

from rich import box
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.rule import Rule
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from ...backup.orchestrator import PHASE_COPY, PHASE_COUNT, PHASE_VERIFY
from .prompts import confirm_mirror, confirm_verify
from .state import UIContext, get_context, isatty

DEFAULT_CONTEXT = get_context()
THEME = DEFAULT_CONTEXT.theme
console = DEFAULT_CONTEXT.console
console_err = DEFAULT_CONTEXT.console_err

PHASE_MESSAGES = {
    PHASE_COUNT: "Counting files on the source...",
    PHASE_COPY: "Mirroring (details go to the engine report)...",
    PHASE_VERIFY: "Comparing source and destination...",
}


def _resolve_context(context: UIContext | None) -> UIContext:
    return context or DEFAULT_CONTEXT


def configure_ui(
    *,
    no_color: bool,
    no_animations: bool,
    context: UIContext | None = None,
) -> None:
    context = _resolve_context(context)
    context.animations_enabled = not no_animations
    context.console.no_color = no_color
    context.console_err.no_color = no_color


@contextmanager
def copy_progress(*, quiet: bool, context: UIContext | None = None):
    """Single overwriting line showing the approximate copy progress.

    The engine output cannot be counted exactly, so the line is labelled with
    a tilde and never claims more than 100%.
    """
    context = _resolve_context(context)
    if quiet:
        yield None
        return
    columns = [
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("~{task.fields[percent]:>3}%"),
        TextColumn("[muted]{task.fields[files]}[/muted]"),
        TimeElapsedColumn(),
    ]
    if context.animations_enabled:
        columns.insert(0, SpinnerColumn(style="accent"))
    progress_bar = Progress(
        *columns,
        console=context.console,
        transient=True,
        refresh_per_second=4 if context.animations_enabled else 1,
        disable=not isatty(sys.__stdout__, sys.stdout),
    )
    with progress_bar:
        yield progress_bar


@contextmanager
def phase_status(phase: str, *, quiet: bool, context: UIContext | None = None):
    """Spinner line for a phase that produces no output of its own."""
    context = _resolve_context(context)
    message = PHASE_MESSAGES.get(phase, f"{phase.capitalize()}...")
    if quiet:
        yield None
        return
    if not context.animations_enabled:
        context.console.print(f"[subtitle]{message}[/subtitle]")
        yield None
        return
    spinner = Spinner("dots", text=Text(message, style="subtitle"))
    with Live(spinner, console=context.console, transient=False, refresh_per_second=12) as live:
        try:
            yield live
        finally:
            live.update(Text(f"✓ {message}", style="success"), refresh=True)


def echo_header(*, quiet: bool, context: UIContext | None = None) -> None:
    if quiet:
        return
    _resolve_context(context).console.print(Rule("Mirroring engine output", style="rule"))


def echo_line(line: str, *, quiet: bool, context: UIContext | None = None) -> None:
    if quiet:
        return
    _resolve_context(context).console.print(line, style="engine", markup=False, highlight=False)


def build_kv_table(rows: Sequence[tuple[str, str]], *, title: str | None = None) -> Table:
    table = Table(title=title, show_header=False, box=box.SIMPLE, show_lines=False)
    table.add_column("Field", style="bold", no_wrap=True)
    table.add_column("Value")
    for key, value in rows:
        table.add_row(str(key), str(value))
    return table


def panel(title: str, renderable, *, style: str = "panel") -> Panel:
    return Panel(
        renderable,
        title=title,
        title_align="left",
        border_style=style,
        box=box.ROUNDED,
        padding=(1, 2),
    )


__all__ = [
    "PHASE_MESSAGES",
    "THEME",
    "build_kv_table",
    "configure_ui",
    "confirm_mirror",
    "confirm_verify",
    "console",
    "console_err",
    "copy_progress",
    "echo_header",
    "echo_line",
    "panel",
    "phase_status",
]
