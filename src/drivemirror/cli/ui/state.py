#!/usr/bin/env python3
from __future__ import annotations

import sys
from dataclasses import dataclass

from rich.console import Console
from rich.text import Text
from rich.theme import Theme

from ...core.models import AttemptStatus


def isatty(stream, fallback) -> bool:
    if stream is not None:
        try:
            return bool(stream.isatty())
        except (OSError, ValueError, AttributeError):
            return False
    return bool(getattr(fallback, "isatty", lambda: False)())


THEME = Theme(
    {
        "title": "bold cyan",
        "subtitle": "dim",
        "accent": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "red",
        "rule": "blue",
        "panel": "cyan",
        "muted": "dim",
        "engine": "grey62",
        "status.ok": "bold green",
        "status.differences": "bold yellow",
        "status.failed": "bold red",
    }
)

_STATUS_STYLES = {
    AttemptStatus.OK: "status.ok",
    AttemptStatus.OK_WITH_DIFFERENCES: "status.differences",
    AttemptStatus.FAILED: "status.failed",
}
_PANEL_STYLES = {
    AttemptStatus.OK: "success",
    AttemptStatus.OK_WITH_DIFFERENCES: "warning",
    AttemptStatus.FAILED: "error",
}


@dataclass
class UIContext:
    theme: Theme
    console: Console
    console_err: Console
    animations_enabled: bool = True


def _build_console(*, stderr: bool) -> Console:
    raw = sys.__stderr__ if stderr else sys.__stdout__
    fallback = sys.stderr if stderr else sys.stdout
    return Console(stderr=stderr, theme=THEME, force_terminal=isatty(raw, fallback))


def create_default_context() -> UIContext:
    return UIContext(
        theme=THEME,
        console=_build_console(stderr=False),
        console_err=_build_console(stderr=True),
    )


DEFAULT_CONTEXT = create_default_context()


def get_context() -> UIContext:
    return DEFAULT_CONTEXT


def status_style(status: AttemptStatus) -> str:
    return _STATUS_STYLES[status]


def panel_style(status: AttemptStatus) -> str:
    return _PANEL_STYLES[status]


def format_hint(help_text: str) -> Text:
    hint = Text("Hint: ", style="muted")
    hint.append(help_text, style="subtitle")
    return hint
