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

import questionary
from rich.padding import Padding
from rich.rule import Rule

from .state import UIContext, format_hint, get_context

QUESTIONARY_STYLE = questionary.Style(
    [
        ("question", "bold"),
        ("answer", "bold"),
        ("instruction", "fg:ansibrightblack"),
    ]
)

DEFAULT_CONTEXT = get_context()


def _resolve_context(context: UIContext | None) -> UIContext:
    return context or DEFAULT_CONTEXT


def print_prompt_header(
    help_text: str | None,
    *,
    warning: str | None = None,
    context: UIContext | None = None,
) -> None:
    context = _resolve_context(context)
    output = context.console
    output.print(Rule(style="rule"))
    if warning:
        output.print(Padding(f"[warning]{warning}[/warning]", (0, 0, 0, 1)))
    if help_text:
        output.print(Padding(format_hint(help_text), (0, 0, 0, 1)))


def prompt_yes_no(
    prompt: str,
    *,
    default: bool,
    help_text: str | None = None,
    warning: str | None = None,
    context: UIContext | None = None,
) -> bool:
    print_prompt_header(help_text, warning=warning, context=context)
    value = questionary.confirm(
        prompt,
        default=default,
        qmark="",
        style=QUESTIONARY_STYLE,
    ).ask()
    if value is None:
        raise KeyboardInterrupt
    return value


def confirm_mirror(
    source: Path,
    destination: Path,
    label: str,
    *,
    context: UIContext | None = None,
) -> bool:
    return prompt_yes_no(
        f"Mirror {source} onto {label} ({destination})?",
        default=False,
        warning=f"Files on {label} that are not on {source} will be deleted.",
        help_text="Pass --yes to skip this question in scripts.",
        context=context,
    )


def confirm_verify(*, context: UIContext | None = None) -> bool:
    return prompt_yes_no(
        "Verify the backup now?",
        default=True,
        help_text="Runs a read-only comparison of source and destination.",
        context=context,
    )
