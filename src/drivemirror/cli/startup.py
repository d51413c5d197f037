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

from rich.traceback import install as install_rich_traceback

from ..config import UiDefaults, init_user_config, load_cli_defaults, user_config_needs_init
from .core.log import configure_logging
from .ui import configure_ui, console


def run_startup(
    *,
    quiet: bool,
    no_color: bool,
    no_animations: bool,
    debug: bool,
    init_config: bool,
) -> bool:
    configure_ui(no_color=no_color, no_animations=no_animations)
    configure_logging(debug=debug)
    if debug:
        install_rich_traceback(show_locals=True)
    if init_config:
        config_dir = init_user_config()
        console.print(f"User config ready at {config_dir}")
        return True
    if user_config_needs_init():
        config_dir = init_user_config()
        if not quiet:
            console.print(f"[dim]Initialized user config at {config_dir}[/dim]")
    return False


def apply_ui_defaults(
    config: str | None,
    *,
    quiet: bool,
    no_color: bool,
    no_animations: bool,
) -> UiDefaults:
    """Merge the config's ``[ui]`` table into the command-line switches.

    A switch given on the command line always stays on; the config can only
    turn the others on.
    """
    defaults = load_cli_defaults(config).ui
    merged = UiDefaults(
        quiet=quiet or defaults.quiet,
        no_color=no_color or defaults.no_color,
        no_animations=no_animations or defaults.no_animations,
    )
    configure_ui(no_color=merged.no_color, no_animations=merged.no_animations)
    return merged
