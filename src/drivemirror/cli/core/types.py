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

from dataclasses import dataclass

# Process exit codes of the backup command.
EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ERROR = 2
EXIT_DIFFERENCES = 3


@dataclass
class BackupArgs:
    """Typed container for backup command arguments."""

    source: str
    destination: str
    label: str | None = None
    config: str | None = None
    echo: bool = False
    progress: bool = False
    verify: str | None = None
    assume_yes: bool = False
    debug: bool = False
    quiet: bool = False
