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

import locale
from collections.abc import Iterable, Iterator
from pathlib import Path

from ..core.models import VerificationResult
from .robocopy import ENGINE_EXTRAS_CODE

EXTRA_MARKERS = ("*EXTRA File", "*EXTRA Dir")


def has_extra_markers(lines: Iterable[str]) -> bool:
    return any(marker in line for line in lines for marker in EXTRA_MARKERS)


def interpret_verification(exit_code: int, log_lines: Iterable[str]) -> VerificationResult:
    """Normalize a list-only compare run into pass/fail.

    The "extras" code without any extra-file line is the phantom produced by
    a folder excluded on one side only, so it counts as a pass. Any code not
    understood here is a difference.
    """
    if exit_code == 0:
        return VerificationResult.PASSED
    if exit_code == ENGINE_EXTRAS_CODE:
        if has_extra_markers(log_lines):
            return VerificationResult.DIFFERENCES_FOUND
        return VerificationResult.PASSED
    return VerificationResult.DIFFERENCES_FOUND


def read_report_lines(path: Path, *, encoding: str | None = None) -> Iterator[str]:
    """Stream an engine report line by line; a missing report yields nothing.

    The engine writes its reports in the console code page, so ``encoding``
    defaults to the locale encoding. Close the iterator (or exhaust it) to
    release the file.
    """
    try:
        handle = path.open(
            encoding=encoding or locale.getpreferredencoding(False), errors="replace"
        )
    except FileNotFoundError:
        return
    with handle:
        for line in handle:
            yield line.rstrip("\n")
