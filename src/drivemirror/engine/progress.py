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

"""Approximate copy progress derived from the engine's streamed output.

The engine writes from many worker threads into one stream, so lines can be
interleaved or split. Such lines fail classification and are simply not
counted: the percentage is a non-decreasing approximation, never exact.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

EXTRA_MARKER = "*EXTRA"

# A size token ("123", "1.5 m") followed by a file path token (drive letter,
# UNC or absolute path) that does not end in a separator. Directory lines end
# in a separator and header/statistics lines carry no size+path pair.
_FILE_LINE_RE = re.compile(
    r"(?:^|\s)\d+(?:\.\d+)?(?:\s?[kmgtKMGT])?\s+"
    r"(?:[A-Za-z]:[\\/]|\\\\|/)[^\t\r\n]*[^\\/\s]\s*$"
)


class LineKind(str, Enum):
    FILE = "file"
    EXTRA = "extra"
    OTHER = "other"


def classify_line(line: str) -> LineKind:
    if not _FILE_LINE_RE.search(line):
        return LineKind.OTHER
    if EXTRA_MARKER in line:
        return LineKind.EXTRA
    return LineKind.FILE


@dataclass
class ProgressState:
    total: int
    count: int = 0

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return max(0, min(100, (self.count * 100) // self.total))


class ProgressParser:
    """Fold a line stream into a :class:`ProgressState` against a pre-counted total."""

    def __init__(self, total: int) -> None:
        self.state = ProgressState(total=max(0, total))

    def feed(self, line: str) -> bool:
        if classify_line(line) is not LineKind.FILE:
            return False
        self.state.count += 1
        return True

    def consume(
        self,
        lines: Iterable[str],
        on_update: Callable[[ProgressState], None] | None = None,
        on_line: Callable[[str], None] | None = None,
    ) -> ProgressState:
        for line in lines:
            if on_line is not None:
                on_line(line)
            if self.feed(line) and on_update is not None:
                on_update(self.state)
        return self.state


def _normalize(path: str) -> str:
    return os.path.normcase(os.path.normpath(path))


def count_source_files(
    root: Path,
    *,
    excluded_names: Iterable[str] = (),
    excluded_paths: Iterable[Path] = (),
) -> int:
    """Best-effort file count under ``root``, skipping unreadable subtrees."""
    names = {name.casefold() for name in excluded_names}
    paths = {_normalize(str(path)) for path in excluded_paths}
    skipped: list[str] = []

    def _on_error(exc: OSError) -> None:
        skipped.append(str(exc.filename))

    total = 0
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames[:] = [
            name
            for name in dirnames
            if name.casefold() not in names
            and _normalize(os.path.join(dirpath, name)) not in paths
        ]
        total += len(filenames)
    if skipped:
        logger.debug("file count skipped %d unreadable folders: %s", len(skipped), skipped)
    return total
