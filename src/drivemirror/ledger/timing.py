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

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from ..core.durations import format_duration, format_timestamp, parse_duration, parse_timestamp
from ..core.models import TimingEntry
from .store import DEFAULT_LOCK_TIMEOUT, atomic_write_text, ledger_lock, read_lines

logger = logging.getLogger(__name__)

TIMING_LOG_CAP = 10
BLOCK_DELIMITER = "=" * 40

_TITLE = f"# drivemirror timing log (oldest first, last {TIMING_LOG_CAP} runs)"
_FIELDS = (
    ("Started", "started"),
    ("Source", "source"),
    ("Destination", "destination"),
    ("Count", "count_duration"),
    ("Copy", "copy_duration"),
    ("Verify", "verify_duration"),
    ("Total", "total_duration"),
    ("Flags", "flags"),
    ("Status", "status"),
)
_DURATION_FIELDS = {"count_duration", "copy_duration", "verify_duration", "total_duration"}


def split_blocks(lines: Iterable[str]) -> list[list[str]]:
    """Group lines into delimited blocks; text before the first delimiter is dropped."""
    blocks: list[list[str]] = []
    current: list[str] | None = None
    for line in lines:
        if line.strip() == BLOCK_DELIMITER:
            current = []
            blocks.append(current)
            continue
        if current is not None and line.strip():
            current.append(line)
    return blocks


def parse_block(block: Sequence[str]) -> TimingEntry | None:
    raw: dict[str, str] = {}
    for line in block:
        key, sep, value = line.partition(":")
        if not sep:
            return None
        raw[key.strip()] = value.strip()
    values: dict[str, object] = {}
    try:
        for label, name in _FIELDS:
            text = raw[label]
            if name == "started":
                values[name] = parse_timestamp(text)
            elif name in _DURATION_FIELDS:
                values[name] = parse_duration(text)
            else:
                values[name] = text
    except (KeyError, ValueError):
        return None
    return TimingEntry(**values)  # type: ignore[arg-type]


def format_block(entry: TimingEntry) -> list[str]:
    lines = [BLOCK_DELIMITER]
    for label, name in _FIELDS:
        value = getattr(entry, name)
        if name == "started":
            text = format_timestamp(value)
        elif name in _DURATION_FIELDS:
            text = format_duration(value)
        else:
            text = " ".join(str(value).split())
        lines.append(f"{label}: {text}")
    return lines


class TimingLog:
    """Capped, oldest-first record of recent backup attempts."""

    def __init__(self, entries: Iterable[TimingEntry] = (), *, cap: int = TIMING_LOG_CAP) -> None:
        if cap < 1:
            raise ValueError("timing log cap must be >= 1")
        self.cap = cap
        self._entries = list(entries)[-cap:]

    @classmethod
    def load(cls, path: Path, *, cap: int = TIMING_LOG_CAP) -> TimingLog:
        entries = []
        for block in split_blocks(read_lines(path)):
            entry = parse_block(block)
            if entry is None:
                logger.debug("discarding malformed timing block in %s: %r", path, block)
                continue
            entries.append(entry)
        return cls(entries, cap=cap)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> tuple[TimingEntry, ...]:
        return tuple(self._entries)

    def append(self, entry: TimingEntry) -> None:
        self._entries = [*self._entries[-(self.cap - 1) :], entry] if self.cap > 1 else [entry]

    def render(self) -> str:
        lines = [_TITLE]
        for entry in self._entries:
            lines.extend(format_block(entry))
        return "\n".join(lines) + "\n"

    def save(self, path: Path) -> None:
        atomic_write_text(path, self.render())


def record_timing(
    path: Path,
    entry: TimingEntry,
    *,
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> TimingLog:
    with ledger_lock(path, timeout=lock_timeout):
        log = TimingLog.load(path)
        log.append(entry)
        log.save(path)
    logger.info("timing log appended (%s, %s)", entry.destination, entry.status)
    return log
