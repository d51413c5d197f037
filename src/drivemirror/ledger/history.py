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
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from ..core.durations import format_timestamp, parse_timestamp
from ..core.models import HistoryEntry
from .store import DEFAULT_LOCK_TIMEOUT, atomic_write_text, ledger_lock, read_lines

logger = logging.getLogger(__name__)

TAG_NEWEST = "NEWEST"
TAG_OLDEST = "OLDEST"

_TITLE = "# drivemirror backup history"
_HEADER = ("Destination", "Last backup", "Tag")
_SEPARATOR = " | "


def compute_tags(entries: Iterable[HistoryEntry]) -> dict[str, str]:
    """Map identities to their NEWEST/OLDEST tag.

    Equal timestamps are resolved by identity name, ascending. A ledger with a
    single entry only has a NEWEST row, and NEWEST/OLDEST never share a row.
    """
    ordered = sorted(entries, key=lambda entry: entry.identity)
    if not ordered:
        return {}
    newest = max(ordered, key=lambda entry: entry.timestamp)
    tags = {newest.identity: TAG_NEWEST}
    rest = [entry for entry in ordered if entry.identity != newest.identity]
    if rest:
        oldest = min(rest, key=lambda entry: entry.timestamp)
        tags[oldest.identity] = TAG_OLDEST
    return tags


def _validate_identity(identity: str) -> str:
    name = identity.strip()
    if not name:
        raise ValueError("destination identity cannot be empty")
    if "|" in name or "\n" in name or "\r" in name:
        raise ValueError(f"destination identity contains a reserved character: {identity!r}")
    if name.startswith("#"):
        raise ValueError(f"destination identity cannot start with '#': {identity!r}")
    return name


def _parse_row(line: str) -> HistoryEntry | None:
    if not line.strip() or line.lstrip().startswith("#"):
        return None
    parts = [part.strip() for part in line.split("|")]
    if len(parts) not in (2, 3) or not parts[0]:
        return None
    try:
        timestamp = parse_timestamp(parts[1])
    except ValueError:
        return None
    return HistoryEntry(identity=parts[0], timestamp=timestamp)


class HistoryLedger:
    """Last-backup timestamp per destination identity."""

    def __init__(self, entries: Iterable[HistoryEntry] = ()) -> None:
        self._entries: dict[str, datetime] = {}
        for entry in entries:
            self._entries[entry.identity] = entry.timestamp

    @classmethod
    def load(cls, path: Path) -> HistoryLedger:
        entries = []
        for number, line in enumerate(read_lines(path), start=1):
            entry = _parse_row(line)
            if entry is None:
                if line.strip() and not _is_layout_line(line):
                    logger.debug("ignoring malformed history row %s:%d: %r", path, number, line)
                continue
            entries.append(entry)
        return cls(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, identity: str) -> datetime | None:
        return self._entries.get(identity)

    def upsert(self, identity: str, timestamp: datetime) -> None:
        self._entries[_validate_identity(identity)] = timestamp.replace(microsecond=0)

    def entries(self) -> list[HistoryEntry]:
        return [
            HistoryEntry(identity=identity, timestamp=self._entries[identity])
            for identity in sorted(self._entries)
        ]

    def tagged_rows(self) -> list[tuple[HistoryEntry, str]]:
        entries = self.entries()
        tags = compute_tags(entries)
        return [(entry, tags.get(entry.identity, "")) for entry in entries]

    def render(self) -> str:
        rows = [
            (entry.identity, format_timestamp(entry.timestamp), tag)
            for entry, tag in self.tagged_rows()
        ]
        widths = [len(label) for label in _HEADER]
        for row in rows:
            widths = [max(width, len(cell)) for width, cell in zip(widths, row)]
        lines = [
            _TITLE,
            _format_row(_HEADER, widths),
            _format_row(["-" * width for width in widths], widths),
        ]
        lines.extend(_format_row(row, widths) for row in rows)
        return "\n".join(lines) + "\n"

    def save(self, path: Path) -> None:
        atomic_write_text(path, self.render())


def _format_row(cells, widths: list[int]) -> str:
    return _SEPARATOR.join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()


def _is_layout_line(line: str) -> bool:
    parts = [part.strip() for part in line.split("|")]
    if parts and parts[0] == _HEADER[0]:
        return True
    return all(not part or set(part) == {"-"} for part in parts)


def record_backup(
    path: Path,
    identity: str,
    timestamp: datetime,
    *,
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> HistoryLedger:
    with ledger_lock(path, timeout=lock_timeout):
        ledger = HistoryLedger.load(path)
        ledger.upsert(identity, timestamp)
        ledger.save(path)
    logger.info("history updated for %s", identity)
    return ledger
