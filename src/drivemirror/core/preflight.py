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

import re
import shutil
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .errors import PreconditionError

DEFAULT_DESTINATION_PATTERN = "^BACKUP"
_RESERVED_LABEL_CHARS = ("|", "\n", "\r")


@dataclass(frozen=True)
class PreflightReport:
    source: Path
    destination: Path
    destination_label: str
    warnings: tuple[str, ...] = ()


def check_locations(source: Path, destination: Path) -> tuple[Path, Path]:
    for label, path in (("source", source), ("destination", destination)):
        if not path.exists():
            raise PreconditionError(f"{label} not reachable: {path}")
        if not path.is_dir():
            raise PreconditionError(f"{label} is not a directory: {path}")
    resolved_source = source.resolve()
    resolved_destination = destination.resolve()
    if resolved_source == resolved_destination:
        raise PreconditionError("source and destination are the same location")
    if resolved_source in resolved_destination.parents:
        raise PreconditionError("destination is inside the source")
    if resolved_destination in resolved_source.parents:
        raise PreconditionError("source is inside the destination")
    return resolved_source, resolved_destination


def check_destination_label(label: str, pattern: str = DEFAULT_DESTINATION_PATTERN) -> str:
    name = label.strip()
    if not name:
        raise PreconditionError("destination label cannot be empty")
    if any(char in name for char in _RESERVED_LABEL_CHARS):
        raise PreconditionError(f"destination label contains a reserved character: {label!r}")
    if name.startswith("#"):
        raise PreconditionError(f"destination label cannot start with '#': {label!r}")
    if re.search(pattern, name) is None:
        raise PreconditionError(
            f"destination label {name!r} does not match the required naming policy ({pattern}); "
            "only drives named for backups can be mirrored onto"
        )
    return name


def check_engine(command: Sequence[str]) -> None:
    if not command:
        raise PreconditionError("mirroring engine command is empty")
    if shutil.which(command[0]) is None:
        raise PreconditionError(f"mirroring engine not found: {command[0]}")


def check_capacity(source_used: int, destination_total: int) -> list[str]:
    if destination_total <= 0 or source_used <= destination_total:
        return []
    return [
        f"source holds {_format_bytes(source_used)} but the destination only has "
        f"{_format_bytes(destination_total)}; the mirror will not fit"
    ]


def run_preflight(
    source: Path,
    destination: Path,
    destination_label: str,
    *,
    engine_command: Sequence[str],
    destination_pattern: str = DEFAULT_DESTINATION_PATTERN,
    source_used: int | None = None,
    destination_total: int | None = None,
) -> PreflightReport:
    label = check_destination_label(destination_label, destination_pattern)
    resolved_source, resolved_destination = check_locations(source, destination)
    check_engine(engine_command)
    warnings: list[str] = []
    if source_used is not None and destination_total is not None:
        warnings.extend(check_capacity(source_used, destination_total))
    return PreflightReport(
        source=resolved_source,
        destination=resolved_destination,
        destination_label=label,
        warnings=tuple(warnings),
    )


def _format_bytes(value: int) -> str:
    size = float(value)
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if size < 1024 or unit == "TiB":
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
    return f"{value} B"
