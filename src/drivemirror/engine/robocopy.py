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

"""Narrow wrapper around the mirroring engine (``robocopy``).

Every quirk of the engine's output shape is expressed as a flag set attached
to an :class:`~drivemirror.core.models.OutputMode`; call sites never add
output flags on their own.
"""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from ..core.models import OutputMode

logger = logging.getLogger(__name__)

# Exit code bits, as documented for robocopy.
EXIT_FILES_COPIED = 1
EXIT_EXTRAS = 2
EXIT_MISMATCHED = 4
EXIT_COPY_FAILURES = 8
EXIT_FATAL = 16

ENGINE_FAILURE_THRESHOLD = EXIT_COPY_FAILURES
ENGINE_EXTRAS_CODE = EXIT_EXTRAS

_EXIT_NOTES = (
    (EXIT_FILES_COPIED, "files were copied"),
    (EXIT_EXTRAS, "extra files or directories were found on the destination"),
    (EXIT_MISMATCHED, "mismatched files or directories were detected"),
    (EXIT_COPY_FAILURES, "some files or directories could not be copied"),
    (EXIT_FATAL, "fatal error, no files were copied"),
)

# /TEE  also write the log to the console (needed to stream lines back).
# /NP   drop the per-file "nn%" annotations; they add numeric tokens that break
#       file-line classification.
# /FP   print full paths so every file line carries a path token.
OUTPUT_MODE_FLAGS: dict[OutputMode, tuple[str, ...]] = {
    OutputMode.SILENT: (),
    OutputMode.ECHO: ("/TEE",),
    OutputMode.PROGRESS: ("/TEE", "/NP", "/FP"),
}

_ERROR_LINE_RE = re.compile(r"\bERROR\s+\d+\s+\(0x[0-9A-Fa-f]+\)")
DEFAULT_ERROR_LINE_LIMIT = 20


@dataclass(frozen=True)
class EngineSettings:
    threads: int = 16
    retries: int = 3
    retry_wait: int = 5

    def flags(self) -> tuple[str, ...]:
        return (f"/R:{self.retries}", f"/W:{self.retry_wait}", f"/MT:{self.threads}")


@dataclass(frozen=True)
class EngineInvocation:
    source: Path
    destination: Path
    flags: tuple[str, ...]
    log_path: Path
    output_mode: OutputMode = OutputMode.SILENT
    excluded_dirs: tuple[str, ...] = field(default_factory=tuple)

    @property
    def streams_output(self) -> bool:
        return self.output_mode is not OutputMode.SILENT

    def argv(self, command: Sequence[str]) -> list[str]:
        args = [*command, str(self.source), str(self.destination), *self.flags]
        args.extend(OUTPUT_MODE_FLAGS[self.output_mode])
        args.append(f"/LOG:{self.log_path}")
        if self.excluded_dirs:
            args.extend(["/XD", *self.excluded_dirs])
        return args


def build_copy_invocation(
    source: Path,
    destination: Path,
    *,
    log_path: Path,
    output_mode: OutputMode,
    settings: EngineSettings,
    excluded_names: Iterable[str],
    work_log_dir: Path,
) -> EngineInvocation:
    # Protected folders are excluded by name; the work log directory by full
    # path so same-named user folders elsewhere still get copied.
    excluded = (*excluded_names, str(work_log_dir))
    return EngineInvocation(
        source=source,
        destination=destination,
        flags=("/MIR", *settings.flags(), "/DCOPY:DAT", "/V"),
        log_path=log_path,
        output_mode=output_mode,
        excluded_dirs=tuple(excluded),
    )


def build_verify_invocation(
    source: Path,
    destination: Path,
    *,
    log_path: Path,
    settings: EngineSettings,
    excluded_names: Iterable[str],
    work_log_dir: Path,
    history_dirs: Iterable[Path],
) -> EngineInvocation:
    # /XD matches exact paths, so the history folder has to be listed for
    # both the source and the destination copy.
    excluded = (*excluded_names, str(work_log_dir), *(str(path) for path in history_dirs))
    return EngineInvocation(
        source=source,
        destination=destination,
        flags=("/MIR", "/L", *settings.flags(), "/V", "/NP", "/FP"),
        log_path=log_path,
        output_mode=OutputMode.SILENT,
        excluded_dirs=tuple(excluded),
    )


def is_failure(exit_code: int) -> bool:
    return exit_code < 0 or exit_code >= ENGINE_FAILURE_THRESHOLD


def describe_exit_code(exit_code: int) -> list[str]:
    if exit_code < 0:
        return [f"engine terminated abnormally ({exit_code})"]
    if exit_code == 0:
        return ["no changes, source and destination already in sync"]
    return [note for bit, note in _EXIT_NOTES if exit_code & bit]


def extract_error_lines(
    lines: Iterable[str],
    *,
    limit: int = DEFAULT_ERROR_LINE_LIMIT,
) -> list[str]:
    """Collect engine ``ERROR nnn (0x...)`` lines with the message line after each."""
    excerpt: list[str] = []
    take_next = False
    for raw in lines:
        line = raw.rstrip()
        if take_next:
            take_next = False
            if line.strip() and not _ERROR_LINE_RE.search(line):
                excerpt.append(line.strip())
                if len(excerpt) >= limit:
                    break
                continue
        if _ERROR_LINE_RE.search(line):
            excerpt.append(line.strip())
            if len(excerpt) >= limit:
                break
            take_next = True
    return excerpt


class EngineRun:
    """A running engine process; use as a context manager."""

    def __init__(self, process: subprocess.Popen[str], invocation: EngineInvocation) -> None:
        self._process = process
        self.invocation = invocation

    @property
    def log_path(self) -> Path:
        return self.invocation.log_path

    @property
    def lines(self) -> Iterator[str]:
        stream = self._process.stdout
        if stream is None:
            return iter(())
        return (line.rstrip("\r\n") for line in stream)

    def wait(self) -> int:
        return self._process.wait()

    def __enter__(self) -> EngineRun:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._process.stdout is not None:
            self._process.stdout.close()
        if exc_type is not None and self._process.poll() is None:
            self._process.kill()
        self._process.wait()


class MirrorEngine:
    def __init__(self, command: Sequence[str] = ("robocopy",), *, encoding: str | None = None):
        if not command:
            raise ValueError("engine command cannot be empty")
        self.command = tuple(command)
        self.encoding = encoding

    def invoke(self, invocation: EngineInvocation) -> EngineRun:
        argv = invocation.argv(self.command)
        invocation.log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("starting engine: %s", argv)
        stdout = subprocess.PIPE if invocation.streams_output else subprocess.DEVNULL
        process = subprocess.Popen(
            argv,
            stdout=stdout,
            stderr=subprocess.STDOUT if invocation.streams_output else subprocess.DEVNULL,
            stdin=subprocess.DEVNULL,
            text=True,
            encoding=self.encoding,
            errors="replace",
            bufsize=1,
        )
        return EngineRun(process, invocation)
