#!/usr/bin/env python3
from __future__ import annotations

import re
from datetime import datetime, timedelta

NOT_PERFORMED = "not performed"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_DURATION_RE = re.compile(r"^(\d+):([0-5]\d):([0-5]\d)$")


def format_duration(value: timedelta | None) -> str:
    if value is None:
        return NOT_PERFORMED
    seconds = max(0, int(value.total_seconds()))
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}"


def parse_duration(text: str) -> timedelta | None:
    """Inverse of :func:`format_duration`; raises ``ValueError`` on garbage."""
    value = text.strip()
    if value == NOT_PERFORMED:
        return None
    match = _DURATION_RE.match(value)
    if match is None:
        raise ValueError(f"invalid duration: {text!r}")
    hours, minutes, seconds = (int(part) for part in match.groups())
    return timedelta(hours=hours, minutes=minutes, seconds=seconds)


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(text: str) -> datetime:
    return datetime.strptime(text.strip(), TIMESTAMP_FORMAT)


def file_stamp(value: datetime) -> str:
    return value.strftime("%Y%m%d_%H%M%S")
