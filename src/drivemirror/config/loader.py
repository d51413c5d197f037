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

import os
import re
import shlex
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from ..backup.orchestrator import DEFAULT_EXCLUDED_NAMES, DEFAULT_WORK_DIR, OrchestratorSettings
from ..core.models import BackupMode, OutputMode, VerifyMode
from ..core.preflight import DEFAULT_DESTINATION_PATTERN
from ..engine.robocopy import EngineSettings
from ..ledger.store import DEFAULT_LOCK_TIMEOUT
from .installer import resolve_config_path


@dataclass(frozen=True)
class BackupDefaults:
    output: OutputMode = OutputMode.SILENT
    verify: VerifyMode = VerifyMode.ASK

    def mode(self) -> BackupMode:
        return BackupMode(output=self.output, verify=self.verify)


@dataclass(frozen=True)
class UiDefaults:
    quiet: bool = False
    no_color: bool = False
    no_animations: bool = False


@dataclass(frozen=True)
class CliDefaults:
    backup: BackupDefaults = field(default_factory=BackupDefaults)
    ui: UiDefaults = field(default_factory=UiDefaults)


@dataclass(frozen=True)
class AppConfig:
    engine_command: tuple[str, ...] = ("robocopy",)
    engine_encoding: str | None = None
    engine: EngineSettings = field(default_factory=EngineSettings)
    work_dir: str = DEFAULT_WORK_DIR
    excluded_dirs: tuple[str, ...] = DEFAULT_EXCLUDED_NAMES
    destination_pattern: str = DEFAULT_DESTINATION_PATTERN
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    cli_defaults: CliDefaults = field(default_factory=CliDefaults)

    def orchestrator_settings(self) -> OrchestratorSettings:
        return OrchestratorSettings(
            engine=self.engine,
            excluded_names=self.excluded_dirs,
            work_dir=self.work_dir,
            lock_timeout=self.lock_timeout,
            report_encoding=self.engine_encoding,
        )


def load_app_config(path: str | Path | None = None) -> AppConfig:
    config_path = resolve_config_path(path)
    data = _load_toml(config_path)
    engine_cfg = _get_dict(data, "engine")
    paths_cfg = _get_dict(data, "paths")
    policy_cfg = _get_dict(data, "policy")
    return AppConfig(
        engine_command=_parse_command(engine_cfg.get("command"), field="engine.command"),
        engine_encoding=_parse_optional_unset_str(
            engine_cfg.get("encoding"), field="engine.encoding"
        ),
        engine=EngineSettings(
            threads=_parse_int_in_range(
                engine_cfg.get("threads"), field="engine.threads", default=16, low=1, high=128
            ),
            retries=_parse_int_in_range(
                engine_cfg.get("retries"), field="engine.retries", default=3, low=0
            ),
            retry_wait=_parse_int_in_range(
                engine_cfg.get("retry_wait"), field="engine.retry_wait", default=5, low=0
            ),
        ),
        work_dir=_parse_work_dir(paths_cfg.get("work_dir")),
        excluded_dirs=_parse_str_list(
            paths_cfg.get("excluded_dirs"),
            field="paths.excluded_dirs",
            default=DEFAULT_EXCLUDED_NAMES,
        ),
        destination_pattern=_parse_pattern(policy_cfg.get("destination_pattern")),
        lock_timeout=_parse_positive_float(
            policy_cfg.get("lock_timeout"),
            field="policy.lock_timeout",
            default=DEFAULT_LOCK_TIMEOUT,
        ),
        cli_defaults=_parse_cli_defaults(data),
    )


def load_cli_defaults(path: str | Path | None = None) -> CliDefaults:
    config_path = resolve_config_path(path)
    return _parse_cli_defaults(_load_toml(config_path))


def _parse_cli_defaults(data: dict[str, object]) -> CliDefaults:
    backup_cfg = _get_nested_dict(data, "defaults", "backup")
    ui_cfg = _get_dict(data, "ui")
    return CliDefaults(
        backup=BackupDefaults(
            output=_parse_enum(
                backup_cfg.get("output"),
                OutputMode,
                field="defaults.backup.output",
                default=OutputMode.SILENT,
            ),
            verify=_parse_enum(
                backup_cfg.get("verify"),
                VerifyMode,
                field="defaults.backup.verify",
                default=VerifyMode.ASK,
            ),
        ),
        ui=UiDefaults(
            quiet=_parse_bool(ui_cfg.get("quiet"), field="ui.quiet", default=False),
            no_color=_parse_bool(ui_cfg.get("no_color"), field="ui.no_color", default=False),
            no_animations=_parse_bool(
                ui_cfg.get("no_animations"),
                field="ui.no_animations",
                default=False,
            ),
        ),
    )


def _load_toml(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _get_dict(data: dict[str, object], key: str) -> dict[str, object]:
    value = data.get(key)
    if isinstance(value, dict):
        return value
    return {}


def _get_nested_dict(data: dict[str, object], *keys: str) -> dict[str, object]:
    current: dict[str, object] = data
    for key in keys:
        value = current.get(key)
        if not isinstance(value, dict):
            return {}
        current = value
    return current


def _parse_command(value: object, *, field: str) -> tuple[str, ...]:
    if value is None:
        return ("robocopy",)
    if isinstance(value, list):
        parts = [str(part) for part in value]
    elif isinstance(value, str):
        parts = shlex.split(value, posix=os.name != "nt")
    else:
        raise ValueError(f"{field} must be a string or a list of strings")
    if not parts or not parts[0].strip():
        raise ValueError(f"{field} must not be empty")
    return tuple(parts)


def _parse_optional_unset_str(value: object, *, field: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{field} must be a string")
    normalized = value.strip()
    return normalized or None


def _parse_work_dir(value: object) -> str:
    name = _parse_optional_unset_str(value, field="paths.work_dir")
    if name is None:
        return DEFAULT_WORK_DIR
    if "/" in name or "\\" in name or name in {".", ".."}:
        raise ValueError("paths.work_dir must be a single folder name")
    return name


def _parse_str_list(value: object, *, field: str, default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None:
        return default
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"{field} must be a list of strings")
    return tuple(item.strip() for item in value if item.strip())


def _parse_pattern(value: object) -> str:
    pattern = _parse_optional_unset_str(value, field="policy.destination_pattern")
    if pattern is None:
        return DEFAULT_DESTINATION_PATTERN
    try:
        re.compile(pattern)
    except re.error as exc:
        raise ValueError(f"policy.destination_pattern is not a valid regex: {exc}") from exc
    return pattern


def _parse_enum(value: object, enum_type, *, field: str, default):
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValueError(f"{field} must be a string")
    normalized = value.strip().lower()
    if not normalized:
        return default
    try:
        return enum_type(normalized)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValueError(f"{field} must be one of {allowed}") from None


def _parse_bool(value: object, *, field: str, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value in (0, 1):
            return bool(value)
        raise ValueError(f"{field} must be a boolean")
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
        raise ValueError(f"{field} must be a boolean")
    raise ValueError(f"{field} must be a boolean")


def _parse_int_strict(value: object, *, field: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{field} must be an integer")
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError(f"{field} must be an integer")
        try:
            return int(text)
        except ValueError as exc:
            raise ValueError(f"{field} must be an integer") from exc
    raise ValueError(f"{field} must be an integer")


def _parse_int_in_range(
    value: object,
    *,
    field: str,
    default: int,
    low: int,
    high: int | None = None,
) -> int:
    if value is None:
        return default
    parsed = _parse_int_strict(value, field=field)
    if parsed < low or (high is not None and parsed > high):
        bound = f">= {low}" if high is None else f"between {low} and {high}"
        raise ValueError(f"{field} must be {bound}")
    return parsed


def _parse_positive_float(value: object, *, field: str, default: float) -> float:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"{field} must be a number")
    try:
        parsed = float(value)
    except ValueError as exc:
        raise ValueError(f"{field} must be a number") from exc
    if parsed <= 0:
        raise ValueError(f"{field} must be positive")
    return parsed
