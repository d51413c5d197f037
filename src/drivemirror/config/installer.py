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
import shutil
import sys
from pathlib import Path

from platformdirs import user_config_dir

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = PACKAGE_ROOT / "config/default.toml"
CONFIG_FILENAME = "config.toml"
CONFIG_ENV = "DRIVEMIRROR_CONFIG"
XDG_CONFIG_ENV = "XDG_CONFIG_HOME"


def user_config_path() -> Path:
    xdg_override = os.environ.get(XDG_CONFIG_ENV)
    if xdg_override:
        return Path(xdg_override) / "drivemirror" / CONFIG_FILENAME
    if sys.platform == "darwin":
        return Path.home() / ".config" / "drivemirror" / CONFIG_FILENAME
    return Path(user_config_dir("drivemirror", appauthor=False)) / CONFIG_FILENAME


def init_user_config() -> Path:
    path = user_config_path()
    if not _ensure_user_config(path):
        raise OSError(f"unable to create config dir at {path.parent}")
    return path.parent


def user_config_needs_init() -> bool:
    return not user_config_path().exists()


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return Path(env_path)
    user_path = user_config_path()
    if _ensure_user_config(user_path):
        return user_path
    return DEFAULT_CONFIG_PATH


def _ensure_user_config(path: Path) -> bool:
    try:
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(DEFAULT_CONFIG_PATH, path)
    except OSError:
        return False
    return True
