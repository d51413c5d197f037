#!/usr/bin/env python3
from __future__ import annotations

import typer

from .commands import (
    backup as backup_command,
    config as config_command,
    history as history_command,
)


def register(app: typer.Typer) -> None:
    backup_command.register(app)
    history_command.register(app)
    config_command.register(app)
