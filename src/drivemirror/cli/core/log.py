#!/usr/bin/env python3
from __future__ import annotations

import logging

from rich.logging import RichHandler

from ..ui import console_err

_PACKAGE_LOGGER = "drivemirror"


def _warn(message: str, *, quiet: bool) -> None:
    if quiet:
        return
    console_err.print(f"[yellow]Warning:[/yellow] {message}")


def configure_logging(*, debug: bool) -> None:
    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.handlers.clear()
    handler = RichHandler(
        console=console_err,
        show_path=debug,
        markup=False,
        rich_tracebacks=debug,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    logger.propagate = False
