"""Logging setup helpers using Rich."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: str = "WARNING") -> None:
    """Configure logging to render on stderr through Rich.

    Stdout stays reserved for command output so ``--json`` stays parseable.
    """
    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=False,
        show_level=True,
        show_time=True,
    )
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        handlers=[handler],
    )
