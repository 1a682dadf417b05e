"""Logging setup for the command-line front end.

Library modules only create ``logging.getLogger(__name__)`` loggers; handlers
are installed here, once, by the CLI.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbose: bool = False, console: Console | None = None) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console or Console(stderr=True), show_path=verbose)],
        force=True,
    )
    logging.getLogger("babelchat").setLevel(level)
