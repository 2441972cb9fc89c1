"""Root logger setup for the bootkeep command line."""

from __future__ import annotations

import logging
import sys
from typing import Final

CLI_FORMAT: Final[str] = "%(levelname)s %(name)s: %(message)s"
VERBOSE_FORMAT: Final[str] = (
    "%(asctime)s.%(msecs)03d %(levelname)s [%(threadName)s] %(name)s: %(message)s"
)


def configure_logging(*, verbose: bool = False, force: bool = False) -> None:
    """Send log records to stderr, keeping stdout free for reports.

    ``verbose`` lowers the level to DEBUG, which shows every adapter command, and
    adds timestamps and the worker thread name so records from subsystems running
    in parallel can be told apart. ``force`` replaces handlers installed earlier.
    """

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=VERBOSE_FORMAT if verbose else CLI_FORMAT,
        datefmt="%H:%M:%S",
        stream=sys.stderr,
        force=force,
    )
