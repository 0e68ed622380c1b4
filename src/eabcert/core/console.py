"""Operator-facing status lines.

The workflow reports progress as fixed human-readable lines on stdout,
each preceded by a divider.  Logging goes to stderr separately.
"""

from __future__ import annotations

import logging
import sys

log = logging.getLogger(__name__)

DIVIDER = "------------------------------"


def status(message: str) -> None:
    """Print a divider followed by *message*."""
    log.debug("status: %s", message)
    print(DIVIDER)  # noqa: T201
    print(message)  # noqa: T201
    sys.stdout.flush()


def detail(message: str) -> None:
    """Print *message* without a divider (for values under a status line)."""
    print(message)  # noqa: T201
