"""Logging configuration for the layerguard CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Send log records to stderr through rich; stdout carries only the report.

    Args:
        verbose: Enable DEBUG level logging
        quiet: Suppress all but ERROR level logging
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=verbose,
        markup=False,
    )
    logging.basicConfig(
        level=level, format="%(message)s", handlers=[handler], force=True
    )
