"""Logging setup for the nbctl command line."""

from __future__ import annotations

import logging


def verbosity_level(verbose: int) -> int:
    """Map the number of ``-v`` flags to a log level."""
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING


def configure_logging(*, level: int = logging.WARNING, force: bool = False) -> None:
    """Initialise the root logger once.

    Log records go to stderr so that they never mix with command output.
    Pass ``force=True`` to reconfigure, e.g. once per CLI invocation.
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
