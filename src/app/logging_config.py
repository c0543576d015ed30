# src/app/logging_config.py
"""
Central logging configuration for the navigation runtime.

Call configure_logging() once from the entrypoint:

    from app.logging_config import configure_logging
    configure_logging()

Phase changes and path acceptances log at INFO, per-tick detail at
DEBUG, recoverable trouble (oracle unreachable, stuck recovery) at
WARNING and faults with a traceback at ERROR.
"""

from __future__ import annotations

import logging
import sys
from typing import Union


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure root logging if no handlers are attached yet.

    Args:
        level: logging level or its name ("DEBUG", "INFO", ...)
    """
    root = logging.getLogger()

    # Don't duplicate handlers if someone already configured logging.
    if root.handlers:
        return

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level!r}")

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(
        logging.Formatter(fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    )
    root.addHandler(handler)
    root.setLevel(level)
