# src/app/__init__.py
"""
Application wiring for the navigation loop.

Exposes:
- configure_logging: one-time root logger setup
- build_sim_runtime / build_runtime: assemble controller + monitoring
- run_loop: fixed-rate tick loop
"""

from __future__ import annotations

from .logging_config import configure_logging
from .runtime import NavRuntime, build_runtime, build_sim_runtime, run_loop

__all__ = [
    "NavRuntime",
    "build_runtime",
    "build_sim_runtime",
    "configure_logging",
    "run_loop",
]
