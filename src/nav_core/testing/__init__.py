# src/nav_core/testing/__init__.py
"""In-memory collaborators for tests and offline experiments."""

from .fakes import FakeOracle, FakeSink, FakeWorld, OracleCall, straight_path

__all__ = ["FakeOracle", "FakeSink", "FakeWorld", "OracleCall", "straight_path"]
