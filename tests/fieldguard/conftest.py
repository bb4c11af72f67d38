"""Pytest fixtures for fieldguard tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from fieldguard.config import reset_options
from fieldguard.logging import BufferingHandler, LogLevel, configure_logging
from fieldguard.registry import reset_registries


@pytest.fixture(autouse=True)
def clean_globals() -> Iterator[None]:
    """Restore process-wide options and registries around every test."""
    reset_options()
    reset_registries()
    yield
    reset_options()
    reset_registries()


@pytest.fixture
def log_buffer() -> Iterator[BufferingHandler]:
    """Capture fieldguard log records at DEBUG level."""
    handler = BufferingHandler(capacity=10_000)
    configure_logging(level=LogLevel.DEBUG, handlers=[handler])
    yield handler
    configure_logging(level=LogLevel.INFO, handlers=[])
