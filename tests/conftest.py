"""Top-level pytest configuration for sqlspy."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Sequence
from typing import Any

import pytest

# Import modules for their side effects so the error registry is populated
import sqlspy.config.errors
import sqlspy.errors.component_errors
import sqlspy.logging.errors

from sqlspy import runtime
from sqlspy.callsite import FrameInfo
from sqlspy.config.settings import SpySettings
from sqlspy.logging.channels import Channel
from sqlspy.logging.setup import setup_log
from sqlspy.runtime import Instrumentation

CALL_SITE = "app.orders.place_order(orders.py:42)"


class FakeResolver:
    """Call-site resolver returning a fixed location."""

    def __init__(self, call_site: str | None = CALL_SITE) -> None:
        self.call_site = call_site
        self.calls = 0

    def resolve(self, frames: Sequence[FrameInfo] | None = None) -> str | None:
        self.calls += 1
        return self.call_site


def pytest_configure(config):
    """Configure pytest to recognize our custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (deselect with '-m "
        "not integration')",
    )


@pytest.fixture(autouse=True)
def isolated_setup_log() -> Iterator[None]:
    """Each test starts with an empty, unattached setup log."""
    setup_log.detach()
    setup_log.clear()
    yield
    setup_log.detach()
    setup_log.clear()


@pytest.fixture(autouse=True)
def restore_channel_loggers() -> Iterator[None]:
    """Undo level, handler and propagate changes made to channel loggers."""
    saved = {}
    for channel in Channel:
        logger = logging.getLogger(channel.value)
        saved[channel] = (logger.level, list(logger.handlers), logger.propagate)
    yield
    for channel, (level, handlers, propagate) in saved.items():
        logger = logging.getLogger(channel.value)
        for handler in list(logger.handlers):
            if handler not in handlers:
                logger.removeHandler(handler)
                handler.close()
        logger.setLevel(level)
        logger.propagate = propagate


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch) -> None:
    """Keep SQLSPY_* variables from the developer's shell out of the tests."""
    for name in list(os.environ):
        if name.upper().startswith("SQLSPY_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def make_instrumentation(fake_resolver) -> Any:
    """Factory for an Instrumentation with explicit settings and a fake resolver."""
    built: list[Instrumentation] = []

    def factory(**overrides: Any) -> Instrumentation:
        instrumentation = Instrumentation(
            settings=SpySettings(**overrides), resolver=fake_resolver
        )
        built.append(instrumentation)
        return instrumentation

    yield factory
    for instrumentation in built:
        if not instrumentation.registry.is_shut_down:
            instrumentation.shutdown()


@pytest.fixture
def default_instrumentation() -> Iterator[None]:
    """Reset the process-wide instrumentation around a test."""
    runtime.set_instrumentation(None)
    yield
    runtime.shutdown()
