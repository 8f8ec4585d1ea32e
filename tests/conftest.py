"""
Pytest configuration and fixtures for sequence poller tests.
"""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, Mock

import pytest

from sequence_poller.config import Settings
from sequence_poller.options import PollingOptions
from sequence_poller.poller import Poller
from sequence_poller.registry import InMemoryPollingRegistry


@pytest.fixture
def mock_settings() -> Settings:
    """Settings for testing."""
    return Settings(
        default_timeout_seconds=0.5,
        log_level="DEBUG",
        log_format="console",
    )


@pytest.fixture
def registry() -> InMemoryPollingRegistry:
    """Empty in-memory registration store."""
    return InMemoryPollingRegistry()


@pytest.fixture
def fake_sleep() -> AsyncMock:
    """Timer that returns immediately and records the requested delay."""
    return AsyncMock(return_value=None)


@pytest.fixture
def poller(fake_sleep: AsyncMock) -> Poller:
    """Poller whose Scheduled state does not really wait."""
    return Poller(sleep=fake_sleep)


@pytest.fixture
def calls() -> list[tuple[str, Any]]:
    """Ordered log of capability invocations."""
    return []


@pytest.fixture
def make_options(
    calls: list[tuple[str, Any]],
) -> Callable[..., PollingOptions]:
    """
    Build options whose capabilities record into ``calls``.

    Registration defaults to a plain dict so tests can inspect it; any
    capability can be overridden by keyword.
    """

    def factory(**overrides: Any) -> PollingOptions:
        registered: dict[str, bool] = {}

        def get_polling_registration(name: str) -> bool:
            calls.append(("get_registration", name))
            return registered.get(name, False)

        def register_polling(name: str) -> None:
            calls.append(("register", name))
            registered[name] = True

        def unregister_polling(name: str) -> None:
            calls.append(("unregister", name))
            registered.pop(name, None)

        def fetch_function() -> str:
            calls.append(("fetch", None))
            return "result"

        kwargs: dict[str, Any] = {
            "fetch_function": fetch_function,
            "get_polling_registration": get_polling_registration,
            "register_polling": register_polling,
            "unregister_polling": unregister_polling,
            "should_start_condition": Mock(return_value=True),
            "should_continue_condition": Mock(return_value=False),
        }
        kwargs.update(overrides)
        return PollingOptions(**kwargs)

    return factory
