"""
Registration stores for polling sequences.

The poller never keeps registration state itself. It talks to a store only
through three capabilities (query, register, unregister). This module ships an
abstract store and an in-memory backend whose bound methods satisfy that
contract directly.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog

from .exceptions import RegistrationError

logger = structlog.get_logger(__name__)


class PollingRegistry(ABC):
    """Abstract base class for polling registration stores."""

    @abstractmethod
    async def get_polling_registration(self, name: str) -> bool:
        """
        Check whether a sequence with this name is active.

        Args:
            name: Polling sequence name

        Returns:
            True if the name is registered
        """
        pass

    @abstractmethod
    async def register_polling(self, name: str) -> None:
        """
        Mark a sequence as active.

        Args:
            name: Polling sequence name
        """
        pass

    @abstractmethod
    async def unregister_polling(self, name: str) -> None:
        """
        Mark a sequence as inactive.

        Args:
            name: Polling sequence name
        """
        pass

    @abstractmethod
    async def get_active_names(self) -> list[str]:
        """
        Get all currently registered names.

        Returns:
            Sorted list of active sequence names
        """
        pass

    def capabilities(self) -> dict[str, Callable[[str], Any]]:
        """Bound capabilities, ready to be spread into ``PollingOptions``."""
        return {
            "get_polling_registration": self.get_polling_registration,
            "register_polling": self.register_polling,
            "unregister_polling": self.unregister_polling,
        }


class InMemoryPollingRegistry(PollingRegistry):
    """In-memory registration store for a single process."""

    def __init__(self, strict: bool = False) -> None:
        """
        Initialize the in-memory registry.

        Args:
            strict: Raise on registering an already active name
        """
        self.strict = strict
        self.registrations: dict[str, datetime] = {}

    async def get_polling_registration(self, name: str) -> bool:
        return name in self.registrations

    async def register_polling(self, name: str) -> None:
        if name in self.registrations and self.strict:
            raise RegistrationError(
                f"Polling sequence {name!r} is already registered", name=name
            )

        self.registrations[name] = datetime.now(UTC)
        logger.debug("Registered polling sequence", name=name)

    async def unregister_polling(self, name: str) -> None:
        # Unregistering an inactive name is a no-op; aborted chains may race
        # with an external cancel that already removed it.
        if self.registrations.pop(name, None) is not None:
            logger.debug("Unregistered polling sequence", name=name)

    async def get_active_names(self) -> list[str]:
        return sorted(self.registrations)


class PollingRegistryFactory:
    """Factory for creating registration stores by backend name."""

    @staticmethod
    def create_registry(backend: str, **kwargs: Any) -> PollingRegistry:
        """
        Create a registry instance for the requested backend.

        Args:
            backend: Backend name ('memory')
            **kwargs: Backend specific options

        Returns:
            PollingRegistry instance

        Raises:
            ValueError: If the backend is not supported
        """
        backend = backend.lower()

        if backend == "memory":
            logger.info("Creating in-memory polling registry")
            return InMemoryPollingRegistry(strict=kwargs.get("strict", False))

        raise ValueError(
            f"Unknown registry backend: {backend}. Supported backends: 'memory'"
        )

    @staticmethod
    def get_supported_backends() -> list[str]:
        """Get list of supported registry backends."""
        return ["memory"]
