"""
Tests for the registration stores.
"""

import pytest

from sequence_poller.exceptions import RegistrationError
from sequence_poller.registry import (
    InMemoryPollingRegistry,
    PollingRegistry,
    PollingRegistryFactory,
)


class TestInMemoryPollingRegistry:
    """Test the InMemoryPollingRegistry implementation."""

    def setup_method(self):
        """Set up test fixtures."""
        self.registry = InMemoryPollingRegistry()

    @pytest.mark.asyncio
    async def test_register_and_query(self):
        assert await self.registry.get_polling_registration("orders") is False

        await self.registry.register_polling("orders")

        assert await self.registry.get_polling_registration("orders") is True
        assert "orders" in self.registry.registrations

    @pytest.mark.asyncio
    async def test_unregister_is_visible_to_next_query(self):
        await self.registry.register_polling("orders")
        await self.registry.unregister_polling("orders")

        assert await self.registry.get_polling_registration("orders") is False
        assert "orders" not in self.registry.registrations

    @pytest.mark.asyncio
    async def test_unregister_unknown_name_is_noop(self):
        await self.registry.unregister_polling("missing")

        assert await self.registry.get_active_names() == []

    @pytest.mark.asyncio
    async def test_get_active_names_sorted(self):
        for name in ("zeta", "alpha", "mid"):
            await self.registry.register_polling(name)

        assert await self.registry.get_active_names() == ["alpha", "mid", "zeta"]

    @pytest.mark.asyncio
    async def test_strict_mode_rejects_double_registration(self):
        registry = InMemoryPollingRegistry(strict=True)
        await registry.register_polling("orders")

        with pytest.raises(RegistrationError) as exc_info:
            await registry.register_polling("orders")

        assert exc_info.value.name == "orders"
        assert exc_info.value.code == "REGISTRATION_ERROR"

    def test_capabilities_are_bound_methods(self):
        capabilities = self.registry.capabilities()

        assert set(capabilities) == {
            "get_polling_registration",
            "register_polling",
            "unregister_polling",
        }
        assert capabilities["register_polling"].__self__ is self.registry


class TestPollingRegistryFactory:
    """Test the registry factory."""

    def test_create_memory_registry(self):
        registry = PollingRegistryFactory.create_registry("MEMORY", strict=True)

        assert isinstance(registry, InMemoryPollingRegistry)
        assert isinstance(registry, PollingRegistry)
        assert registry.strict is True

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown registry backend"):
            PollingRegistryFactory.create_registry("redis")

    def test_supported_backends(self):
        assert PollingRegistryFactory.get_supported_backends() == ["memory"]

    def test_abstract_registry_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            PollingRegistry()
