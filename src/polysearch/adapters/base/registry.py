"""Driver and client registries.

``AdapterRegistry`` maps driver names to adapter classes and builds one
adapter per index. ``ClientRegistry`` holds the backend client handle of
each driver, shared by every index of that driver and constructed exactly
once even when several threads race for it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from polysearch.adapters.base.exceptions import AdapterNotFoundError

if TYPE_CHECKING:
    from polysearch.adapters.base.adapter import SearchAdapter
    from polysearch.config.settings import Settings

logger = logging.getLogger(__name__)


class Driver(str, Enum):
    """Built-in driver names."""

    WHOOSH = "whoosh"
    OPENSEARCH = "opensearch"
    ALGOLIA = "algolia"


class ClientRegistry:
    """Process-scoped holder of one backend client per driver.

    Example:
        >>> clients = ClientRegistry()
        >>> client = clients.get("opensearch", lambda: OpenSearch(hosts=[...]))
        >>> clients.get("opensearch", lambda: ...) is client
        True
    """

    def __init__(self) -> None:
        self._clients: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, driver: str, factory: Callable[[], Any]) -> Any:
        """Return the client for ``driver``, building it with ``factory`` on first use."""
        client = self._clients.get(driver)
        if client is not None:
            return client
        with self._lock:
            client = self._clients.get(driver)
            if client is None:
                client = factory()
                self._clients[driver] = client
                logger.info("Created %s client", driver)
        return client

    def __contains__(self, driver: object) -> bool:
        return driver in self._clients

    def close_all(self) -> None:
        """Close every client that supports it and forget all of them."""
        with self._lock:
            for driver, client in self._clients.items():
                close = getattr(client, "close", None)
                if not callable(close):
                    continue
                try:
                    close()
                    logger.info("Closed %s client", driver)
                except Exception:
                    logger.warning("Error closing %s client", driver, exc_info=True)
            self._clients.clear()


class AdapterRegistry:
    """Registry of adapter classes keyed by driver name.

    Example:
        >>> registry = AdapterRegistry()
        >>> registry.register("opensearch", OpenSearchAdapter)
        >>> adapter = registry.create("opensearch", "products", settings, clients)
    """

    def __init__(self) -> None:
        self._classes: dict[str, type[SearchAdapter]] = {}

    def register(self, name: str, adapter_class: type[SearchAdapter]) -> None:
        """Register an adapter class.

        Args:
            name: Unique driver name.
            adapter_class: The adapter class to register.
        """
        if name in self._classes:
            logger.warning("Overwriting existing adapter registration: %s", name)
        self._classes[name] = adapter_class
        logger.debug("Registered adapter: %s", name)

    def create(self, name: str, index_name: str, settings: Settings, clients: ClientRegistry) -> SearchAdapter:
        """Build the adapter serving ``index_name`` with driver ``name``.

        Raises:
            AdapterNotFoundError: If no adapter is registered under this name.
        """
        if name not in self._classes:
            raise AdapterNotFoundError(
                f"No adapter registered with name '{name}'. "
                f"Available adapters: {list(self._classes.keys())}"
            )
        return self._classes[name].from_settings(index_name, settings, clients)

    @property
    def registered_adapters(self) -> list[str]:
        """List all registered driver names."""
        return list(self._classes.keys())


def default_registry() -> AdapterRegistry:
    """Return a registry with the built-in drivers registered."""
    from polysearch.adapters.algolia.adapter import AlgoliaAdapter
    from polysearch.adapters.opensearch.adapter import OpenSearchAdapter
    from polysearch.adapters.whoosh.adapter import WhooshAdapter

    registry = AdapterRegistry()
    registry.register(Driver.WHOOSH.value, WhooshAdapter)
    registry.register(Driver.OPENSEARCH.value, OpenSearchAdapter)
    registry.register(Driver.ALGOLIA.value, AlgoliaAdapter)
    return registry
