"""Index: a named index bound to one driver's adapter."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from polysearch.adapters.base.registry import AdapterRegistry, ClientRegistry, default_registry
from polysearch.config.settings import get_settings
from polysearch.core.query import Query
from polysearch.models.condition import DEFAULT_DISTANCE

if TYPE_CHECKING:
    from polysearch.adapters.base.adapter import SearchAdapter
    from polysearch.config.settings import Settings

logger = logging.getLogger(__name__)

_shared_clients = ClientRegistry()


def shared_clients() -> ClientRegistry:
    """Process-wide client registry used when none is passed explicitly."""
    return _shared_clients


class Index:
    """A named index and the adapter that talks to its backend.

    Every query entry point returns a fresh :class:`Query`; document and
    lifecycle operations delegate to the adapter.

    Attributes:
        name: Index name.
        driver: Driver name (e.g., 'whoosh').
        adapter: The driver adapter serving this index.
    """

    def __init__(self, name: str, driver: str, adapter: SearchAdapter) -> None:
        self.name = name
        self.driver = driver
        self.adapter = adapter

    def __repr__(self) -> str:
        return f"Index(name={self.name!r}, driver={self.driver!r})"

    @classmethod
    def factory(
        cls,
        name: str,
        driver: str | None = None,
        *,
        settings: Settings | None = None,
        clients: ClientRegistry | None = None,
        registry: AdapterRegistry | None = None,
    ) -> Index:
        """Build an index, resolving the driver from settings when omitted.

        Raises:
            AdapterNotFoundError: If the driver is unknown.
        """
        settings = settings or get_settings()
        driver = driver or settings.default
        registry = registry or default_registry()
        adapter = registry.create(driver, name, settings, clients or shared_clients())
        logger.debug("Built index '%s' on driver '%s'", name, driver)
        return cls(name, driver, adapter)

    # ── Query entry points ───────────────────────────────────────────────

    def query(self) -> Query:
        return Query(self)

    def where(self, field: str | list[str], value: Any) -> Query:
        return self.query().where(field, value)

    def search(self, field: str | list[str] | None, value: Any, **options: Any) -> Query:
        return self.query().search(field, value, **options)

    def where_location(self, lat: float, long: float, distance: float = DEFAULT_DISTANCE) -> Query:
        return self.query().where_location(lat, long, distance)

    def select(self, *columns: Any) -> Query:
        return self.query().select(*columns)

    # ── Documents and lifecycle ──────────────────────────────────────────

    def create_index(self, fields: list[str] | None = None) -> bool:
        return self.adapter.create_index(fields)

    def insert(self, id: Any, fields: dict[str, Any], parameters: dict[str, Any] | None = None) -> bool:
        """Add a document, replacing any document with the same id."""
        return self.adapter.insert(id, fields, parameters)

    def delete(self, id: Any) -> bool:
        return self.adapter.delete(id)

    def delete_index(self) -> bool:
        return self.adapter.delete_index()
