"""Search facade: resolves the driver once and memoizes one Index per name.

Usage::

    search = Search()
    search.insert(1, {"name": "Red Shoes"}, {"price": 20})
    search.index("products").search("name", "shoes").get()
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from polysearch.config.settings import get_settings
from polysearch.core.index import Index, shared_clients
from polysearch.models.condition import DEFAULT_DISTANCE

if TYPE_CHECKING:
    from polysearch.adapters.base.registry import AdapterRegistry, ClientRegistry
    from polysearch.config.settings import Settings
    from polysearch.core.query import Query

logger = logging.getLogger(__name__)


class Search:
    """Entry point for a process or request.

    Args:
        driver: Driver name; defaults to ``settings.default``.
        settings: Configuration; defaults to :func:`get_settings`.
        clients: Client registry; defaults to the process-wide one.
        registry: Adapter registry; defaults to the built-in drivers.
    """

    def __init__(
        self,
        driver: str | None = None,
        *,
        settings: Settings | None = None,
        clients: ClientRegistry | None = None,
        registry: AdapterRegistry | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.driver = driver or self.settings.default
        self._clients = clients or shared_clients()
        self._registry = registry
        self._indexes: dict[str, Index] = {}
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Search(driver={self.driver!r}, indexes={sorted(self._indexes)})"

    def index(self, name: str | None = None) -> Index:
        """Return the index ``name`` (the configured default when omitted).

        Repeated calls with the same name return the same object.
        """
        name = name or self.settings.default_index
        index = self._indexes.get(name)
        if index is not None:
            return index
        with self._lock:
            index = self._indexes.get(name)
            if index is None:
                index = Index.factory(
                    name,
                    self.driver,
                    settings=self.settings,
                    clients=self._clients,
                    registry=self._registry,
                )
                self._indexes[name] = index
        return index

    # ── Default index shortcuts ──────────────────────────────────────────

    def query(self) -> Query:
        return self.index().query()

    def where(self, field: str | list[str], value: Any) -> Query:
        return self.index().where(field, value)

    def search(self, field: str | list[str] | None, value: Any, **options: Any) -> Query:
        return self.index().search(field, value, **options)

    def where_location(self, lat: float, long: float, distance: float = DEFAULT_DISTANCE) -> Query:
        return self.index().where_location(lat, long, distance)

    def select(self, *columns: Any) -> Query:
        return self.index().select(*columns)

    def insert(self, id: Any, fields: dict[str, Any], parameters: dict[str, Any] | None = None) -> bool:
        return self.index().insert(id, fields, parameters)

    def delete(self, id: Any) -> bool:
        return self.index().delete(id)

    def create_index(self, fields: list[str] | None = None) -> bool:
        return self.index().create_index(fields)

    def delete_index(self) -> bool:
        return self.index().delete_index()
