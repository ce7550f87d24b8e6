"""Base search adapter: abstract interface for all search engine drivers.

Every backend must implement this interface to integrate with polysearch.
The adapter is responsible for:
  1. Folding backend-agnostic conditions into a native query object
  2. Executing native queries and counting their matches
  3. Mapping raw hits to the normalized record shape
  4. Managing documents and the index lifecycle
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from polysearch.adapters.base.exceptions import ConfigurationError
from polysearch.models.condition import Condition
from polysearch.models.record import Record

if TYPE_CHECKING:
    from polysearch.adapters.base.registry import ClientRegistry
    from polysearch.config.settings import Settings

logger = logging.getLogger(__name__)

NativeQuery = dict[str, Any]


def query_fingerprint(query: NativeQuery) -> str:
    """Content hash of a native query (canonical JSON, md5).

    Semantically identical queries produce the same digest regardless of
    key order.
    """
    payload = json.dumps(query, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


class SearchAdapter(ABC):
    """Abstract base class for search engine drivers.

    All adapters must implement:
      - create_index(): best-effort schema setup
      - new_query(): an empty native query seed
      - add_condition_to_query(): fold one Condition into a native query
      - _execute(): run a native query, returning records and the total
      - _execute_count(): count the matches of a native query
      - insert() / delete() / delete_index(): document and index lifecycle

    Backend communication failures never escape ``run_query``,
    ``run_count``, ``insert``, ``delete`` or ``delete_index``; they are
    logged and degraded to an empty list, zero or ``False``.

    The backend client is shared by every adapter with the same ``client_key``
    (the driver name unless a driver narrows it). It is
    built on first use through the ``ClientRegistry``, so configuration
    errors surface on the first backend call rather than at construction.

    Args:
        index_name: Name of the index (collection) this adapter serves.
        clients: Process-wide registry of backend client handles.
    """

    def __init__(self, index_name: str, clients: ClientRegistry) -> None:
        self.index_name = index_name
        self._clients = clients
        self._stored_totals: dict[str, int] = {}

    @classmethod
    @abstractmethod
    def from_settings(cls, index_name: str, settings: Settings, clients: ClientRegistry) -> SearchAdapter:
        """Build an adapter from this driver's connection block."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Driver name (e.g., 'whoosh', 'opensearch')."""

    @property
    def client_key(self) -> str:
        """Registry key of the shared client; adapters with the same key share it."""
        return self.name

    @property
    def client(self) -> Any:
        """The shared backend client for this driver, created on first use."""
        return self._clients.get(self.client_key, self._create_client)

    @abstractmethod
    def _create_client(self) -> Any:
        """Build the backend client handle.

        Raises:
            ConfigurationError: If required connection settings are missing.
        """

    @abstractmethod
    def create_index(self, fields: list[str] | None = None) -> bool:
        """Create the index.

        Schema-less backends return ``False`` without touching the backend.
        """

    @abstractmethod
    def new_query(self) -> NativeQuery:
        """Return a fresh, empty native query object."""

    @abstractmethod
    def add_condition_to_query(self, query: NativeQuery, condition: Condition) -> NativeQuery:
        """Fold ``condition`` into ``query`` and return the query."""

    @abstractmethod
    def _execute(
        self,
        query: NativeQuery,
        limit: int | None,
        offset: int | None,
        columns: list[str] | None,
    ) -> tuple[list[Record], int]:
        """Run ``query`` against the backend.

        Returns:
            The page of records and the total number of matches.

        Raises:
            Exception: Any backend failure; the caller degrades it.
        """

    @abstractmethod
    def _execute_count(self, query: NativeQuery) -> int:
        """Count the matches of ``query`` against the backend."""

    @abstractmethod
    def insert(self, id: Any, fields: dict[str, Any], parameters: dict[str, Any] | None = None) -> bool:
        """Add a document, replacing any existing document with the same id.

        Args:
            id: Document identity.
            fields: Values to index; returned in result rows.
            parameters: Values stored verbatim and merged into result rows.
        """

    @abstractmethod
    def delete(self, id: Any) -> bool:
        """Delete a document. Returns ``False`` if it did not exist."""

    @abstractmethod
    def delete_index(self) -> bool:
        """Delete the whole index. Returns ``False`` if it did not exist."""

    def run_query(
        self,
        query: NativeQuery,
        *,
        limit: int | None = None,
        offset: int | None = None,
        columns: list[str] | None = None,
    ) -> list[Record]:
        """Execute ``query`` once and return normalized records.

        The total observed by the backend is remembered for :meth:`run_count`.
        """
        key = query_fingerprint(query)
        try:
            records, total = self._execute(copy.deepcopy(query), limit, offset, columns)
        except ConfigurationError:
            raise
        except Exception:
            logger.warning("%s query failed on index '%s'", self.name, self.index_name, exc_info=True)
            return []
        self._stored_totals[key] = total
        logger.debug("%s query on '%s' returned %d of %d", self.name, self.index_name, len(records), total)
        return records

    def run_count(self, query: NativeQuery) -> int:
        """Return the total number of matches, ignoring pagination.

        A total already observed for an identical query is reused.
        """
        key = query_fingerprint(query)
        if key in self._stored_totals:
            return self._stored_totals[key]
        try:
            total = self._execute_count(copy.deepcopy(query))
        except ConfigurationError:
            raise
        except Exception:
            logger.warning("%s count failed on index '%s'", self.name, self.index_name, exc_info=True)
            return 0
        self._stored_totals[key] = total
        return total

    def forget_totals(self) -> None:
        """Drop every remembered total; called after writes."""
        self._stored_totals.clear()
