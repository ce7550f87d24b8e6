"""Query builder: accumulates conditions against one index and executes them.

A ``Query`` folds every condition into the adapter's native query as soon as
it is declared. Terminal operations (``get``, ``count``, ``delete``,
``paginate``) first run the registered callbacks, exactly once per query,
then hand the native query to the adapter.

Example::

    records = (
        index.search("name", "shoes", fuzzy=0.8)
        .where("brand", "acme")
        .select("name", "price")
        .limit(10)
        .get()
    )
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from polysearch.core.pagination import current_page
from polysearch.models.condition import DEFAULT_DISTANCE, Condition
from polysearch.models.page import Page
from polysearch.models.record import Record, project

if TYPE_CHECKING:
    from polysearch.adapters.base.adapter import NativeQuery
    from polysearch.core.index import Index

logger = logging.getLogger(__name__)

QueryCallback = Callable[["NativeQuery"], "NativeQuery | None"]


class Query:
    """Fluent search builder bound to one :class:`~polysearch.core.index.Index`.

    Not thread-safe: a query belongs to the code path that built it.
    """

    def __init__(self, index: Index) -> None:
        self.index = index
        self.query: NativeQuery = index.adapter.new_query()
        self.columns: list[str] | None = None
        self._limit: int | None = None
        self._offset: int = 0
        self._callbacks: list[QueryCallback] = []
        self._callbacks_executed = False

    def __repr__(self) -> str:
        return f"Query(index={self.index.name!r}, driver={self.index.driver!r})"

    def _add(self, condition: Condition) -> Query:
        self.query = self.index.adapter.add_condition_to_query(self.query, condition)
        return self

    def where(self, field: str | list[str], value: Any) -> Query:
        """Add an exact-match filter.

        The value is matched as an entire phrase and does not affect scoring.
        It does not guarantee that the whole field value equals ``value``.
        """
        return self._add(Condition(field=field, value=value, required=True, filter=True))

    def where_location(self, lat: float, long: float, distance: float = DEFAULT_DISTANCE) -> Query:
        """Keep only documents within ``distance`` meters of (``lat``, ``long``)."""
        return self._add(Condition(lat=lat, long=long, distance=distance))

    def search(
        self,
        field: str | list[str] | None,
        value: Any,
        *,
        required: bool = True,
        prohibited: bool = False,
        phrase: bool = False,
        fuzzy: bool | float | None = None,
    ) -> Query:
        """Add a full-text clause.

        Args:
            field: Field name, list of names, or ``None``/``'*'`` for all fields.
            value: Text to match.
            required: Require a match (default).
            prohibited: Require a non-match.
            phrase: Match ``value`` as a phrase.
            fuzzy: ``True`` or a similarity between 0 and 1 for typo tolerance.
        """
        return self._add(
            Condition(
                field=field,
                value=value,
                required=required,
                prohibited=prohibited,
                phrase=phrase,
                fuzzy=fuzzy,
            )
        )

    def add_callback(self, callback: QueryCallback, driver: str | Iterable[str] | None = None) -> Query:
        """Register a hook called with the native query just before execution.

        A truthy return value replaces the native query. When ``driver`` is
        given, the hook is only kept if the index uses one of those drivers.
        """
        if driver:
            drivers = {driver} if isinstance(driver, str) else set(driver)
            if self.index.driver not in drivers:
                return self
        self._callbacks.append(callback)
        return self

    def select(self, *columns: str | Iterable[str]) -> Query:
        """Restrict returned keys; ``select()`` or ``select('*')`` keeps all."""
        names: list[str] = []
        for column in columns:
            if isinstance(column, str):
                names.append(column)
            else:
                names.extend(column)
        self.columns = names or None
        return self

    def limit(self, limit: int, offset: int = 0) -> Query:
        self._limit = limit
        self._offset = offset
        return self

    def _execute_callbacks(self) -> None:
        if self._callbacks_executed:
            return
        self._callbacks_executed = True

        for callback in self._callbacks:
            replacement = callback(self.query)
            if replacement:
                self.query = replacement

    def get(self) -> list[Record]:
        """Execute the query and return the (projected) records."""
        self._execute_callbacks()

        records = self.index.adapter.run_query(
            self.query,
            limit=self._limit,
            offset=self._offset if self._limit is not None else None,
            columns=self.columns,
        )
        return project(records, self.columns)

    def count(self) -> int:
        """Execute the query and return the total number of matches."""
        self._execute_callbacks()
        return self.index.adapter.run_count(self.query)

    def delete(self) -> int:
        """Delete every document the query returns.

        Without a limit this deletes all matches: backends cap one unlimited
        fetch at their result window, so matches are fetched and deleted
        until a pass removes nothing.

        Returns:
            The number of documents actually deleted.
        """
        self.columns = None
        deleted = 0
        while True:
            removed = sum(1 for record in self.get() if self.index.delete(record["id"]))
            deleted += removed
            if not removed or self._limit is not None:
                break
        logger.info("Deleted %d documents from '%s' by query", deleted, self.index.name)
        return deleted

    def paginate(self, per_page: int = 15, page: int | None = None) -> Page:
        """Execute one page of the query.

        Args:
            per_page: Page size.
            page: 1-based page number; read from the request context when omitted.
        """
        number = max(1, page if page is not None else current_page())
        self.limit(per_page, (number - 1) * per_page)
        return Page(items=self.get(), total=self.count(), per_page=per_page, current_page=number)
