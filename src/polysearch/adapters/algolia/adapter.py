"""Algolia adapter: managed search API driver.

Communicates with the Algolia REST API using ``httpx``. Algolia has no
boolean clause tree, so conditions are folded into a query string plus
search parameters::

    {
        "terms": 'red -blue "running shoes"',
        "params": {
            "facetFilters": ["brand:acme"],
            "numericFilters": ["price=20"],
            "optionalWords": ["red"],
            "restrictSearchableAttributes": ["name"],
            "aroundLatLng": "40.0,-75.0",
            "aroundRadius": 5000,
        },
    }

Writes are asynchronous on Algolia's side; every write waits for its
indexing task to be published so the next read observes it.

Usage::

    adapter = AlgoliaAdapter("products", clients, connection=settings.connections.algolia)
    adapter.insert(1, {"name": "Red Shoes"}, {"price": 20})
    adapter.run_query(adapter.add_condition_to_query(adapter.new_query(), condition))
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from polysearch.adapters.base.adapter import NativeQuery, SearchAdapter
from polysearch.adapters.base.exceptions import BackendError, ConfigurationError
from polysearch.config.settings import AlgoliaConnection
from polysearch.models.condition import Condition
from polysearch.models.record import PARAMETERS_KEY, Record, encode_parameters, make_record

if TYPE_CHECKING:
    from polysearch.adapters.base.registry import ClientRegistry
    from polysearch.config.settings import Settings

logger = logging.getLogger(__name__)

OBJECT_ID = "objectID"
MAX_HITS_PER_PAGE = 1000
# Metadata Algolia adds to every hit
HIT_METADATA = ("_highlightResult", "_snippetResult", "_rankingInfo", "_distinctSeqID")


class AlgoliaAdapter(SearchAdapter):
    """Search adapter for Algolia.

    Supports:
      - Free-text search with optional words, exact phrases and exclusions
      - Facet and numeric filters, ``objectID`` lookups
      - Typo tolerance as the fuzzy switch
      - ``aroundLatLng`` geo-radius search
      - Native ``offset``/``length`` pagination

    Args:
        index_name: Algolia index name.
        clients: Client registry holding the shared ``httpx.Client``.
        connection: Application id, admin key and timeouts.
    """

    def __init__(
        self,
        index_name: str,
        clients: ClientRegistry,
        connection: AlgoliaConnection | None = None,
    ) -> None:
        super().__init__(index_name, clients)
        self._connection = connection or AlgoliaConnection()

    @classmethod
    def from_settings(cls, index_name: str, settings: Settings, clients: ClientRegistry) -> AlgoliaAdapter:
        return cls(index_name, clients, connection=settings.connections.algolia)

    @property
    def name(self) -> str:
        return "algolia"

    @property
    def _base_path(self) -> str:
        return f"/1/indexes/{quote(self.index_name, safe='')}"

    def _object_path(self, id: Any) -> str:
        return f"{self._base_path}/{quote(str(id), safe='')}"

    def _create_client(self) -> httpx.Client:
        """Create an ``httpx.Client`` bound to the application's API host."""
        app_id = self._connection.application_id
        api_key = self._connection.admin_api_key
        if not app_id or not api_key:
            raise ConfigurationError("Algolia driver requires 'application_id' and 'admin_api_key'.")

        return httpx.Client(
            base_url=f"https://{app_id}.algolia.net",
            timeout=httpx.Timeout(self._connection.timeout),
            headers={
                "X-Algolia-Application-Id": app_id,
                "X-Algolia-API-Key": api_key,
                "Content-Type": "application/json",
            },
        )

    def create_index(self, fields: list[str] | None = None) -> bool:
        return False

    # ── Query building ───────────────────────────────────────────────────

    def new_query(self) -> NativeQuery:
        # Algolia tolerates typos unless told otherwise; only fuzzy clauses enable it
        return {"terms": "", "params": {"typoTolerance": False}}

    def add_condition_to_query(self, query: NativeQuery, condition: Condition) -> NativeQuery:
        params = query.setdefault("params", {})

        if condition.is_geo:
            params["aroundLatLng"] = f"{condition.lat},{condition.long}"
            params["aroundRadius"] = condition.radius_meters
            return query

        fields = [OBJECT_ID] if condition.is_identity else condition.fields
        if (condition.filter or condition.is_identity) and fields:
            self._add_filter(params, fields, condition)
            return query

        self._add_terms(query, condition)
        return query

    @staticmethod
    def _add_filter(params: dict[str, Any], fields: list[str], condition: Condition) -> None:
        value = condition.value
        if fields != [OBJECT_ID] and _is_number(value):
            op = "!=" if condition.prohibited else "="
            key = "numericFilters"
            group = [f"{field}{op}{value}" for field in fields]
        else:
            sign = "-" if condition.prohibited else ""
            key = "facetFilters"
            group = [f"{field}:{sign}{value}" for field in fields]
        # a nested list is an OR group
        params.setdefault(key, []).append(group[0] if len(group) == 1 else group)

    @staticmethod
    def _add_terms(query: NativeQuery, condition: Condition) -> None:
        params = query["params"]
        words = condition.value.split()
        if not words:
            return

        tokens = [f'"{condition.value}"'] if condition.is_phrase else words
        if condition.prohibited:
            tokens = [f"-{token}" for token in tokens]
        if condition.is_phrase or condition.prohibited:
            params["advancedSyntax"] = True
        elif not condition.required:
            params.setdefault("optionalWords", []).extend(words)

        query["terms"] = f"{query.get('terms', '')} {' '.join(tokens)}".strip()

        if condition.max_edits is not None:
            params["typoTolerance"] = bool(params.get("typoTolerance")) or condition.max_edits > 0
        # the first scoped clause decides which attributes are searchable
        if condition.fields and "restrictSearchableAttributes" not in params:
            params["restrictSearchableAttributes"] = list(condition.fields)

    # ── Execution ────────────────────────────────────────────────────────

    def _search(self, payload: dict[str, Any]) -> dict[str, Any] | None:
        resp = self.client.post(f"{self._base_path}/query", json=payload)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()

    @staticmethod
    def _payload(query: NativeQuery) -> dict[str, Any]:
        payload = dict(query.get("params", {}))
        payload["query"] = query.get("terms", "").strip()
        return payload

    def _execute(
        self,
        query: NativeQuery,
        limit: int | None,
        offset: int | None,
        columns: list[str] | None,
    ) -> tuple[list[Record], int]:
        payload = self._payload(query)
        if limit is not None:
            payload["offset"] = offset or 0
            payload["length"] = limit
        else:
            payload["hitsPerPage"] = MAX_HITS_PER_PAGE
        if columns and "*" not in columns:
            payload["attributesToRetrieve"] = [*columns, PARAMETERS_KEY]

        data = self._search(payload)
        if data is None:
            return [], 0
        records = [self._to_record(hit) for hit in data.get("hits", [])]
        return records, int(data.get("nbHits", len(records)))

    def _execute_count(self, query: NativeQuery) -> int:
        payload = self._payload(query)
        payload["hitsPerPage"] = 0
        payload["attributesToRetrieve"] = []
        data = self._search(payload)
        return int(data.get("nbHits", 0)) if data else 0

    @staticmethod
    def _to_record(hit: dict[str, Any]) -> Record:
        hit = dict(hit)
        object_id = hit.pop(OBJECT_ID, None)
        blob = hit.pop(PARAMETERS_KEY, None)
        for key in HIT_METADATA:
            hit.pop(key, None)
        # Algolia ranks by tie-breaking rules and exposes no numeric score
        return make_record(object_id, None, hit, blob)

    # ── Documents ────────────────────────────────────────────────────────

    def _wait_for_task(self, resp: httpx.Response) -> None:
        """Block until the write task behind ``resp`` is published."""
        task_id = resp.json().get("taskID")
        if task_id is None:
            return
        for _ in range(self._connection.task_wait_attempts):
            task = self.client.get(f"{self._base_path}/task/{task_id}")
            task.raise_for_status()
            if task.json().get("status") == "published":
                return
            time.sleep(self._connection.task_wait_interval)
        logger.warning("Algolia task %s on '%s' not published yet", task_id, self.index_name)

    def insert(self, id: Any, fields: dict[str, Any], parameters: dict[str, Any] | None = None) -> bool:
        record = {name: value for name, value in fields.items() if name != OBJECT_ID}
        record[PARAMETERS_KEY] = encode_parameters(parameters)

        try:
            # PUT replaces the whole object
            resp = self.client.put(self._object_path(id), json=record)
            resp.raise_for_status()
            self._wait_for_task(resp)
        except (httpx.HTTPError, ValueError):
            logger.warning("Algolia insert of '%s' into '%s' failed", id, self.index_name, exc_info=True)
            return False
        self.forget_totals()
        return True

    def delete(self, id: Any) -> bool:
        try:
            if not self._exists(self._object_path(id)):
                return False
            resp = self.client.delete(self._object_path(id))
            resp.raise_for_status()
            self._wait_for_task(resp)
        except (httpx.HTTPError, ValueError, BackendError):
            logger.warning("Algolia delete of '%s' from '%s' failed", id, self.index_name, exc_info=True)
            return False
        self.forget_totals()
        return True

    def delete_index(self) -> bool:
        try:
            if not self._exists(f"{self._base_path}/settings"):
                return False
            resp = self.client.delete(self._base_path)
            resp.raise_for_status()
            self._wait_for_task(resp)
        except (httpx.HTTPError, ValueError, BackendError):
            logger.warning("Failed to delete Algolia index '%s'", self.index_name, exc_info=True)
            return False
        self.forget_totals()
        logger.info("Deleted Algolia index '%s'", self.index_name)
        return True

    def _exists(self, path: str) -> bool:
        resp = self.client.get(path)
        if resp.status_code == 404:
            return False
        if resp.is_error:
            raise BackendError(f"Algolia returned HTTP {resp.status_code} for {path}")
        return True


def _is_number(value: str) -> bool:
    try:
        float(value)
    except ValueError:
        return False
    return True
