"""OpenSearch adapter: distributed search cluster driver.

Uses the synchronous ``opensearch-py`` client. The query DSL is the
Elasticsearch-compatible ``bool`` query, so the same translation serves
OpenSearch and Elasticsearch clusters.

The native query is the search request itself::

    {
        "index": "products",
        "body": {"query": {"bool": {"must": [], "should": [], "must_not": [], "filter": []}}},
    }

Stored parameters travel in the ``xref_parameters`` source field as an
opaque blob; document coordinates in the ``xref_geoloc`` ``geo_point``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from opensearchpy import OpenSearch
from opensearchpy.exceptions import NotFoundError, OpenSearchException

from polysearch.adapters.base.adapter import NativeQuery, SearchAdapter
from polysearch.adapters.base.translation import FILTER, MUST, MUST_NOT, SHOULD, occurrence
from polysearch.config.settings import OpenSearchConnection
from polysearch.models.condition import Condition
from polysearch.models.record import GEOLOC_KEY, Record, encode_parameters, make_record

if TYPE_CHECKING:
    from polysearch.adapters.base.registry import ClientRegistry
    from polysearch.config.settings import Settings

logger = logging.getLogger(__name__)

PARAMETERS_STORE = "xref_parameters"
GEOLOC_STORE = "xref_geoloc"
BOOL_KEYS = (MUST, SHOULD, MUST_NOT, FILTER)


class OpenSearchAdapter(SearchAdapter):
    """Search adapter for OpenSearch (v2+) and Elasticsearch-compatible clusters.

    Supports:
      - Loose (``best_fields``), phrase and fuzzy ``multi_match`` clauses
      - Unscored ``filter`` clauses and ``ids`` lookups
      - ``geo_distance`` filtering
      - Native pagination and ``_source`` projection

    Args:
        index_name: Name of the cluster index.
        clients: Client registry holding the shared ``OpenSearch`` client.
        connection: Connection block (hosts and credentials).
        max_results: Page size used when no limit is given.
    """

    def __init__(
        self,
        index_name: str,
        clients: ClientRegistry,
        connection: OpenSearchConnection | None = None,
        max_results: int = 10000,
    ) -> None:
        super().__init__(index_name, clients)
        self._connection = connection
        self._max_results = max_results

    @classmethod
    def from_settings(cls, index_name: str, settings: Settings, clients: ClientRegistry) -> OpenSearchAdapter:
        return cls(index_name, clients, connection=settings.connections.opensearch)

    @property
    def name(self) -> str:
        return "opensearch"

    def _create_client(self) -> OpenSearch:
        """Create the shared ``OpenSearch`` client."""
        connection = self._connection or OpenSearchConnection()
        client_kwargs: dict[str, Any] = {
            "hosts": connection.hosts,
            "verify_certs": connection.verify_certs,
            "ssl_show_warn": False,
        }
        if connection.username and connection.password:
            client_kwargs["http_auth"] = (connection.username, connection.password)

        client_kwargs.update(connection.extra)
        return OpenSearch(**client_kwargs)

    def create_index(self, fields: list[str] | None = None) -> bool:
        properties: dict[str, Any] = {
            GEOLOC_STORE: {"type": "geo_point"},
            PARAMETERS_STORE: {"type": "keyword", "index": False, "doc_values": False},
        }
        for field in fields or []:
            properties[field] = {"type": "text"}

        try:
            self.client.indices.create(index=self.index_name, body={"mappings": {"properties": properties}})
        except OpenSearchException:
            logger.warning("Failed to create OpenSearch index '%s'", self.index_name, exc_info=True)
            return False
        logger.info("Created OpenSearch index '%s'", self.index_name)
        return True

    # ── Query building ───────────────────────────────────────────────────

    def new_query(self) -> NativeQuery:
        return {
            "index": self.index_name,
            "body": {"query": {"bool": {key: [] for key in BOOL_KEYS}}},
        }

    def add_condition_to_query(self, query: NativeQuery, condition: Condition) -> NativeQuery:
        clauses = query["body"]["query"]["bool"]

        if condition.is_geo:
            clauses[FILTER].append(
                {
                    "geo_distance": {
                        "distance": f"{condition.radius_meters}m",
                        GEOLOC_STORE: {"lat": condition.lat, "lon": condition.long},
                    }
                }
            )
            return query

        if condition.is_identity:
            occur = MUST_NOT if condition.prohibited else FILTER
            clauses[occur].append({"ids": {"values": [condition.value]}})
            return query

        definition: dict[str, Any] = {
            "query": condition.value,
            "fields": condition.fields or ["*"],
            "lenient": True,
        }
        if condition.is_phrase:
            definition["type"] = "phrase"
        elif condition.max_edits is not None:
            definition["fuzziness"] = condition.max_edits
            definition["prefix_length"] = 2
        else:
            definition["type"] = "best_fields"

        clauses[occurrence(condition)].append({"multi_match": definition})
        return query

    @staticmethod
    def _compile(query: NativeQuery) -> dict[str, Any]:
        clauses = query.get("body", {}).get("query", {}).get("bool", {})
        present = {key: value for key, value in clauses.items() if value}
        if not present:
            return {"match_all": {}}
        return {"bool": present}

    # ── Execution ────────────────────────────────────────────────────────

    def _execute(
        self,
        query: NativeQuery,
        limit: int | None,
        offset: int | None,
        columns: list[str] | None,
    ) -> tuple[list[Record], int]:
        body: dict[str, Any] = {"query": self._compile(query), "track_total_hits": True}
        if limit is not None:
            body["from"] = offset or 0
            body["size"] = limit
        else:
            body["size"] = self._max_results
        if columns and "*" not in columns:
            body["_source"] = [*columns, PARAMETERS_STORE]

        try:
            response = self.client.search(index=query.get("index", self.index_name), body=body)
        except NotFoundError:
            return [], 0

        hits = response.get("hits", {})
        total = hits.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)
        records = [self._to_record(hit) for hit in hits.get("hits", [])]
        return records, int(total)

    def _execute_count(self, query: NativeQuery) -> int:
        try:
            response = self.client.count(index=query.get("index", self.index_name), body={"query": self._compile(query)})
        except NotFoundError:
            return 0
        return int(response.get("count", 0))

    @staticmethod
    def _to_record(hit: dict[str, Any]) -> Record:
        source = dict(hit.get("_source", {}))
        blob = source.pop(PARAMETERS_STORE, None)
        geoloc = source.pop(GEOLOC_STORE, None)
        if geoloc:
            source[GEOLOC_KEY] = {"lat": geoloc.get("lat"), "lng": geoloc.get("lon")}
        return make_record(hit.get("_id"), hit.get("_score"), source, blob)

    # ── Documents ────────────────────────────────────────────────────────

    def insert(self, id: Any, fields: dict[str, Any], parameters: dict[str, Any] | None = None) -> bool:
        document: dict[str, Any] = {}
        for name, value in fields.items():
            if name == GEOLOC_KEY:
                document[GEOLOC_STORE] = {"lat": float(value["lat"]), "lon": float(value["lng"])}
            else:
                document[name] = value
        if parameters:
            document[PARAMETERS_STORE] = encode_parameters(parameters)

        try:
            self._remove(id)
            self.client.index(index=self.index_name, id=str(id), body=document, refresh=True)
        except OpenSearchException:
            logger.warning("OpenSearch insert of '%s' into '%s' failed", id, self.index_name, exc_info=True)
            return False
        self.forget_totals()
        return True

    def delete(self, id: Any) -> bool:
        try:
            deleted = self._remove(id)
        except OpenSearchException:
            logger.warning("OpenSearch delete of '%s' from '%s' failed", id, self.index_name, exc_info=True)
            return False
        if deleted:
            self.forget_totals()
        return deleted

    def _remove(self, id: Any) -> bool:
        try:
            if not self.client.exists(index=self.index_name, id=str(id)):
                return False
            self.client.delete(index=self.index_name, id=str(id), refresh=True)
        except NotFoundError:
            return False
        return True

    def delete_index(self) -> bool:
        try:
            self.client.indices.delete(index=self.index_name)
        except NotFoundError:
            return False
        except OpenSearchException:
            logger.warning("Failed to delete OpenSearch index '%s'", self.index_name, exc_info=True)
            return False
        self.forget_totals()
        logger.info("Deleted OpenSearch index '%s'", self.index_name)
        return True
