"""Whoosh adapter: local on-disk full-text index.

Each index lives in its own subdirectory under the configured storage root
(``connections.whoosh.path``). The root must exist; a missing root is a
configuration error and is raised instead of degraded. Index subdirectories
are created on first use.

The native query is a plain dict of clause lists. It is compiled into
``whoosh.query`` objects at execution time, once the searcher knows which
fields are indexed::

    {
        "must": [...], "should": [...], "must_not": [...], "filter": [...],
        "geo": [{"lat": 40.0, "lng": -75.0, "distance": 5000}],
    }

Geo clauses are applied after the search, against the coordinates stored
with each document. Pagination is applied after full evaluation.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING, Any

from whoosh import index as whoosh_index
from whoosh.fields import ID, STORED, TEXT, Schema
from whoosh.query import And, AndMaybe, Every, FuzzyTerm, Or, Phrase, Term

from polysearch.adapters.base.adapter import NativeQuery, SearchAdapter
from polysearch.adapters.base.exceptions import ConfigurationError
from polysearch.adapters.base.translation import (
    FILTER,
    MUST,
    MUST_NOT,
    SHOULD,
    haversine_meters,
    occurrence,
)
from polysearch.models.condition import Condition
from polysearch.models.record import GEOLOC_KEY, Record, encode_parameters, make_record

if TYPE_CHECKING:
    from whoosh.query import Query as WhooshQuery
    from whoosh.searching import Searcher

    from polysearch.adapters.base.registry import ClientRegistry
    from polysearch.config.settings import Settings

logger = logging.getLogger(__name__)

ID_STORE = "xref_id"
PARAMETERS_STORE = "xref_parameters"
GEOLOC_STORE = "xref_geoloc"
RESERVED_FIELDS = frozenset({ID_STORE, PARAMETERS_STORE, GEOLOC_STORE})


def build_schema() -> Schema:
    """Identity, parameter blob and coordinates, plus one text field per indexed name."""
    schema = Schema(
        xref_id=ID(stored=True, unique=True),
        xref_parameters=STORED,
        xref_geoloc=STORED,
    )
    schema.add("*", TEXT(stored=True), glob=True)
    return schema


class WhooshAdapter(SearchAdapter):
    """Search adapter for a local whoosh index.

    Supports:
      - Loose term, phrase and fuzzy matching per field or across all fields
      - Unscored filters and exclusions
      - Geo-radius filtering on stored ``_geoloc`` coordinates

    Args:
        index_name: Name of the index; also its subdirectory name.
        clients: Client registry; the shared "client" is the validated storage root.
        path: Storage root directory.
    """

    def __init__(self, index_name: str, clients: ClientRegistry, path: str = "storage/search") -> None:
        super().__init__(index_name, clients)
        self._root = Path(path)
        self._index: Any = None

    @classmethod
    def from_settings(cls, index_name: str, settings: Settings, clients: ClientRegistry) -> WhooshAdapter:
        return cls(index_name, clients, path=settings.connections.whoosh.path)

    @property
    def name(self) -> str:
        return "whoosh"

    @property
    def client_key(self) -> str:
        # one validated root per storage directory
        return f"whoosh:{self._root.resolve()}"

    @property
    def path(self) -> Path:
        return self._root / self.index_name

    def _create_client(self) -> Path:
        if not self._root.is_dir():
            raise ConfigurationError(
                f"'path' directory does not exist for the 'whoosh' search driver: '{self._root}'"
            )
        return self._root

    def _open(self) -> Any:
        """Open the index, creating it on first use."""
        if self._index is None:
            path = self.client / self.index_name
            try:
                path.mkdir(exist_ok=True)
                if whoosh_index.exists_in(str(path)):
                    self._index = whoosh_index.open_dir(str(path))
                else:
                    self._index = whoosh_index.create_in(str(path), build_schema())
                    logger.info("Created whoosh index '%s' at %s", self.index_name, path)
            except (OSError, whoosh_index.IndexError) as e:
                raise ConfigurationError(f"Cannot open whoosh index at '{path}': {e}") from e
        return self._index

    def create_index(self, fields: list[str] | None = None) -> bool:
        return False

    # ── Query building ───────────────────────────────────────────────────

    def new_query(self) -> NativeQuery:
        return {MUST: [], SHOULD: [], MUST_NOT: [], FILTER: [], "geo": []}

    def add_condition_to_query(self, query: NativeQuery, condition: Condition) -> NativeQuery:
        if condition.is_geo:
            query["geo"].append({"lat": condition.lat, "lng": condition.long, "distance": condition.distance})
            return query

        if condition.is_identity:
            clause: dict[str, Any] = {"id": condition.value}
        else:
            clause = {
                "fields": condition.fields,
                "value": condition.value,
                "phrase": condition.is_phrase,
                "fuzzy": condition.max_edits,
            }
        query[occurrence(condition)].append(clause)
        return query

    # ── Execution ────────────────────────────────────────────────────────

    def _execute(
        self,
        query: NativeQuery,
        limit: int | None,
        offset: int | None,
        columns: list[str] | None,
    ) -> tuple[list[Record], int]:
        ix = self._open()
        with ix.searcher() as searcher:
            compiled = self._compile(searcher, query)
            if compiled is None:
                return [], 0
            core, filter_query, mask_query = compiled
            hits = searcher.search(core, limit=None, filter=filter_query, mask=mask_query)
            records = [
                self._to_record(hit.fields(), hit.score)
                for hit in hits
                if self._within(hit.get(GEOLOC_STORE), query.get("geo", []))
            ]

        total = len(records)
        if limit is not None:
            start = offset or 0
            records = records[start : start + limit]
        return records, total

    def _execute_count(self, query: NativeQuery) -> int:
        _, total = self._execute(query, None, None, None)
        return total

    def _compile(
        self, searcher: Searcher, query: NativeQuery
    ) -> tuple[WhooshQuery, WhooshQuery | None, WhooshQuery | None] | None:
        """Compile clause lists into (scored query, filter, mask).

        Returns ``None`` when a mandatory clause can never match.
        """
        must = [self._clause_query(searcher, c) for c in query.get(MUST, [])]
        filters = [self._clause_query(searcher, c) for c in query.get(FILTER, [])]
        if any(q is None for q in must + filters):
            return None
        should = [q for q in (self._clause_query(searcher, c) for c in query.get(SHOULD, [])) if q is not None]
        must_not = [q for q in (self._clause_query(searcher, c) for c in query.get(MUST_NOT, [])) if q is not None]

        if must:
            core: WhooshQuery = And(must) if len(must) > 1 else must[0]
        elif should and not filters:
            core = Or(should) if len(should) > 1 else should[0]
            should = []
        else:
            core = Every()
        if should:
            core = AndMaybe(core, Or(should))

        filter_query = (And(filters) if len(filters) > 1 else filters[0]) if filters else None
        mask_query = Or(must_not) if must_not else None
        return core, filter_query, mask_query

    def _clause_query(self, searcher: Searcher, clause: dict[str, Any]) -> WhooshQuery | None:
        if "id" in clause:
            return Term(ID_STORE, str(clause["id"]))

        fields = clause.get("fields") or self._text_fields(searcher)
        parts: list[WhooshQuery] = []
        for field in fields:
            if field in RESERVED_FIELDS:
                continue
            tokens = self._analyze(searcher, field, clause.get("value", ""))
            if not tokens:
                continue
            if clause.get("phrase"):
                parts.append(Phrase(field, tokens) if len(tokens) > 1 else Term(field, tokens[0]))
            elif clause.get("fuzzy"):
                parts.append(Or([FuzzyTerm(field, t, maxdist=clause["fuzzy"], prefixlength=1) for t in tokens]))
            else:
                parts.append(Or([Term(field, t) for t in tokens]))

        if not parts:
            return None
        return Or(parts) if len(parts) > 1 else parts[0]

    @staticmethod
    def _text_fields(searcher: Searcher) -> list[str]:
        return [name for name in searcher.reader().indexed_field_names() if name not in RESERVED_FIELDS]

    @staticmethod
    def _analyze(searcher: Searcher, field: str, value: str) -> list[str]:
        try:
            analyzer = searcher.schema[field].analyzer
        except KeyError:
            return []
        return [token.text for token in analyzer(value)]

    @staticmethod
    def _within(geoloc: dict[str, float] | None, geo_clauses: list[dict[str, Any]]) -> bool:
        if not geo_clauses:
            return True
        if not geoloc:
            return False
        return all(
            haversine_meters(geoloc["lat"], geoloc["lng"], c["lat"], c["lng"]) <= c["distance"]
            for c in geo_clauses
        )

    @staticmethod
    def _to_record(stored: dict[str, Any], score: float | None) -> Record:
        stored = dict(stored)
        doc_id = stored.pop(ID_STORE, None)
        blob = stored.pop(PARAMETERS_STORE, None)
        geoloc = stored.pop(GEOLOC_STORE, None)
        if geoloc:
            stored[GEOLOC_KEY] = geoloc
        return make_record(doc_id, score, stored, blob)

    # ── Documents ────────────────────────────────────────────────────────

    def insert(self, id: Any, fields: dict[str, Any], parameters: dict[str, Any] | None = None) -> bool:
        document: dict[str, Any] = {
            ID_STORE: str(id),
            PARAMETERS_STORE: encode_parameters(parameters),
        }
        for name, value in fields.items():
            name = name.strip()
            if name == GEOLOC_KEY:
                document[GEOLOC_STORE] = {"lat": float(value["lat"]), "lng": float(value["lng"])}
                continue
            # whoosh ignores names starting with "_"
            if name.startswith("_") or name in RESERVED_FIELDS or value is None:
                continue
            if isinstance(value, (list, tuple)):
                value = " ".join(str(v) for v in value)
            document[name] = str(value).strip()

        try:
            with self._open().writer() as writer:
                writer.update_document(**document)
        except ConfigurationError:
            raise
        except Exception:
            logger.warning("whoosh insert of '%s' into '%s' failed", id, self.index_name, exc_info=True)
            return False
        self.forget_totals()
        return True

    def delete(self, id: Any) -> bool:
        try:
            with self._open().writer() as writer:
                deleted = writer.delete_by_term(ID_STORE, str(id))
        except ConfigurationError:
            raise
        except Exception:
            logger.warning("whoosh delete of '%s' from '%s' failed", id, self.index_name, exc_info=True)
            return False
        if deleted:
            self.forget_totals()
        return bool(deleted)

    def delete_index(self) -> bool:
        path = self.path
        if not path.is_dir():
            return False
        if self._index is not None:
            self._index.close()
            self._index = None
        try:
            shutil.rmtree(path)
        except OSError:
            logger.warning("Failed to remove whoosh index directory %s", path, exc_info=True)
            return False
        self.forget_totals()
        logger.info("Deleted whoosh index '%s'", self.index_name)
        return True
