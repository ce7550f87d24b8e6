"""polysearch: one query API over interchangeable search backends.

Build queries once and run them against a local whoosh index, an
OpenSearch cluster or Algolia::

    from polysearch import Search

    search = Search("whoosh")
    search.insert(1, {"name": "Red Shoes", "brand": "acme"}, {"price": 20})
    search.search("name", "shoes").where("brand", "acme").get()
"""

from polysearch.adapters.base.exceptions import (
    AdapterNotFoundError,
    BackendError,
    ConfigurationError,
    SearchError,
)
from polysearch.core import Index, Query, Search, set_current_page, use_page
from polysearch.models.condition import Condition
from polysearch.models.page import Page
from polysearch.models.record import Record

__version__ = "0.1.0"

__all__ = [
    "AdapterNotFoundError",
    "BackendError",
    "Condition",
    "ConfigurationError",
    "Index",
    "Page",
    "Query",
    "Record",
    "Search",
    "SearchError",
    "__version__",
    "set_current_page",
    "use_page",
]
