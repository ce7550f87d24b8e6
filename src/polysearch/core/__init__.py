"""Core query layer: Search facade, Index, Query builder and pagination."""

from polysearch.core.index import Index
from polysearch.core.pagination import current_page, set_current_page, use_page
from polysearch.core.query import Query
from polysearch.core.search import Search

__all__ = ["Index", "Query", "Search", "current_page", "set_current_page", "use_page"]
