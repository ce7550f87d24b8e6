"""Request-scoped current page number, consumed by ``Query.paginate``.

Host integrations set the page once per request (for example from a
``?page=`` query-string parameter)::

    with use_page(int(request.query_params.get("page", 1))):
        page = search.search("name", "shoes").paginate(20)
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

_current_page: ContextVar[int] = ContextVar("polysearch_current_page", default=1)


def current_page() -> int:
    """Return the page number of the active request (1 when unset)."""
    return _current_page.get()


def set_current_page(page: int | str | None) -> None:
    """Set the page number for the active context.

    Non-numeric or non-positive values fall back to page 1.
    """
    _current_page.set(_coerce(page))


@contextmanager
def use_page(page: int | str | None) -> Iterator[int]:
    """Temporarily set the current page within a ``with`` block."""
    token = _current_page.set(_coerce(page))
    try:
        yield _current_page.get()
    finally:
        _current_page.reset(token)


def _coerce(page: int | str | None) -> int:
    try:
        number = int(page) if page is not None else 1
    except (TypeError, ValueError):
        return 1
    return max(1, number)
