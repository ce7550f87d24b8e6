"""Length-aware page of query results."""

from __future__ import annotations

import math

from pydantic import BaseModel, Field

from polysearch.models.record import Record


class Page(BaseModel):
    """One page of records plus the total match count."""

    items: list[Record] = Field(default_factory=list, description="Records on this page")
    total: int = Field(default=0, ge=0, description="Total number of matching records")
    per_page: int = Field(default=15, ge=1, description="Page size")
    current_page: int = Field(default=1, ge=1, description="1-based page number")

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def has_more_pages(self) -> bool:
        return self.current_page < self.last_page

    @property
    def first_item(self) -> int | None:
        """1-based position of the first item on this page."""
        if not self.items:
            return None
        return (self.current_page - 1) * self.per_page + 1

    @property
    def last_item(self) -> int | None:
        """1-based position of the last item on this page."""
        if not self.items:
            return None
        return (self.current_page - 1) * self.per_page + len(self.items)

    def __len__(self) -> int:
        return len(self.items)
