"""Condition model: one backend-agnostic search or filter clause."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

ID_FIELD = "id"
"""Reserved field name that addresses the document identity."""

WILDCARD = "*"

DEFAULT_FUZZINESS = 0.5
DEFAULT_DISTANCE = 10000


class Condition(BaseModel):
    """A normalized description of one search or filter clause.

    Contradictory input is resolved instead of rejected:

      - ``prohibited`` wins over ``required``
      - a geo clause (``lat`` set) ignores ``field`` and ``value``
      - ``filter`` implies phrase matching
    """

    field: str | list[str] | None = Field(default=None, description="Field name, list of names, or None/'*' for all")
    value: str = Field(default="", description="Value to match")
    required: bool = Field(default=False, description="Clause must match")
    prohibited: bool = Field(default=False, description="Clause must not match")
    phrase: bool = Field(default=False, description="Match the value as an exact phrase")
    filter: bool = Field(default=False, description="Exact-value filter excluded from scoring")
    fuzzy: bool | float | None = Field(default=None, description="Edit-distance tolerance (True or 0.0 - 1.0)")
    lat: float | None = Field(default=None, description="Latitude of a geo-radius clause")
    long: float | None = Field(default=None, description="Longitude of a geo-radius clause")
    distance: float = Field(default=DEFAULT_DISTANCE, ge=0, description="Radius of a geo clause in meters")

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("field", mode="before")
    @classmethod
    def _coerce_field(cls, v: Any) -> str | list[str] | None:
        if isinstance(v, (list, tuple)):
            return [str(f).strip() for f in v]
        if isinstance(v, str):
            return v.strip()
        return v

    @model_validator(mode="after")
    def _resolve_flags(self) -> Condition:
        if self.prohibited and self.required:
            self.required = False
        return self

    @property
    def is_geo(self) -> bool:
        return self.lat is not None

    @property
    def radius_meters(self) -> int:
        """Geo radius rounded to whole meters, as backends expect."""
        return int(round(self.distance))

    @property
    def is_phrase(self) -> bool:
        return self.phrase or self.filter

    @property
    def is_identity(self) -> bool:
        return self.field == ID_FIELD

    @property
    def fields(self) -> list[str] | None:
        """Explicit field names, or ``None`` when the clause targets all fields."""
        if not self.field or self.field == WILDCARD:
            return None
        if isinstance(self.field, list):
            names = [f for f in self.field if f and f != WILDCARD]
            return names or None
        return [self.field]

    @property
    def similarity(self) -> float | None:
        """Fuzzy similarity in [0, 1], or ``None`` when fuzzy matching is off."""
        if self.fuzzy is None or self.fuzzy is False:
            return None
        if self.fuzzy is True:
            return DEFAULT_FUZZINESS
        if 0 <= self.fuzzy <= 1:
            return float(self.fuzzy)
        return DEFAULT_FUZZINESS

    @property
    def max_edits(self) -> int | None:
        """Maximum edit distance derived from :attr:`similarity`."""
        similarity = self.similarity
        if similarity is None:
            return None
        return similarity_to_edits(similarity)


def similarity_to_edits(similarity: float) -> int:
    """Map a similarity in [0, 1] to a Levenshtein distance of at most 2.

    Examples:
        >>> similarity_to_edits(0.5)
        2
        >>> similarity_to_edits(0.8)
        1
        >>> similarity_to_edits(1.0)
        0
    """
    return min(2, round((1 - similarity) * 4))
