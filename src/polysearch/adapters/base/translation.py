"""Translation helpers shared by drivers with boolean query semantics."""

from __future__ import annotations

import math

from polysearch.models.condition import Condition

MUST = "must"
SHOULD = "should"
MUST_NOT = "must_not"
FILTER = "filter"

EARTH_RADIUS_M = 6371008.8


def occurrence(condition: Condition) -> str:
    """Boolean occurrence of a condition.

    ``prohibited`` wins over everything, then ``filter`` (mandatory and
    unscored), then ``required``; anything else is optional.
    """
    if condition.prohibited:
        return MUST_NOT
    if condition.filter:
        return FILTER
    if condition.required:
        return MUST
    return SHOULD


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in meters."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))
