"""Base adapter interface: abstract classes for search engine drivers."""

from polysearch.adapters.base.adapter import SearchAdapter
from polysearch.adapters.base.registry import AdapterRegistry, ClientRegistry, Driver

__all__ = ["AdapterRegistry", "ClientRegistry", "Driver", "SearchAdapter"]
