"""Adapter-specific exceptions."""


class SearchError(Exception):
    """Base exception for polysearch errors."""


class ConfigurationError(SearchError):
    """Raised when driver configuration is missing or invalid.

    These errors are never degraded: they surface to the caller on first use.
    """


class AdapterNotFoundError(ConfigurationError):
    """Raised when a requested driver is not registered."""


class BackendError(SearchError):
    """Raised when a backend call fails.

    Adapters catch these at the contract boundary and degrade to an
    empty result, a zero count or ``False``.
    """
