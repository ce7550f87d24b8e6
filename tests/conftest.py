"""Shared test fixtures and configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from polysearch.adapters.base.registry import ClientRegistry
from polysearch.config.settings import Settings
from polysearch.core.index import Index


@pytest.fixture
def storage(tmp_path: Path) -> Path:
    """Existing storage root for whoosh indexes."""
    root = tmp_path / "search"
    root.mkdir()
    return root


@pytest.fixture
def settings(storage: Path) -> Settings:
    """Create a test Settings instance pointing whoosh at a temp directory."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        default="whoosh",
        default_index="products",
        connections={
            "whoosh": {"path": str(storage)},
            "algolia": {
                "application_id": "APPID",
                "admin_api_key": "secret",
                "task_wait_interval": 0,
            },
        },
    )


@pytest.fixture
def clients() -> ClientRegistry:
    """A fresh client registry, so no client leaks between tests."""
    registry = ClientRegistry()
    yield registry
    registry.close_all()


@pytest.fixture
def products(settings: Settings, clients: ClientRegistry) -> Index:
    """Whoosh-backed ``products`` index."""
    return Index.factory("products", "whoosh", settings=settings, clients=clients)


@pytest.fixture
def red_shoes(products: Index) -> Index:
    """``products`` holding one document: Red Shoes priced 20."""
    assert products.insert(1, {"name": "Red Shoes"}, {"price": 20})
    return products
