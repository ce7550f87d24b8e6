"""Integration test fixtures: a live OpenSearch cluster.

Expects a cluster reachable at ``POLYSEARCH_TEST_OPENSEARCH`` (default
``http://localhost:9201``), for example::

    docker run -p 9201:9200 -e discovery.type=single-node -e DISABLE_SECURITY_PLUGIN=true opensearchproject/opensearch:2

Tests are skipped when the cluster is not reachable.
"""

from __future__ import annotations

import os
import time

import httpx
import pytest


def _wait_for_service(url: str, timeout: float = 30.0) -> bool:
    """Block until *url* returns HTTP 200, or timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            r = httpx.get(url, timeout=5)
            if r.status_code == 200:
                return True
        except httpx.HTTPError:
            pass
        time.sleep(1)
    return False


@pytest.fixture(scope="session")
def opensearch_host() -> str:
    """Ensure OpenSearch is running."""
    host = os.environ.get("POLYSEARCH_TEST_OPENSEARCH", "http://localhost:9201")
    if not _wait_for_service(host, timeout=5.0):
        pytest.skip(f"OpenSearch not available at {host}")
    return host
