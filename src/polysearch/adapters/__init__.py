"""Search adapter layer: pluggable drivers for search backends.

Built-in drivers:
  - whoosh: local on-disk index (pure Python, no server)
  - opensearch: OpenSearch v2+ and Elasticsearch-compatible clusters
  - algolia: Algolia hosted search (REST API)

Implement ``SearchAdapter`` and register it on an ``AdapterRegistry`` to
connect your own backend.
"""
