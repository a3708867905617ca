"""Base adapter interface — Abstract classes for index backend connectors."""

from legindex.adapters.base.adapter import AdapterHealth, IndexClient, RawHits

__all__ = ["AdapterHealth", "IndexClient", "RawHits"]
