"""Canonical bill store adapters."""

from legindex.store.base import BillNotFoundError, BillStore, StoreError

__all__ = ["BillNotFoundError", "BillStore", "StoreError"]
