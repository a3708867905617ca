"""LegIndex — keeps a bill search index synchronized with the canonical bill store."""

__version__ = "0.1.0"
