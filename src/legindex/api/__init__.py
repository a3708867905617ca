"""HTTP API for bill search and index administration."""
