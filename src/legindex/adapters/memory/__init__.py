"""In-memory index backend."""
