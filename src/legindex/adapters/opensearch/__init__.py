"""OpenSearch index backend."""
