"""Index adapter layer — Pluggable connectors for the bill search index.

Built-in adapters:
  - opensearch: OpenSearch v2+ (query_string full-text search)
  - memory: In-process index for local development and tests

Implement ``IndexClient`` to connect another backend.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

from legindex.adapters.base.exceptions import ConfigurationError

if TYPE_CHECKING:
    from legindex.adapters.base.adapter import IndexClient
    from legindex.config.settings import IndexSettings

# Maps adapter names to (module_path, class_name) for lazy import
_ADAPTER_MAP: dict[str, tuple[str, str]] = {
    "opensearch": ("legindex.adapters.opensearch.adapter", "OpenSearchIndexClient"),
    "memory": ("legindex.adapters.memory.adapter", "InMemoryIndexClient"),
}


def create_index_client(settings: IndexSettings) -> IndexClient:
    """Build the index client declared by ``settings.backend``.

    Raises:
        ConfigurationError: If the backend name is unknown or cannot be imported.
    """
    entry = _ADAPTER_MAP.get(settings.backend)
    if entry is None:
        raise ConfigurationError(
            f"Unknown index backend '{settings.backend}'. Available backends: {list(_ADAPTER_MAP)}"
        )

    module_path, class_name = entry
    try:
        module = importlib.import_module(module_path)
        adapter_class = getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Failed to import index backend '{settings.backend}': {e}") from e

    kwargs: dict[str, Any] = {"index_name": settings.index_name}
    if settings.backend == "opensearch":
        if settings.hosts:
            kwargs["hosts"] = settings.hosts
        if settings.username:
            kwargs["username"] = settings.username
        if settings.password:
            kwargs["password"] = settings.password
        kwargs["verify_certs"] = settings.verify_certs
        kwargs["refresh"] = settings.refresh
    kwargs.update(settings.extra)
    return adapter_class(**kwargs)
