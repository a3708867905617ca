"""OpenSearch adapter — Bill index backed by OpenSearch (v2+).

Uses the async ``opensearch-py`` client for index lifecycle, bulk writes and
``query_string`` searches. Backend exceptions are translated into the adapter
exception hierarchy so callers never see ``opensearchpy`` types:

  - ``RequestError`` (HTTP 400) on search  → ``QueryParseError`` when the
    query string failed to parse, otherwise ``QueryError``
  - ``ConnectionError`` / timeouts         → ``ConnectionError``
  - any other ``OpenSearchException``      → ``QueryError`` / ``IndexOperationError``
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from opensearchpy import AsyncOpenSearch
from opensearchpy.exceptions import ConnectionError as OpenSearchConnectionError
from opensearchpy.exceptions import NotFoundError, OpenSearchException, RequestError

from legindex.adapters.base.adapter import AdapterHealth, IndexClient, RawHits
from legindex.adapters.base.exceptions import (
    ConnectionError,
    IndexOperationError,
    QueryError,
    QueryParseError,
)
from legindex.models.bill import BillIndexEntry
from legindex.models.cursor import PageCursor

logger = logging.getLogger(__name__)

BILL_INDEX_MAPPINGS: dict[str, Any] = {
    "properties": {
        "bill_id": {"type": "keyword"},
        "print_no": {"type": "keyword"},
        "session": {"type": "integer"},
        "title": {"type": "text", "fields": {"raw": {"type": "keyword"}}},
        "summary": {"type": "text"},
        "sponsor": {"type": "text", "fields": {"raw": {"type": "keyword"}}},
        "law_section": {"type": "text"},
        "status": {"type": "keyword"},
        "published_date": {"type": "date"},
        "active_version": {"type": "keyword"},
        "full_text": {"type": "text"},
        "memo": {"type": "text"},
    }
}


_HEALTH_BY_COLOUR = {"green": "healthy", "yellow": "degraded", "red": "unhealthy"}

_PARSE_ERROR_TYPES = frozenset({"parse_exception", "query_parsing_exception"})


def _error_causes(error: Any) -> list[dict[str, Any]]:
    """Flatten an OpenSearch error body into its nested causes."""
    if not isinstance(error, dict):
        return []
    causes = [error]
    for cause in error.get("root_cause", []):
        causes.extend(_error_causes(cause))
    causes.extend(_error_causes(error.get("caused_by")))
    for shard in error.get("failed_shards", []):
        causes.extend(_error_causes(shard.get("reason")))
    return causes


def _is_query_parse_error(e: RequestError) -> bool:
    info = e.info if isinstance(e.info, dict) else {}
    return any(
        cause.get("type") in _PARSE_ERROR_TYPES or str(cause.get("reason", "")).startswith("Failed to parse query")
        for cause in _error_causes(info.get("error"))
    )



class OpenSearchIndexClient(IndexClient):
    """Bill index client for OpenSearch (v2+).

    Args:
        hosts: List of OpenSearch node URLs.
        index_name: Name of the bill index.
        username: Optional HTTP basic-auth username.
        password: Optional HTTP basic-auth password.
        verify_certs: Whether to verify TLS certificates.
        refresh: Refresh policy for writes (``False``, ``True`` or ``'wait_for'``).
        **kwargs: Additional keyword arguments forwarded to ``AsyncOpenSearch``.
    """

    def __init__(
        self,
        hosts: list[str] | None = None,
        index_name: str = "bills",
        username: str | None = None,
        password: str | None = None,
        verify_certs: bool = True,
        refresh: bool | str = False,
        **kwargs: Any,
    ) -> None:
        self._hosts = hosts or ["https://localhost:9200"]
        self._index_name = index_name
        self._username = username
        self._password = password
        self._verify_certs = verify_certs
        self._refresh = refresh
        self._extra_kwargs = kwargs
        self._client: Any = None

    @property
    def name(self) -> str:
        return "opensearch"

    async def initialize(self) -> None:
        """Open the client and check that the cluster answers."""
        options: dict[str, Any] = {"hosts": self._hosts, "verify_certs": self._verify_certs, "ssl_show_warn": False}
        if self._username and self._password:
            options["http_auth"] = (self._username, self._password)
        options.update(self._extra_kwargs)

        self._client = AsyncOpenSearch(**options)
        try:
            info = await self._client.info()
        except Exception as e:
            await self.shutdown()
            raise ConnectionError(f"Failed to connect to OpenSearch at {self._hosts}: {e}") from e
        logger.info(
            "Connected to OpenSearch %s (cluster %s), bill index '%s'",
            info.get("version", {}).get("number", "?"),
            info.get("cluster_name", "?"),
            self._index_name,
        )

    async def shutdown(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.close()

    def _require_client(self) -> Any:
        if not self._client:
            raise ConnectionError("OpenSearch client not initialized.")
        return self._client

    # ── Index lifecycle ──────────────────────────────────────────────────

    async def index_exists(self) -> bool:
        client = self._require_client()
        try:
            return bool(await client.indices.exists(index=self._index_name))
        except OpenSearchConnectionError as e:
            raise ConnectionError(f"OpenSearch unreachable: {e}") from e
        except OpenSearchException as e:
            raise IndexOperationError(f"Failed to check index '{self._index_name}': {e}") from e

    async def create_index(self) -> None:
        client = self._require_client()
        try:
            await client.indices.create(index=self._index_name, body={"mappings": BILL_INDEX_MAPPINGS})
            logger.info("Created index '%s'", self._index_name)
        except OpenSearchConnectionError as e:
            raise ConnectionError(f"OpenSearch unreachable: {e}") from e
        except OpenSearchException as e:
            raise IndexOperationError(f"Failed to create index '{self._index_name}': {e}") from e

    async def delete_index(self) -> None:
        client = self._require_client()
        try:
            await client.indices.delete(index=self._index_name)
            logger.info("Deleted index '%s'", self._index_name)
        except NotFoundError:
            logger.info("Index '%s' does not exist, nothing to delete", self._index_name)
        except OpenSearchConnectionError as e:
            raise ConnectionError(f"OpenSearch unreachable: {e}") from e
        except OpenSearchException as e:
            raise IndexOperationError(f"Failed to delete index '{self._index_name}': {e}") from e

    # ── Writes ───────────────────────────────────────────────────────────

    async def upsert(self, entry: BillIndexEntry) -> None:
        client = self._require_client()
        try:
            await client.index(
                index=self._index_name,
                id=entry.bill_id,
                body=entry.to_document(),
                refresh=self._refresh,
            )
        except OpenSearchConnectionError as e:
            raise ConnectionError(f"OpenSearch unreachable: {e}") from e
        except OpenSearchException as e:
            raise IndexOperationError(f"Failed to index {entry.bill_id}: {e}") from e

    async def upsert_batch(self, entries: Sequence[BillIndexEntry]) -> None:
        # Last entry wins when the batch repeats an id.
        unique = {entry.bill_id: entry for entry in entries}
        if not unique:
            return
        client = self._require_client()

        body: list[dict[str, Any]] = []
        for bill_id, entry in unique.items():
            body.append({"index": {"_index": self._index_name, "_id": bill_id}})
            body.append(entry.to_document())

        try:
            response = await client.bulk(body=body, refresh=self._refresh)
        except OpenSearchConnectionError as e:
            raise ConnectionError(f"OpenSearch unreachable: {e}") from e
        except OpenSearchException as e:
            raise IndexOperationError(f"Bulk index of {len(unique)} entries failed: {e}") from e

        if response.get("errors"):
            failed = [
                item["index"].get("_id")
                for item in response.get("items", [])
                if item.get("index", {}).get("error")
            ]
            raise IndexOperationError(f"Bulk index failed for {len(failed)} entries: {failed[:10]}")

    async def delete(self, bill_id: str) -> bool:
        client = self._require_client()
        try:
            await client.delete(index=self._index_name, id=bill_id, refresh=self._refresh)
            return True
        except NotFoundError:
            return False
        except OpenSearchConnectionError as e:
            raise ConnectionError(f"OpenSearch unreachable: {e}") from e
        except OpenSearchException as e:
            raise IndexOperationError(f"Failed to delete {bill_id}: {e}") from e

    # ── Search ───────────────────────────────────────────────────────────

    async def query(
        self,
        query: dict[str, Any],
        post_filter: dict[str, Any] | None,
        sort: list[dict[str, Any]],
        cursor: PageCursor,
    ) -> RawHits:
        """Execute a translated query against the bill index."""
        client = self._require_client()

        body: dict[str, Any] = {
            "query": query,
            "from": cursor.offset,
            "size": cursor.limit,
            "_source": False,
        }
        if post_filter:
            body["post_filter"] = post_filter
        if sort:
            body["sort"] = sort

        try:
            start = time.monotonic()
            response = await client.search(index=self._index_name, body=body)
            took_ms = int((time.monotonic() - start) * 1000)
        except RequestError as e:
            if _is_query_parse_error(e):
                raise QueryParseError(f"Invalid query: {e.error}") from e
            raise QueryError(f"OpenSearch rejected the search: {e.error}") from e
        except OpenSearchConnectionError as e:
            raise ConnectionError(f"OpenSearch unreachable: {e}") from e
        except OpenSearchException as e:
            raise QueryError(f"OpenSearch query failed: {e}") from e

        hits = response.get("hits", {})
        total = hits.get("total", {})
        return RawHits(
            ids=[hit["_id"] for hit in hits.get("hits", [])],
            total=total.get("value", 0) if isinstance(total, dict) else int(total),
            took_ms=took_ms,
        )

    async def count(self) -> int:
        client = self._require_client()
        try:
            response = await client.count(index=self._index_name)
        except NotFoundError:
            return 0
        except OpenSearchConnectionError as e:
            raise ConnectionError(f"OpenSearch unreachable: {e}") from e
        except OpenSearchException as e:
            raise QueryError(f"Failed to count index '{self._index_name}': {e}") from e
        return int(response.get("count", 0))

    # ── Health ───────────────────────────────────────────────────────────

    async def health_check(self) -> AdapterHealth:
        """Map cluster health colours onto adapter health states."""
        if self._client is None:
            return AdapterHealth(status="unhealthy", message="Client not initialized")

        started = time.monotonic()
        try:
            health = await self._client.cluster.health()
        except Exception as e:
            return AdapterHealth(status="unhealthy", message=str(e))
        colour = health.get("status", "red")
        nodes = health.get("number_of_nodes", 0)
        return AdapterHealth(
            status=_HEALTH_BY_COLOUR.get(colour, "unhealthy"),
            latency_ms=int((time.monotonic() - started) * 1000),
            last_check=datetime.now(UTC).isoformat(),
            message=f"Cluster {health.get('cluster_name', '?')} is {colour} on {nodes} node(s)",
        )
