"""Tests for the OpenSearch index client."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from conftest import make_bill
from opensearchpy.exceptions import ConnectionError as OpenSearchConnectionError
from opensearchpy.exceptions import NotFoundError, RequestError, TransportError

from legindex.adapters.base.exceptions import (
    ConnectionError,
    IndexOperationError,
    QueryError,
    QueryParseError,
)
from legindex.adapters.opensearch.adapter import BILL_INDEX_MAPPINGS, OpenSearchIndexClient
from legindex.models.bill import BillIndexEntry
from legindex.models.cursor import PageCursor

# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_client() -> AsyncMock:
    client = AsyncMock()
    client.indices = AsyncMock()
    client.cluster = AsyncMock()
    return client


@pytest.fixture
def adapter(mock_client: AsyncMock) -> OpenSearchIndexClient:
    a = OpenSearchIndexClient(hosts=["https://localhost:9200"], index_name="bills-test", refresh="wait_for")
    a._client = mock_client
    return a


def _entry(print_no: str = "S1234", session: int = 2021) -> BillIndexEntry:
    return BillIndexEntry.from_bill(make_bill(print_no, session, title="Budget bill"))


# ── Properties ───────────────────────────────────────────────────────────────


class TestOpenSearchIndexClientProperties:
    def test_name(self) -> None:
        assert OpenSearchIndexClient().name == "opensearch"

    def test_default_hosts(self) -> None:
        a = OpenSearchIndexClient()
        assert a._hosts == ["https://localhost:9200"]
        assert a._index_name == "bills"


# ── Initialization ───────────────────────────────────────────────────────────


class TestOpenSearchInitialization:
    async def test_initialize_passes_auth(self) -> None:
        with patch("legindex.adapters.opensearch.adapter.AsyncOpenSearch") as cls:
            cls.return_value.info = AsyncMock(return_value={"version": {"number": "2.11.0"}, "cluster_name": "test"})
            a = OpenSearchIndexClient(hosts=["https://node:9200"], username="admin", password="secret")
            await a.initialize()

        kwargs = cls.call_args.kwargs
        assert kwargs["hosts"] == ["https://node:9200"]
        assert kwargs["http_auth"] == ("admin", "secret")

    async def test_initialize_unreachable_raises(self) -> None:
        with patch("legindex.adapters.opensearch.adapter.AsyncOpenSearch") as cls:
            cls.return_value.info = AsyncMock(side_effect=Exception("Connection refused"))
            cls.return_value.close = AsyncMock()
            a = OpenSearchIndexClient()
            with pytest.raises(ConnectionError, match="Failed to connect"):
                await a.initialize()
        assert a._client is None

    async def test_shutdown_closes_client(self, adapter: OpenSearchIndexClient, mock_client: AsyncMock) -> None:
        await adapter.shutdown()
        mock_client.close.assert_called_once()
        assert adapter._client is None

    async def test_uninitialized_client_raises(self) -> None:
        with pytest.raises(ConnectionError, match="not initialized"):
            await OpenSearchIndexClient().count()


# ── Index lifecycle ──────────────────────────────────────────────────────────


class TestIndexLifecycle:
    async def test_create_index_sends_mappings(self, adapter: OpenSearchIndexClient, mock_client: AsyncMock) -> None:
        await adapter.create_index()
        mock_client.indices.create.assert_called_once_with(
            index="bills-test", body={"mappings": BILL_INDEX_MAPPINGS}
        )

    async def test_delete_missing_index_is_tolerated(
        self, adapter: OpenSearchIndexClient, mock_client: AsyncMock
    ) -> None:
        mock_client.indices.delete.side_effect = NotFoundError(404, "index_not_found_exception", {})
        await adapter.delete_index()

    async def test_delete_index_failure(self, adapter: OpenSearchIndexClient, mock_client: AsyncMock) -> None:
        mock_client.indices.delete.side_effect = TransportError(500, "internal", {})
        with pytest.raises(IndexOperationError):
            await adapter.delete_index()

    async def test_index_exists(self, adapter: OpenSearchIndexClient, mock_client: AsyncMock) -> None:
        mock_client.indices.exists.return_value = True
        assert await adapter.index_exists() is True


# ── Writes ───────────────────────────────────────────────────────────────────


class TestWrites:
    async def test_upsert_uses_bill_id(self, adapter: OpenSearchIndexClient, mock_client: AsyncMock) -> None:
        await adapter.upsert(_entry())

        kwargs = mock_client.index.call_args.kwargs
        assert kwargs["id"] == "S1234-2021"
        assert kwargs["index"] == "bills-test"
        assert kwargs["refresh"] == "wait_for"
        assert kwargs["body"]["title"] == "Budget bill"

    async def test_upsert_batch_single_bulk_request(
        self, adapter: OpenSearchIndexClient, mock_client: AsyncMock
    ) -> None:
        mock_client.bulk.return_value = {"errors": False, "items": []}

        await adapter.upsert_batch([_entry("S1"), _entry("S2"), _entry("S1")])

        mock_client.bulk.assert_called_once()
        body = mock_client.bulk.call_args.kwargs["body"]
        assert [line["index"]["_id"] for line in body[::2]] == ["S1-2021", "S2-2021"]

    async def test_upsert_batch_empty_is_no_op(self, adapter: OpenSearchIndexClient, mock_client: AsyncMock) -> None:
        await adapter.upsert_batch([])
        mock_client.bulk.assert_not_called()

    async def test_upsert_batch_item_errors_raise(
        self, adapter: OpenSearchIndexClient, mock_client: AsyncMock
    ) -> None:
        mock_client.bulk.return_value = {
            "errors": True,
            "items": [{"index": {"_id": "S1-2021", "error": {"type": "mapper_parsing_exception"}}}],
        }
        with pytest.raises(IndexOperationError, match="S1-2021"):
            await adapter.upsert_batch([_entry("S1")])

    async def test_delete_absent_returns_false(self, adapter: OpenSearchIndexClient, mock_client: AsyncMock) -> None:
        mock_client.delete.side_effect = NotFoundError(404, "not_found", {})
        assert await adapter.delete("S1-2021") is False

    async def test_delete_present_returns_true(self, adapter: OpenSearchIndexClient, mock_client: AsyncMock) -> None:
        assert await adapter.delete("S1-2021") is True
        mock_client.delete.assert_called_once_with(index="bills-test", id="S1-2021", refresh="wait_for")


# ── Search ───────────────────────────────────────────────────────────────────


class TestQuery:
    async def test_query_body_and_hits(self, adapter: OpenSearchIndexClient, mock_client: AsyncMock) -> None:
        mock_client.search.return_value = {
            "hits": {"total": {"value": 42, "relation": "eq"}, "hits": [{"_id": "S1-2021"}, {"_id": "S2-2021"}]}
        }

        hits = await adapter.query(
            {"query_string": {"query": "budget"}},
            None,
            [{"session": {"order": "desc"}}],
            PageCursor(limit=10, offset=20),
        )

        body = mock_client.search.call_args.kwargs["body"]
        assert body["from"] == 20
        assert body["size"] == 10
        assert body["sort"] == [{"session": {"order": "desc"}}]
        assert "post_filter" not in body
        assert hits.ids == ["S1-2021", "S2-2021"]
        assert hits.total == 42

    async def test_unparseable_query_is_parse_error(
        self, adapter: OpenSearchIndexClient, mock_client: AsyncMock
    ) -> None:
        mock_client.search.side_effect = RequestError(
            400,
            "search_phase_execution_exception",
            {
                "error": {
                    "root_cause": [{"type": "query_shard_exception", "reason": "Failed to parse query [tax AND (]"}],
                    "type": "search_phase_execution_exception",
                    "failed_shards": [
                        {
                            "shard": 0,
                            "reason": {
                                "type": "query_shard_exception",
                                "caused_by": {"type": "parse_exception", "reason": "Cannot parse 'tax AND ('"},
                            },
                        }
                    ],
                },
                "status": 400,
            },
        )
        with pytest.raises(QueryParseError, match="search_phase_execution_exception"):
            await adapter.query({"query_string": {"query": "tax AND ("}}, None, [], PageCursor.TEN)

    async def test_result_window_too_large_is_query_error(
        self, adapter: OpenSearchIndexClient, mock_client: AsyncMock
    ) -> None:
        mock_client.search.side_effect = RequestError(
            400,
            "search_phase_execution_exception",
            {
                "error": {
                    "root_cause": [
                        {"type": "illegal_argument_exception", "reason": "Result window is too large, from + size ..."}
                    ],
                    "type": "search_phase_execution_exception",
                },
                "status": 400,
            },
        )
        with pytest.raises(QueryError) as exc_info:
            await adapter.query({"match_all": {}}, None, [], PageCursor(limit=100, offset=20000))
        assert not isinstance(exc_info.value, QueryParseError)

    async def test_unmapped_sort_field_is_query_error(
        self, adapter: OpenSearchIndexClient, mock_client: AsyncMock
    ) -> None:
        mock_client.search.side_effect = RequestError(
            400,
            "search_phase_execution_exception",
            {"error": {"root_cause": [{"type": "query_shard_exception", "reason": "No mapping found for [x]"}]}},
        )
        with pytest.raises(QueryError) as exc_info:
            await adapter.query({"match_all": {}}, None, [{"x": {"order": "asc"}}], PageCursor.TEN)
        assert not isinstance(exc_info.value, QueryParseError)

    async def test_unreachable_is_connection_error(
        self, adapter: OpenSearchIndexClient, mock_client: AsyncMock
    ) -> None:
        mock_client.search.side_effect = OpenSearchConnectionError("N/A", "Connection refused", Exception("refused"))
        with pytest.raises(ConnectionError):
            await adapter.query({"match_all": {}}, None, [], PageCursor.TEN)

    async def test_other_failure_is_query_error(self, adapter: OpenSearchIndexClient, mock_client: AsyncMock) -> None:
        mock_client.search.side_effect = TransportError(500, "internal", {})
        with pytest.raises(QueryError) as exc_info:
            await adapter.query({"match_all": {}}, None, [], PageCursor.TEN)
        assert not isinstance(exc_info.value, QueryParseError)

    async def test_count_missing_index_is_zero(self, adapter: OpenSearchIndexClient, mock_client: AsyncMock) -> None:
        mock_client.count.side_effect = NotFoundError(404, "index_not_found_exception", {})
        assert await adapter.count() == 0


# ── Health ───────────────────────────────────────────────────────────────────


class TestHealth:
    async def test_health_green(self, adapter: OpenSearchIndexClient, mock_client: AsyncMock) -> None:
        mock_client.cluster.health.return_value = {"status": "green", "cluster_name": "test", "number_of_nodes": 3}
        health = await adapter.health_check()
        assert health.status == "healthy"

    async def test_health_yellow(self, adapter: OpenSearchIndexClient, mock_client: AsyncMock) -> None:
        mock_client.cluster.health.return_value = {"status": "yellow", "cluster_name": "test", "number_of_nodes": 1}
        health = await adapter.health_check()
        assert health.status == "degraded"

    async def test_health_not_initialized(self) -> None:
        health = await OpenSearchIndexClient().health_check()
        assert health.status == "unhealthy"

    async def test_health_exception(self, adapter: OpenSearchIndexClient, mock_client: AsyncMock) -> None:
        mock_client.cluster.health.side_effect = Exception("Connection lost")
        health = await adapter.health_check()
        assert health.status == "unhealthy"
        assert "Connection lost" in health.message


def test_mapping_has_keyword_sort_fields() -> None:
    props = BILL_INDEX_MAPPINGS["properties"]
    assert props["title"]["fields"]["raw"]["type"] == "keyword"
    assert props["session"]["type"] == "integer"
