"""Tests for the HTTP bill store client."""

from __future__ import annotations

import httpx
import pytest

from legindex.models.bill import BillId
from legindex.models.cursor import PageCursor
from legindex.models.session import SessionYear
from legindex.store.base import BillNotFoundError, StoreError
from legindex.store.http import HttpBillStore

BILL_JSON = {
    "bill_id": {"print_no": "S1234", "session": 2021},
    "title": "An act to amend the tax law",
    "sponsor": "KRUEGER",
    "active_version": "",
    "amendments": [{"version": "", "published": True, "full_text": "Section 1."}],
}


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/api/sessions/range":
        return httpx.Response(200, json={"range": {"from": 2017, "to": 2023}})
    if path == "/api/sessions/2021/bills":
        offset = int(request.url.params["offset"])
        ids = ["S1234-2021", "A77-2021", "S9-2021"]
        return httpx.Response(200, json={"ids": ids[offset : offset + int(request.url.params["limit"])]})
    if path == "/api/sessions/2019/bills":
        return httpx.Response(200, json={"ids": ["garbage"]})
    if path == "/api/bills/2021/S1234":
        return httpx.Response(200, json=BILL_JSON)
    if path == "/api/bills/2021/S500":
        return httpx.Response(200, json={"title": "no id"})
    if path == "/api/bills/2021/S503":
        return httpx.Response(503, text="unavailable")
    return httpx.Response(404, json={"error": "not found"})


@pytest.fixture
def store() -> HttpBillStore:
    s = HttpBillStore("http://bills.test/api/")
    s._client = httpx.AsyncClient(base_url="http://bills.test/api", transport=httpx.MockTransport(_handler))
    return s


class TestSessionRange:
    async def test_range(self, store: HttpBillStore) -> None:
        assert await store.active_session_range() == (SessionYear(year=2017), SessionYear(year=2023))

    async def test_empty_store(self) -> None:
        s = HttpBillStore("http://bills.test/api")
        s._client = httpx.AsyncClient(
            base_url="http://bills.test/api",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"range": None})),
        )
        assert await s.active_session_range() is None


class TestBillIds:
    async def test_paged_ids(self, store: HttpBillStore) -> None:
        first = await store.get_bill_ids(SessionYear(year=2021), PageCursor(limit=2))
        second = await store.get_bill_ids(SessionYear(year=2021), PageCursor(limit=2).next())
        third = await store.get_bill_ids(SessionYear(year=2021), PageCursor(limit=2, offset=4))

        assert [str(i) for i in first] == ["S1234-2021", "A77-2021"]
        assert [str(i) for i in second] == ["S9-2021"]
        assert third == []

    async def test_malformed_id_raises(self, store: HttpBillStore) -> None:
        with pytest.raises(StoreError):
            await store.get_bill_ids(SessionYear(year=2019), PageCursor.THOUSAND)


class TestGetBill:
    async def test_get_bill(self, store: HttpBillStore) -> None:
        bill = await store.get_bill(BillId.parse("S1234-2021"))

        assert bill.title == "An act to amend the tax law"
        assert bill.is_base_version_published()

    async def test_missing_bill(self, store: HttpBillStore) -> None:
        with pytest.raises(BillNotFoundError) as exc_info:
            await store.get_bill(BillId.parse("S404-2021"))
        assert exc_info.value.bill_id == "S404-2021"

    async def test_malformed_bill(self, store: HttpBillStore) -> None:
        with pytest.raises(StoreError):
            await store.get_bill(BillId.parse("S500-2021"))

    async def test_server_error(self, store: HttpBillStore) -> None:
        with pytest.raises(StoreError):
            await store.get_bill(BillId.parse("S503-2021"))


class TestLifecycle:
    async def test_requires_initialize(self) -> None:
        with pytest.raises(StoreError, match="not initialized"):
            await HttpBillStore("http://bills.test").active_session_range()

    async def test_initialize_sets_auth_header(self) -> None:
        s = HttpBillStore("http://bills.test", api_key="secret")
        await s.initialize()
        try:
            assert s._client.headers["Authorization"] == "Bearer secret"
        finally:
            await s.shutdown()
        assert s._client is None

    async def test_transport_error_is_store_error(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        s = HttpBillStore("http://bills.test")
        s._client = httpx.AsyncClient(base_url="http://bills.test", transport=httpx.MockTransport(refuse))
        with pytest.raises(StoreError, match="request failed"):
            await s.active_session_range()
