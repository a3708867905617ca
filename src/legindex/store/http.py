"""HTTP bill store — Reads canonical bills from the bill data service.

API reference:
  GET /sessions/range                          → {"range": {"from": 2009, "to": 2023}} | {"range": null}
  GET /sessions/<year>/bills?limit=&offset=    → {"ids": ["S1234-2021", ...]}
  GET /bills/<year>/<printNo>                  → Bill JSON, 404 when absent
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from legindex.models.bill import Bill, BillId
from legindex.models.cursor import PageCursor
from legindex.models.session import SessionYear
from legindex.store.base import BillNotFoundError, BillStore, StoreError

logger = logging.getLogger(__name__)


class HttpBillStore(BillStore):
    """Bill store backed by the bill data service's JSON API.

    Args:
        base_url: Bill data service base URL.
        api_key: Optional bearer token.
        timeout: HTTP request timeout in seconds.
    """

    def __init__(self, base_url: str, api_key: str | None = None, timeout: float = 30.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def initialize(self) -> None:
        """Initialize the HTTP client."""
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        self._client = httpx.AsyncClient(base_url=self._base_url, headers=headers, timeout=self._timeout)
        logger.info("Bill store client initialized (%s)", self._base_url)

    async def shutdown(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        if not self._client:
            raise StoreError("Bill store client not initialized.")
        try:
            return await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise StoreError(f"Bill store request failed: {e}") from e

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPStatusError, ValueError) as e:
            raise StoreError(f"Bill store returned an invalid response: {e}") from e

    async def active_session_range(self) -> tuple[SessionYear, SessionYear] | None:
        data = self._json(await self._get("/sessions/range"))
        bounds = data.get("range")
        if not bounds:
            return None
        return SessionYear(year=int(bounds["from"])), SessionYear(year=int(bounds["to"]))

    async def get_bill_ids(self, session: SessionYear, cursor: PageCursor) -> list[BillId]:
        data = self._json(
            await self._get(
                f"/sessions/{session.year}/bills",
                params={"limit": cursor.limit, "offset": cursor.offset},
            )
        )
        try:
            return [BillId.parse(raw) for raw in data.get("ids", [])][: cursor.limit]
        except ValueError as e:
            raise StoreError(f"Bill store returned a malformed bill id: {e}") from e

    async def get_bill(self, bill_id: BillId) -> Bill:
        response = await self._get(f"/bills/{bill_id.session.year}/{bill_id.print_no}")
        if response.status_code == httpx.codes.NOT_FOUND:
            raise BillNotFoundError(bill_id)
        data = self._json(response)
        try:
            return Bill.model_validate(data)
        except ValidationError as e:
            raise StoreError(f"Bill store returned a malformed bill {bill_id}: {e}") from e
