"""Bill search — query translation and the search facade.

Three call shapes are supported: by session, by free text, and by free text
scoped to a session. Each is translated into an OpenSearch-DSL query and run
against the index client. Failures come back as values rather than
exceptions:

  - ``QueryParseFailure``  the free text (or sort string) is malformed
  - ``BackendFailure``     the backend is unreachable or failed otherwise

``raise_for_failure()`` turns an outcome back into an exception for callers
that prefer one.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from legindex.adapters.base.adapter import IndexClient
from legindex.adapters.base.exceptions import AdapterError, QueryParseError
from legindex.config.settings import IndexingSettings
from legindex.core.errors import SearchBackendError, SearchParseError
from legindex.models.bill import BillId
from legindex.models.cursor import PageCursor
from legindex.models.search import (
    BackendFailure,
    NativeQuery,
    QueryKind,
    QueryParseFailure,
    SearchOutcome,
    SearchQuery,
    SearchResultPage,
)
from legindex.models.session import SessionYear

logger = logging.getLogger(__name__)

_SORT_FIELD_RE = re.compile(r"^[A-Za-z_][\w.]*$")

# Analysed text fields sort on their keyword subfield.
_SORT_FIELD_ALIASES = {"title": "title.raw", "sponsor": "sponsor.raw"}


class QueryTranslator:
    """Translates ``SearchQuery`` objects into backend-native queries."""

    def translate(self, query: SearchQuery, sort: str | None = None) -> NativeQuery:
        """Build the native query for a search intent.

        Raises:
            QueryParseError: If the text is blank or the sort string is malformed.
        """
        if query.kind is QueryKind.SESSION:
            clause: dict[str, Any] = self._session_scoped({"match_all": {}}, query.session)
        elif query.kind is QueryKind.TEXT:
            clause = self._query_string(query.text)
        else:
            clause = self._session_scoped(self._query_string(query.text), query.session)
        return NativeQuery(query=clause, sort=self.parse_sort(sort))

    @staticmethod
    def _query_string(text: str | None) -> dict[str, Any]:
        if text is None or not text.strip():
            raise QueryParseError("Search text must not be blank")
        return {"query_string": {"query": text}}

    @staticmethod
    def _session_scoped(clause: dict[str, Any], session: SessionYear | None) -> dict[str, Any]:
        if session is None:
            raise QueryParseError("A session is required for session-scoped searches")
        return {"bool": {"must": clause, "filter": {"term": {"session": session.year}}}}

    @staticmethod
    def parse_sort(sort: str | None) -> list[dict[str, Any]]:
        """Parse ``'field:ASC,other:DESC'`` into backend sort clauses.

        The direction is optional and defaults to ascending.
        """
        if sort is None or not sort.strip():
            return []
        clauses: list[dict[str, Any]] = []
        for part in sort.split(","):
            field, _, direction = part.strip().partition(":")
            field, direction = field.strip(), (direction.strip() or "asc").lower()
            if not _SORT_FIELD_RE.match(field) or direction not in ("asc", "desc"):
                raise QueryParseError(f"Invalid sort clause: {part.strip()!r}")
            clauses.append({_SORT_FIELD_ALIASES.get(field, field): {"order": direction}})
        return clauses


class BillSearchService:
    """Search facade over the bill index.

    Args:
        client: Index backend.
        settings: Indexing settings (default page size).
        translator: Query translator; a default one is created if omitted.
    """

    def __init__(
        self,
        client: IndexClient,
        settings: IndexingSettings,
        translator: QueryTranslator | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self._translator = translator or QueryTranslator()

    async def search_by_session(
        self, session: SessionYear, sort: str | None = None, cursor: PageCursor | None = None
    ) -> SearchOutcome:
        """All bills of a session."""
        return await self._search(SearchQuery(kind=QueryKind.SESSION, session=session), sort, cursor)

    async def search_by_text(
        self, text: str, sort: str | None = None, cursor: PageCursor | None = None
    ) -> SearchOutcome:
        """Free-text search across all sessions."""
        return await self._search(SearchQuery(kind=QueryKind.TEXT, text=text), sort, cursor)

    async def search_by_text_and_session(
        self, text: str, session: SessionYear, sort: str | None = None, cursor: PageCursor | None = None
    ) -> SearchOutcome:
        """Free-text search restricted to one session."""
        return await self._search(
            SearchQuery(kind=QueryKind.TEXT_AND_SESSION, text=text, session=session), sort, cursor
        )

    async def _search(self, query: SearchQuery, sort: str | None, cursor: PageCursor | None) -> SearchOutcome:
        if cursor is None:
            cursor = PageCursor(limit=self._settings.default_page_size)
        try:
            native = self._translator.translate(query, sort)
            hits = await self._client.query(native.query, native.post_filter, native.sort, cursor)
        except QueryParseError as e:
            logger.info("Invalid search query %r: %s", query.text, e)
            return QueryParseFailure(query=query.text or "", message=str(e))
        except AdapterError as e:
            logger.error("Unexpected search backend failure: %s", e)
            return BackendFailure(message=str(e))

        try:
            ids = [BillId.parse(raw) for raw in hits.ids]
        except ValueError as e:
            logger.error("Search backend returned a malformed bill id: %s", e)
            return BackendFailure(message=f"Malformed bill id in search results: {e}")
        return SearchResultPage(ids=ids, total=hits.total, cursor=cursor)


def raise_for_failure(outcome: SearchOutcome) -> SearchResultPage:
    """Return the page, or raise the exception matching a failure outcome.

    Raises:
        SearchParseError: For ``QueryParseFailure``.
        SearchBackendError: For ``BackendFailure``.
    """
    if isinstance(outcome, QueryParseFailure):
        raise SearchParseError(outcome.message)
    if isinstance(outcome, BackendFailure):
        raise SearchBackendError(outcome.message)
    return outcome
