"""In-memory adapter — Process-local bill index for development and tests.

Entries live in a dict keyed by bill id. Queries support the subset of the
OpenSearch DSL the query translator emits (``match_all``, ``query_string``,
``term``, ``bool`` with ``must``/``filter``) and a Lucene-like query string
syntax: terms, quoted phrases, ``*``/``?`` wildcards, ``field:term``, the
``AND``/``OR``/``NOT`` operators and parentheses. Malformed query strings raise
``QueryParseError``, mirroring the backend's HTTP 400.

No relevance scoring is performed; unsorted results are ordered by bill id.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import re
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any

from legindex.adapters.base.adapter import AdapterHealth, IndexClient, RawHits
from legindex.adapters.base.exceptions import IndexOperationError, QueryError, QueryParseError
from legindex.models.bill import BillIndexEntry
from legindex.models.cursor import PageCursor

logger = logging.getLogger(__name__)

Document = dict[str, Any]
Predicate = Callable[[Document], bool]

_WORD_RE = re.compile(r"\w+")
_TOKEN_RE = re.compile(r'\s*(?:(\()|(\))|("(?:[^"\\]|\\.)*"?)|([^\s()"]+))')
_OPERATORS = {"AND", "OR", "NOT", "&&", "||", "!"}
_TEXT_FIELDS = ("print_no", "title", "summary", "sponsor", "law_section", "full_text", "memo")


def _words(value: Any) -> list[str]:
    return _WORD_RE.findall(str(value).lower()) if value is not None else []


class _QueryStringParser:
    """Recursive-descent parser compiling a query string into a predicate."""

    def __init__(self, text: str, fields: Sequence[str], default_operator: str = "OR") -> None:
        self._text = text
        self._fields = tuple(fields)
        self._default_and = default_operator.upper() == "AND"
        self._tokens = self._tokenize(text)
        self._pos = 0

    def _tokenize(self, text: str) -> list[str]:
        tokens: list[str] = []
        pos = 0
        while pos < len(text):
            match = _TOKEN_RE.match(text, pos)
            if match is None or match.end() == pos:
                break
            token = next(group for group in match.groups() if group is not None)
            if token.startswith('"') and (len(token) < 2 or not token.endswith('"')):
                raise QueryParseError(f"Unterminated phrase in query: {text!r}")
            tokens.append(token)
            pos = match.end()
        return tokens

    def parse(self) -> Predicate:
        if not self._tokens:
            raise QueryParseError("Empty query string")
        predicate = self._or_expr()
        if self._pos != len(self._tokens):
            raise QueryParseError(f"Unexpected '{self._tokens[self._pos]}' in query: {self._text!r}")
        return predicate

    def _peek(self) -> str | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _take(self) -> str:
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def _or_expr(self) -> Predicate:
        terms = [self._and_expr()]
        while self._peek() in ("OR", "||"):
            self._take()
            terms.append(self._and_expr())
        return terms[0] if len(terms) == 1 else (lambda doc: any(t(doc) for t in terms))

    def _and_expr(self) -> Predicate:
        required = [self._unary()]
        optional: list[Predicate] = []
        while (token := self._peek()) is not None and token not in ("OR", "||", ")"):
            if token in ("AND", "&&"):
                self._take()
                required.append(self._unary())
            elif self._default_and or token in ("NOT", "!"):
                required.append(self._unary())
            else:
                optional.append(self._unary())
        if not optional:
            return required[0] if len(required) == 1 else (lambda doc: all(r(doc) for r in required))
        clauses = [required[0] if len(required) == 1 else (lambda doc: all(r(doc) for r in required)), *optional]
        return lambda doc: any(c(doc) for c in clauses)

    def _unary(self) -> Predicate:
        token = self._peek()
        if token in ("NOT", "!"):
            self._take()
            inner = self._unary()
            return lambda doc: not inner(doc)
        return self._primary()

    def _primary(self) -> Predicate:
        token = self._peek()
        if token is None:
            raise QueryParseError(f"Query ends with an operator: {self._text!r}")
        if token in _OPERATORS:
            raise QueryParseError(f"Operator '{token}' is missing an operand: {self._text!r}")
        if token == ")":
            raise QueryParseError(f"Unbalanced ')' in query: {self._text!r}")
        self._take()
        if token == "(":
            if self._peek() == ")":
                raise QueryParseError(f"Empty group in query: {self._text!r}")
            inner = self._or_expr()
            if self._peek() != ")":
                raise QueryParseError(f"Missing ')' in query: {self._text!r}")
            self._take()
            return inner
        return self._term(token)

    def _term(self, token: str) -> Predicate:
        fields = self._fields
        field, sep, value = token.partition(":")
        if sep and not token.startswith('"'):
            if field and not value and (self._peek() or "").startswith('"'):
                value = self._take()
            if not field or not value:
                raise QueryParseError(f"Incomplete field clause '{token}' in query: {self._text!r}")
            fields = (field,)
            token = value
        if token.startswith('"'):
            phrase = _words(token[1:-1])
            if not phrase:
                return lambda doc: False
            return lambda doc: any(_contains_phrase(_words(doc.get(f)), phrase) for f in fields)
        pattern = token.lower()
        if pattern.strip("*?") == "":
            raise QueryParseError(f"Wildcard '{token}' has no term: {self._text!r}")
        if "*" in pattern or "?" in pattern:
            return lambda doc: any(fnmatch.fnmatchcase(w, pattern) for f in fields for w in _words(doc.get(f)))
        wanted = _words(pattern)
        return lambda doc: any(_contains_phrase(_words(doc.get(f)), wanted) for f in fields)


def _contains_phrase(words: list[str], phrase: list[str]) -> bool:
    if not phrase:
        return False
    n = len(phrase)
    return any(words[i : i + n] == phrase for i in range(len(words) - n + 1))


class InMemoryIndexClient(IndexClient):
    """Bill index held in a process-local dict.

    Args:
        index_name: Name reported in logs and health checks.
        **kwargs: Ignored; accepted for parity with other backends.
    """

    def __init__(self, index_name: str = "bills", **kwargs: Any) -> None:
        self._index_name = index_name
        self._documents: dict[str, Document] | None = None
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return "memory"

    @property
    def documents(self) -> dict[str, Document]:
        """Snapshot of indexed documents keyed by bill id."""
        return dict(self._documents or {})

    async def initialize(self) -> None:
        logger.info("Using in-memory index backend (index: %s)", self._index_name)

    async def shutdown(self) -> None:
        self._documents = None

    # ── Index lifecycle ──────────────────────────────────────────────────

    async def index_exists(self) -> bool:
        return self._documents is not None

    async def create_index(self) -> None:
        async with self._lock:
            if self._documents is not None:
                raise IndexOperationError(f"Index '{self._index_name}' already exists")
            self._documents = {}

    async def delete_index(self) -> None:
        async with self._lock:
            self._documents = None

    def _require_index(self) -> dict[str, Document]:
        if self._documents is None:
            raise IndexOperationError(f"Index '{self._index_name}' does not exist")
        return self._documents

    # ── Writes ───────────────────────────────────────────────────────────

    async def upsert(self, entry: BillIndexEntry) -> None:
        async with self._lock:
            self._require_index()[entry.bill_id] = entry.to_document()

    async def upsert_batch(self, entries: Sequence[BillIndexEntry]) -> None:
        async with self._lock:
            documents = self._require_index()
            for entry in entries:
                documents[entry.bill_id] = entry.to_document()

    async def delete(self, bill_id: str) -> bool:
        async with self._lock:
            return self._require_index().pop(bill_id, None) is not None

    # ── Search ───────────────────────────────────────────────────────────

    async def query(
        self,
        query: dict[str, Any],
        post_filter: dict[str, Any] | None,
        sort: list[dict[str, Any]],
        cursor: PageCursor,
    ) -> RawHits:
        documents = self._require_index()
        predicate = self._compile(query)
        if post_filter:
            base, extra = predicate, self._compile(post_filter)
            predicate = lambda doc: base(doc) and extra(doc)  # noqa: E731

        matches = sorted(
            (bill_id for bill_id, doc in documents.items() if predicate(doc)),
        )
        for clause in reversed(sort):
            field, spec = next(iter(clause.items()))
            if field == "_score":
                continue
            # Keyword subfields sort on the parent value.
            field = field.removesuffix(".raw")
            order = spec.get("order", "asc") if isinstance(spec, dict) else str(spec)
            matches.sort(
                key=lambda bill_id: _sort_key(documents[bill_id].get(field)),
                reverse=order == "desc",
            )
        return RawHits(ids=cursor.window(matches), total=len(matches))

    def _compile(self, clause: dict[str, Any]) -> Predicate:
        if len(clause) != 1:
            raise QueryError(f"Expected exactly one query clause, got {list(clause)}")
        kind, body = next(iter(clause.items()))
        if kind == "match_all":
            return lambda doc: True
        if kind == "term":
            field, value = next(iter(body.items()))
            if isinstance(value, dict):
                value = value.get("value")
            return lambda doc: doc.get(field) == value
        if kind == "query_string":
            parser = _QueryStringParser(
                body.get("query", ""),
                fields=body.get("fields") or _TEXT_FIELDS,
                default_operator=body.get("default_operator", "OR"),
            )
            return parser.parse()
        if kind == "bool":
            parts = [self._compile(c) for key in ("must", "filter") for c in _as_list(body.get(key))]
            excluded = [self._compile(c) for c in _as_list(body.get("must_not"))]
            return lambda doc: all(p(doc) for p in parts) and not any(e(doc) for e in excluded)
        raise QueryError(f"Unsupported query clause: {kind}")

    async def count(self) -> int:
        return len(self._documents or {})

    async def health_check(self) -> AdapterHealth:
        exists = self._documents is not None
        return AdapterHealth(
            status="healthy" if exists else "degraded",
            last_check=datetime.now(UTC).isoformat(),
            message=f"Index '{self._index_name}': {len(self._documents or {})} entries" if exists else "Index missing",
        )


def _as_list(value: Any) -> list[dict[str, Any]]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _sort_key(value: Any) -> tuple[bool, Any]:
    if value is None:
        return (True, "")
    return (False, value if isinstance(value, int | float) else str(value).lower())
