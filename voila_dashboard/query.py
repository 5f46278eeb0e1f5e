"""
Voilà Dashboard - PostgREST Query Builder

A small fluent builder covering the part of the Supabase query API the
dashboard needs. Filters render to PostgREST query parameters
(``column=operator.value``); counting and single-row reads render to
headers.

Example:
    >>> result = (
    ...     client.table("tb_stat")
    ...     .select("call_id, duration_seconds", count="exact")
    ...     .not_null("started_at")
    ...     .eq("region", "Piemonte")
    ...     .order("started_at", ascending=False)
    ...     .range(0, 9)
    ...     .execute()
    ... )
    >>> result.count
    128
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple, Union

from voila_dashboard.config import ALL_REGION, NOT_AVAILABLE, Endpoints, Limits

if TYPE_CHECKING:
    from voila_dashboard.client import SupabaseClient


_CONTENT_RANGE_TOTAL = re.compile(r"/(\d+)$")
_RESERVED = set(',.:()" \\')


def quote_value(value: Any) -> str:
    """Quote a list or logic-tree value when it contains PostgREST reserved characters."""
    text = str(value)
    if text == "":
        return '""'
    if any(ch in _RESERVED for ch in text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def parse_content_range(header: Optional[str]) -> Optional[int]:
    """
    Extract the total row count from a ``Content-Range`` header.

    ``0-9/100`` gives 100, ``*/0`` gives 0 and ``0-9/*`` (count not
    requested) gives None.
    """
    if not header:
        return None
    match = _CONTENT_RANGE_TOTAL.search(header.strip())
    if not match:
        return None
    return int(match.group(1))


@dataclass
class QueryResult:
    """Rows returned by a query and the exact count when requested."""
    data: Any
    count: Optional[int] = None

    @property
    def rows(self) -> List[Dict[str, Any]]:
        if self.data is None:
            return []
        if isinstance(self.data, list):
            return self.data
        return [self.data]


class Query:
    """A PostgREST read query on one table."""

    def __init__(self, client: "SupabaseClient", table: str) -> None:
        self._client = client
        self._table = table
        self._columns = "*"
        self._count: Optional[str] = None
        self._filters: List[Tuple[str, str]] = []
        self._order: List[str] = []
        self._offset: Optional[int] = None
        self._limit: Optional[int] = None
        self._single = False

    @property
    def table(self) -> str:
        return self._table

    def select(self, columns: str = "*", count: Optional[str] = None) -> "Query":
        """Choose the returned columns and optionally request a row count."""
        self._columns = ",".join(part.strip() for part in columns.split(","))
        self._count = count
        return self

    def filter(self, column: str, operator: str, value: Any) -> "Query":
        self._filters.append((column, f"{operator}.{value}"))
        return self

    def eq(self, column: str, value: Any) -> "Query":
        return self.filter(column, "eq", value)

    def neq(self, column: str, value: Any) -> "Query":
        return self.filter(column, "neq", value)

    def gte(self, column: str, value: Any) -> "Query":
        return self.filter(column, "gte", value)

    def lte(self, column: str, value: Any) -> "Query":
        return self.filter(column, "lte", value)

    def is_null(self, column: str) -> "Query":
        return self.filter(column, "is", "null")

    def not_null(self, column: str) -> "Query":
        return self.filter(column, "not.is", "null")

    def in_(self, column: str, values: Sequence[Any]) -> "Query":
        joined = ",".join(quote_value(v) for v in values)
        return self.filter(column, "in", f"({joined})")

    def ilike(self, column: str, pattern: str) -> "Query":
        return self.filter(column, "ilike", pattern)

    def or_(self, expression: str) -> "Query":
        self._filters.append(("or", f"({expression})"))
        return self

    def order(self, column: str, ascending: bool = True) -> "Query":
        self._order.append(f"{column}.{'asc' if ascending else 'desc'}")
        return self

    def range(self, start: int, end: int) -> "Query":
        """Return rows ``start`` through ``end`` inclusive."""
        self._offset = start
        self._limit = end - start + 1
        return self

    def limit(self, count: int) -> "Query":
        self._limit = count
        return self

    def single(self) -> "Query":
        """Expect exactly one row; the result data is an object."""
        self._single = True
        return self

    def build_params(self) -> List[Tuple[str, str]]:
        """Render the query string parameters, keeping repeated keys."""
        params: List[Tuple[str, str]] = [("select", self._columns)]
        params.extend(self._filters)
        if self._order:
            params.append(("order", ",".join(self._order)))
        if self._offset is not None:
            params.append(("offset", str(self._offset)))
        if self._limit is not None:
            params.append(("limit", str(self._limit)))
        return params

    def build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self._count:
            headers["Prefer"] = f"count={self._count}"
        if self._single:
            headers["Accept"] = "application/vnd.pgrst.object+json"
        return headers

    def execute(self) -> QueryResult:
        """Run the query."""
        path = Endpoints.REST_TABLE.format(table=self._table)
        response = self._client.send(
            "GET",
            path,
            params=self.build_params(),
            headers=self.build_headers(),
        )
        data = self._client.parse_response(response)
        count = parse_content_range(response.headers.get("content-range")) if self._count else None
        return QueryResult(data=data, count=count)

    def execute_all(self, key: Optional[str] = None, page_size: Optional[int] = None) -> QueryResult:
        """
        Run the query page by page and return every matching row.

        PostgREST silently truncates a response at its max-rows setting, so
        aggregate reads walk the table with ``range`` until a short page
        comes back. ``key`` is appended to the ordering to keep pages
        stable. The count, when requested, comes from the first page.
        """
        page_size = page_size or Limits.MAX_ROWS_PER_REQUEST
        if key:
            self.order(key)

        rows: List[Dict[str, Any]] = []
        count: Optional[int] = None
        offset = 0
        while True:
            result = self.range(offset, offset + page_size - 1).execute()
            page = result.rows
            if offset == 0:
                count = result.count
            rows.extend(page)

            if len(page) < page_size or (count is not None and len(rows) >= count):
                break
            offset += page_size

        return QueryResult(data=rows, count=count)

    def __repr__(self) -> str:
        return f"Query(table='{self._table}', params={self.build_params()})"


# =============================================================================
# Shared filters
# =============================================================================


def apply_region(query: Query, region: Optional[str]) -> Query:
    """
    Restrict a query to a region.

    With no region, or the All Region sentinel, rows whose region is NULL or
    ``N/A`` are dropped so totals match across views.
    """
    if region and region != ALL_REGION:
        return query.eq("region", region)
    return query.not_null("region").neq("region", NOT_AVAILABLE)


def apply_date_range(
    query: Query,
    start_date: Optional[str],
    end_date: Optional[str],
    column: str = "started_at",
) -> bool:
    """
    Restrict ``column`` to whole days between two ISO dates.

    Applied only when both dates are given. Returns whether the range was
    applied so callers can fall back to a default window.
    """
    if start_date and end_date:
        query.gte(column, f"{start_date}T00:00:00").lte(column, f"{end_date}T23:59:59")
        return True
    return False


def apply_call_type(query: Query, call_type: Union[str, Sequence[str], None]) -> Query:
    """Restrict to one or more call types, excluding the ``N/A`` placeholder."""
    if not call_type:
        return query
    if isinstance(call_type, str):
        query.eq("call_type", call_type)
    else:
        query.in_("call_type", list(call_type))
    return query.neq("call_type", NOT_AVAILABLE)


def apply_meaningful(query: Query, column: str) -> Query:
    """Drop NULL, empty and literal ``"NULL"`` values of a categorical column."""
    return query.not_null(column).neq(column, "").neq(column, "NULL")
