"""
Notekeep Backend: Search / Sort / Paginate Query Builder
==========================================================

What:  Turns a pair of base SELECT statements plus request pagination
       parameters into a filtered, ordered, paginated data query and a
       matching count query.
Why:   Notes and request logs list the same way; the rules for normalizing
       parameters and composing the statements live in one place.
How:   Pure functions over SQLAlchemy `Select` objects. Nothing in here talks
       to the database except `execute_paginated()`.

Safety rules:
    - The ORDER BY column always comes from the caller's allow-list mapping.
      An unknown `sort_by` silently falls back to the default sort name, so
      request text is never interpolated into SQL.
    - The search term is a bound parameter. LIKE wildcards (`%`, `_`) inside
      the term are escaped so they match literally.

Ordering among rows with equal sort values is left to the database; no
secondary key is appended.
"""

import math
from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import Select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
VALID_ORDERS = ("ASC", "DESC")


@dataclass(frozen=True)
class PaginationParams:
    """
    List parameters as received from the query string.

    Call `normalized()` before use; the raw values may be out of range.
    """

    search: str = ""
    sort_by: str = ""
    order: str = "DESC"
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    def normalized(self, allowed_sorts: Iterable[str], default_sort: str) -> "PaginationParams":
        """
        Clamp every field into its valid domain.

        Rules:
            page < 1            → 1
            limit < 1           → 10
            limit > 100         → 100
            sort_by not allowed → default_sort
            order not ASC/DESC  → DESC (compared case-insensitively)
        """
        page = self.page if self.page >= 1 else DEFAULT_PAGE
        limit = min(self.limit, MAX_LIMIT) if self.limit >= 1 else DEFAULT_LIMIT

        sort_by = self.sort_by if self.sort_by in set(allowed_sorts) else default_sort

        order = (self.order or "").upper()
        if order not in VALID_ORDERS:
            order = "DESC"

        return replace(
            self,
            search=(self.search or "").strip(),
            sort_by=sort_by,
            order=order,
            page=page,
            limit=limit,
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class PaginatedQuery:
    """The composed statements plus the normalized parameters they were built from."""

    data: Select
    count: Select
    params: PaginationParams


def total_pages(total: int, limit: int) -> int:
    """ceil(total / limit); zero rows give zero pages."""
    if limit < 1:
        return 0
    return math.ceil(total / limit)


def search_clause(columns: Sequence[Any], term: str) -> Optional[ColumnElement[bool]]:
    """OR of case-insensitive substring matches across `columns`, or None for a blank term."""
    if not term or not columns:
        return None
    return or_(*(column.icontains(term, autoescape=True) for column in columns))


def build_paginated_query(
    base_query: Select,
    count_query: Select,
    params: PaginationParams,
    sortable: Mapping[str, Any],
    default_sort: str,
    where: Optional[ColumnElement[bool]] = None,
    search_columns: Sequence[Any] = (),
) -> PaginatedQuery:
    """
    Compose the data and count statements for one list request.

    Args:
        base_query:     SELECT of the rows to list (no filters, order or limit)
        count_query:    SELECT count(*) over the same table
        params:         Raw pagination parameters from the request
        sortable:       Allow-list mapping of public sort name → column
        default_sort:   Sort name used when `params.sort_by` is not allowed
        where:          Fixed filter (e.g. owner scoping), applied to both statements
        search_columns: Text columns searched when `params.search` is non-empty

    Returns:
        PaginatedQuery whose `count` carries the same filters as `data` but
        no ordering, limit or offset.
    """
    if default_sort not in sortable:
        raise ValueError(f"default sort '{default_sort}' is not in the sortable mapping")

    normalized = params.normalized(sortable.keys(), default_sort)

    filters: List[ColumnElement[bool]] = []
    if where is not None:
        filters.append(where)
    matched = search_clause(search_columns, normalized.search)
    if matched is not None:
        filters.append(matched)

    data = base_query
    count = count_query
    if filters:
        data = data.where(*filters)
        count = count.where(*filters)

    column = sortable[normalized.sort_by]
    ordering = column.asc() if normalized.order == "ASC" else column.desc()
    data = data.order_by(ordering).limit(normalized.limit).offset(normalized.offset)

    return PaginatedQuery(data=data, count=count, params=normalized)


async def execute_paginated(db: AsyncSession, query: PaginatedQuery) -> Tuple[List[Any], int]:
    """
    Run both statements and return (rows, total).

    A page that starts past the last row is empty without running the data
    statement, so an arbitrarily large page number never reaches the driver.
    """
    total = int((await db.execute(query.count)).scalar_one())
    if query.params.offset >= total:
        return [], total
    rows = list((await db.execute(query.data)).scalars().all())
    return rows, total
