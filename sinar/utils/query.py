"""
Paginated list query builder shared by every list endpoint
"""
from dataclasses import dataclass, field, replace
from math import ceil
from typing import Any, Generic, List, Optional, Sequence, TypeVar

from fastapi import Query
from sqlalchemy import asc, desc, func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from sinar.core.exceptions import ValidationError
from sinar.utils.filters import And, Contains, Filter, MatchAll, Or, path_filter

T = TypeVar("T")


@dataclass(frozen=True)
class ListParams:
    """Pagination, ordering, search and caller filter for a list query"""

    page: int = 1
    limit: int = 100
    order_by: str = "id"
    order: str = "asc"
    search: Optional[str] = None
    where: Filter = field(default_factory=MatchAll)

    @property
    def descending(self) -> bool:
        # anything other than the literal "desc" sorts ascending
        return (self.order or "").lower() == "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def scoped(self, *filters: Filter) -> "ListParams":
        """Return a copy with extra filters ANDed into where"""
        return replace(self, where=And(self.where, *filters))


@dataclass
class Page(Generic[T]):
    total: int
    page: int
    limit: int
    data: List[T]

    @property
    def total_pages(self) -> int:
        return ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return (self.page - 1) * self.limit + self.limit < self.total

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def map(self, fn) -> "Page":
        return Page(total=self.total, page=self.page, limit=self.limit, data=[fn(item) for item in self.data])


def list_params(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(100, ge=1, description="Page size"),
    order_by: str = Query("id", alias="orderBy", description="Sort field"),
    order: str = Query("asc", description="asc | desc"),
    search: Optional[str] = Query(None, description="Search keyword"),
) -> ListParams:
    """FastAPI dependency reading the list query string"""
    return ListParams(page=page, limit=limit, order_by=order_by, order=order, search=search)


def search_filter(search: Optional[str], searchable_fields: Sequence[str]) -> Filter:
    """OR of case-insensitive substring matches; MatchAll when there is nothing to search"""
    term = (search or "").strip()
    if not term or not searchable_fields:
        return MatchAll()
    return Or(*(path_filter(f, lambda name: Contains(name, term)) for f in searchable_fields))


def _order_columns(model, params: ListParams) -> List[Any]:
    columns = inspect(model).columns
    if params.order_by not in columns:
        raise ValidationError(f"Cannot sort by '{params.order_by}'")
    direction = desc if params.descending else asc
    ordering = [direction(getattr(model, params.order_by))]
    if params.order_by != "id":
        ordering.append(asc(model.id))
    return ordering


async def list_resources(
    db: AsyncSession,
    model,
    params: ListParams,
    searchable_fields: Sequence[str] = (),
    options: Sequence[Any] = (),
) -> Page:
    """
    Fetch one page of model rows

    Args:
        db: database session
        model: mapped class to list
        params: page/limit/order/search plus the caller's where filter
        searchable_fields: field names (dotted for relations) matched by search
        options: loader options applied to the data query

    Returns:
        Page with total counted under the filter before pagination
    """
    if params.page < 1 or params.limit < 1:
        raise ValidationError("page and limit must be positive integers")

    ordering = _order_columns(model, params)
    condition = And(params.where, search_filter(params.search, searchable_fields)).compile(model)

    total = (await db.execute(
        select(func.count()).select_from(model).where(condition)
    )).scalar_one()

    result = await db.execute(
        select(model)
        .options(*options)
        .where(condition)
        .order_by(*ordering)
        .offset(params.offset)
        .limit(params.limit)
    )
    data = list(result.scalars().all())

    return Page(total=total, page=params.page, limit=params.limit, data=data)
