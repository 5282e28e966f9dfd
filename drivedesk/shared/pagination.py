"""Limit/offset paging for list endpoints."""

from __future__ import annotations

from typing import Generic, TypeVar

from fastapi import Query
from pydantic import BaseModel

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class PaginationParams(BaseModel):
    limit: int
    offset: int


def get_pagination_params(
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
) -> PaginationParams:
    """FastAPI dependency reading ``limit`` and ``offset`` query params."""
    return PaginationParams(limit=limit, offset=offset)


class Page(BaseModel, Generic[T]):
    """One slice of an account-scoped listing."""

    items: list[T]
    total: int
    limit: int
    offset: int
    has_more: bool = False


def build_page(items: list[T], total: int, params: PaginationParams) -> Page[T]:
    """Wrap a query slice; ``has_more`` tells the caller to request the next offset."""
    return Page(
        items=items,
        total=total,
        limit=params.limit,
        offset=params.offset,
        has_more=params.offset + len(items) < total,
    )
