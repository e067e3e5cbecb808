"""
Core pagination utilities for API endpoints.
"""
from typing import Annotated, TypeVar, Generic, List, Callable, Optional
from pydantic import BaseModel
from fastapi import Query
from sqlalchemy.orm import Query as SQLAlchemyQuery
import math

from ..exceptions import ValidationError

T = TypeVar("T")

MAX_PAGE_SIZE = 100

class PageParams:
    """
    Page parameters for pagination.

    Usable both as a FastAPI dependency and directly from service code;
    out-of-range values raise ValidationError when constructed by hand.

    Attributes:
        page: Page number (1-indexed)
        limit: Number of items per page
    """
    def __init__(
        self,
        page: Annotated[int, Query(ge=1, description="Page number")] = 1,
        limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE, description="Items per page")] = 10,
    ):
        if page < 1:
            raise ValidationError("page must be at least 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        self.page = page
        self.limit = limit
        self.offset = (page - 1) * limit


class PageMeta(BaseModel):
    """
    Pagination metadata.

    Attributes:
        total_items: Total number of items
        items_per_page: Number of items per page
        total_pages: Total number of pages
        current_page: Current page number
    """
    total_items: int
    items_per_page: int
    total_pages: int
    current_page: int


class PageResponse(BaseModel, Generic[T]):
    """Paginated response model."""
    items: List[T]
    meta: PageMeta


def paginate(
    query: SQLAlchemyQuery,
    page_params: PageParams,
    transform: Optional[Callable] = None
) -> PageResponse:
    """
    Paginate a SQLAlchemy query.

    Args:
        query: Ordered SQLAlchemy query to paginate
        page_params: Pagination parameters
        transform: Optional callable applied to every item (e.g. a schema's model_validate)

    Returns:
        PageResponse: Paginated response
    """
    total = query.order_by(None).count()
    items = query.offset(page_params.offset).limit(page_params.limit).all()

    if transform:
        items = [transform(item) for item in items]

    return PageResponse(
        items=items,
        meta=PageMeta(
            total_items=total,
            items_per_page=page_params.limit,
            total_pages=math.ceil(total / page_params.limit),
            current_page=page_params.page,
        ),
    )
