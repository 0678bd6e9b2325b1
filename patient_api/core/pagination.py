"""
Core pagination and response-envelope utilities for API endpoints.
"""
from typing import TypeVar, Generic, List, Optional
from pydantic import BaseModel
from fastapi import Query
import math

T = TypeVar("T")

class ApiResponse(BaseModel, Generic[T]):
    """
    Envelope shared by every JSON endpoint.

    Attributes:
        success: Whether the operation succeeded
        message: Optional human readable message
        data: Payload
    """
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class PageParams:
    """
    Page parameters for pagination.

    Attributes:
        page: Page number (1-indexed)
        size: Number of items per page
    """
    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number"),
        size: int = Query(20, ge=1, le=100, description="Items per page")
    ):
        self.page = page
        self.size = size
        self.offset = (page - 1) * size


class PageResponse(BaseModel, Generic[T]):
    """
    Paginated response model.

    Attributes:
        items: List of items for the current page
        total: Total number of items
        page: Current page number
        size: Number of items per page
        pages: Total number of pages
        has_next: Whether there is a next page
        has_prev: Whether there is a previous page
    """
    items: List[T]
    total: int
    page: int
    size: int
    pages: int
    has_next: bool
    has_prev: bool


def build_page(items: list, total: int, page_params: PageParams) -> PageResponse:
    """
    Wrap one page of already-fetched items.

    Args:
        items: Items for the current page
        total: Total number of matching items
        page_params: Pagination parameters

    Returns:
        PageResponse: Paginated response
    """
    pages = math.ceil(total / page_params.size) if total > 0 else 0

    return PageResponse(
        items=items,
        total=total,
        page=page_params.page,
        size=page_params.size,
        pages=pages,
        has_next=page_params.page < pages,
        has_prev=page_params.page > 1
    )
