"""
Utilities for API pagination.
"""
from typing import List, Dict, Any, TypeVar, Generic
from fastapi import Query
from pydantic import BaseModel


class PaginationParams:
    """
    Pagination parameters for API endpoints.

    Used as a FastAPI dependency to extract ``page`` and ``limit`` from
    query parameters.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number"),
        limit: int = Query(20, ge=1, le=100, description="Items per page"),
    ):
        self.page = page
        self.limit = limit

        # Offset for database queries
        self.skip = (page - 1) * limit


class PageInfo(BaseModel):
    """
    Page information for paginated responses.
    """
    current_page: int
    total_pages: int
    page_size: int
    total_items: int
    has_previous: bool
    has_next: bool


T = TypeVar('T')

class PaginatedResponse(BaseModel, Generic[T]):
    """
    Generic paginated response model.
    """
    items: List[T]
    page_info: PageInfo


def paginate_response(
    items: List[Any],
    total: int,
    pagination: PaginationParams
) -> Dict[str, Any]:
    """
    Create a standardized paginated response.

    Args:
        items: List of items for the current page
        total: Total number of items across all pages
        pagination: Pagination parameters

    Returns:
        Dict: Standardized response with items and pagination info
    """
    total_pages = (total + pagination.limit - 1) // pagination.limit

    page_info = PageInfo(
        current_page=pagination.page,
        total_pages=total_pages,
        page_size=pagination.limit,
        total_items=total,
        has_previous=pagination.page > 1,
        has_next=pagination.page < total_pages
    )

    return {
        "items": items,
        "page_info": page_info
    }
