"""Common API schemas."""

import math
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from procwatch.models.base import CamelModel

T = TypeVar("T")


class APIResponse(CamelModel, Generic[T]):
    """Standard API response wrapper."""

    success: bool = Field(default=True, description="False only on errors")
    message: str | None = Field(default=None, description="Optional human readable note")
    data: T | None = Field(default=None, description="Response data")


class PaginatedResponse(CamelModel, Generic[T]):
    """Paginated response wrapper."""

    success: bool = True
    count: int = Field(default=0, ge=0, description="Items on this page")
    total: int = Field(default=0, ge=0, description="Total count")
    page: int = Field(default=1, ge=1, description="Current page")
    pages: int = Field(default=0, ge=0, description="Number of pages")
    summary: dict[str, Any] | None = Field(default=None, description="Aggregate figures")
    data: list[T] = Field(default_factory=list, description="List of items")


class ErrorResponse(BaseModel):
    """Error response model."""

    success: bool = False
    error: str = Field(..., description="Error message")
    details: Any | None = Field(default=None, description="Error detail")


class PaginationParams(BaseModel):
    """Pagination query parameters."""

    page: int = Field(default=1, ge=1, description="Page number")
    limit: int = Field(default=20, ge=1, le=100, description="Items per page")

    @property
    def offset(self) -> int:
        """Index of the first item on the page."""
        return (self.page - 1) * self.limit

    def slice(self, items: list[T]) -> list[T]:
        return items[self.offset:self.offset + self.limit]

    def pages(self, total: int) -> int:
        return math.ceil(total / self.limit)


class Page(BaseModel, Generic[T]):
    """One page of results as returned by services."""

    items: list[T]
    total: int
    page: int
    pages: int
    summary: dict[str, Any] | None = None

    @classmethod
    def build(
        cls,
        items: list[T],
        pagination: PaginationParams,
        summary: dict[str, Any] | None = None,
    ) -> "Page[T]":
        return cls(
            items=pagination.slice(items),
            total=len(items),
            page=pagination.page,
            pages=pagination.pages(len(items)),
            summary=summary,
        )

    def to_response(self) -> PaginatedResponse[T]:
        return PaginatedResponse(
            count=len(self.items),
            total=self.total,
            page=self.page,
            pages=self.pages,
            summary=self.summary,
            data=self.items,
        )
