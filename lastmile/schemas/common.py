"""Response envelope and pagination schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Any = None


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    success: bool = False
    error: ErrorDetail


class Pagination(BaseModel):
    page: int
    limit: int
    total_items: int
    total_pages: int
    has_next: bool
    has_prev: bool


def build_pagination(page: int, limit: int, total_items: int) -> Pagination:
    """Compute the pagination block for a page of ``limit`` items."""
    total_pages = (total_items + limit - 1) // limit if limit else 0
    return Pagination(
        page=page,
        limit=limit,
        total_items=total_items,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


def ok(data: Any, message: str = "") -> dict[str, Any]:
    """Wrap payload data in the success envelope."""
    return {"success": True, "data": data, "message": message}


class GeoPoint(BaseModel):
    """Latitude/longitude pair in degrees."""

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
