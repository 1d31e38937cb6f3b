"""Uniform response envelope: ``{success, data?, message?, error?, pagination?}``."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from napft.schemas import CamelModel

T = TypeVar("T")


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    data: T | None = None
    message: str | None = None
    pagination: Pagination | None = None


def error_body(message: str, error: str, details: Any = None) -> dict[str, Any]:  # noqa: ANN401
    """Build the failure envelope used by every error handler."""
    body: dict[str, Any] = {"success": False, "message": message, "error": error}
    if details is not None:
        body["errors"] = details
    return body
