"""Shared schema base and the response envelope."""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Serializes field names as camelCase; accepts either case on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    """``{isSuccess, data, errorMessage}`` envelope returned by every endpoint."""
    is_success: bool
    data: Optional[T] = None
    error_message: Optional[str] = None


class PageInfo(CamelModel):
    page: int
    page_size: int
    total: int


def ok(data=None) -> ApiResponse:
    return ApiResponse(is_success=True, data=data)


def failure(message: str) -> ApiResponse:
    return ApiResponse(is_success=False, error_message=message)
