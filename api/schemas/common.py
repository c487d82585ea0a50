"""
Shared Pydantic schemas: the camelCase base model and the API envelope
"""
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base schema serialised with camelCase keys on the wire"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ApiResponse(BaseModel, Generic[T]):
    """Envelope returned by every endpoint"""

    success: bool = True
    message: str
    data: Optional[T] = None
    error: Optional[str] = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PaginatedItems(CamelModel, Generic[T]):
    items: List[T]
    pagination: Pagination


def ok(message: str, data=None) -> dict:
    """Build a success envelope; FastAPI validates it against the route's response_model"""
    return {"success": True, "message": message, "data": data, "error": None}


def paginate(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, total_pages=(total + limit - 1) // limit if limit else 0)
