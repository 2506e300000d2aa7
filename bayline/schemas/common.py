from typing import Optional, List, Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


# Paginated response wrapper — used by list endpoints
class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


# Error responses — every BookingError renders as this
class ErrorResponse(BaseModel):
    error: str
    message: str


class OkResponse(BaseModel):
    ok: bool = True
    detail: Optional[str] = None
