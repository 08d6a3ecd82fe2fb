"""
Common schemas
"""
from pydantic import BaseModel
from typing import Any, Optional

from sinar.utils.query import Page


class ResponseModel(BaseModel):
    """Standard response envelope"""
    status: bool = True
    code: int = 200
    message: Optional[str] = None
    data: Optional[Any] = None

    # pagination, only set on list responses
    total: Optional[int] = None
    page: Optional[int] = None
    limit: Optional[int] = None
    totalPages: Optional[int] = None
    hasNext: Optional[bool] = None
    hasPrev: Optional[bool] = None

    @classmethod
    def from_page(cls, page: Page, message: str) -> "ResponseModel":
        return cls(
            message=message,
            data=page.data,
            total=page.total,
            page=page.page,
            limit=page.limit,
            totalPages=page.total_pages,
            hasNext=page.has_next,
            hasPrev=page.has_prev,
        )


class ErrorResponse(BaseModel):
    """Body of every error response"""
    status: bool = False
    code: int
    message: str
