import math
from typing import Any, List, Optional

from pydantic import BaseModel, Field, computed_field


class ApiResponse(BaseModel):
    """Envelope every endpoint returns, success or failure."""
    statusCode: int = 200
    data: Any = None
    message: str = "Success"

    @computed_field
    @property
    def success(self) -> bool:
        return self.statusCode < 400


class Page(BaseModel):
    docs: List[dict] = Field(default_factory=list)
    totalDocs: int = 0
    limit: int
    page: int
    totalPages: int
    hasPrevPage: bool
    hasNextPage: bool
    prevPage: Optional[int] = None
    nextPage: Optional[int] = None

    @classmethod
    def build(cls, docs, total_docs, page, limit):
        total_pages = max(1, math.ceil(total_docs / limit))
        has_prev = page > 1
        has_next = page < total_pages
        return cls(
            docs=docs,
            totalDocs=total_docs,
            limit=limit,
            page=page,
            totalPages=total_pages,
            hasPrevPage=has_prev,
            hasNextPage=has_next,
            prevPage=page - 1 if has_prev else None,
            nextPage=page + 1 if has_next else None,
        )
