"""
Pagination helpers shared by list endpoints
"""
from typing import Any, Dict

from fastapi import Query
from pydantic import BaseModel

from erp_api.core.config import settings


class PageParams(BaseModel):
    limit: int
    offset: int


def page_params(
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0)
) -> PageParams:
    return PageParams(limit=limit, offset=offset)


def paginate(query, limit: int, offset: int) -> Dict[str, Any]:
    """Count the full query, then slice it; returns items/total/limit/offset."""
    total = query.count()
    items = query.offset(offset).limit(limit).all()
    return {
        "items": items,
        "total": total,
        "limit": limit,
        "offset": offset
    }


class MessageResponse(BaseModel):
    message: str
