"""Offset pagination for list endpoints."""
from __future__ import annotations

import math
from typing import Callable, Optional, Tuple, TypeVar

from sqlalchemy.orm import Query

from taskhub.config import settings
from taskhub.schemas.common import Page

T = TypeVar("T")

# Offsets are bound as 64-bit integers.
MAX_OFFSET = 2 ** 63 - 1


def resolve_page_params(page: Optional[int], limit: Optional[int]) -> Tuple[int, int]:
    """Normalize ``page``/``limit`` query values.

    Missing or non-positive values fall back to page 1 and the default page
    size; ``limit`` is capped at ``MAX_PAGE_SIZE`` and ``page`` at the last page
    whose offset the store can bind.
    """
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else settings.DEFAULT_PAGE_SIZE
    limit = min(limit, settings.MAX_PAGE_SIZE)
    return min(page, MAX_OFFSET // limit + 1), limit


def paginate(query: Query, page: Optional[int], limit: Optional[int], serialize: Callable[[object], T]) -> Page[T]:
    page, limit = resolve_page_params(page, limit)
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    items = [serialize(row) for row in rows]
    return Page(
        items=items,
        count=len(items),
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )
