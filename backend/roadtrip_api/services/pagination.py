"""
Road Trip Planner Backend — Offset Pagination
==============================================

What:  Page/limit normalization and the pagination envelope math.
Why:   Every list endpoint shares the same rules; the server-side clamp on
       `limit` prevents callers from requesting unbounded pages.

Math:
    offset      = (page - 1) * limit
    total_pages = ceil(total / limit)
    has_next    = page < total_pages
    has_prev    = page > 1
    A page past the end yields an empty item list, not an error.
    The offset is capped at MAX_OFFSET (well inside BIGINT even with the
    limit added), so absurd page numbers still bind and match nothing.
"""

import math
from dataclasses import dataclass
from typing import Optional

from roadtrip_api.config import settings
from roadtrip_api.schemas.common import Pagination

MAX_OFFSET = 2**62


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return min((self.page - 1) * self.limit, MAX_OFFSET)


def page_request(
    page: Optional[int],
    limit: Optional[int],
    default_limit: int,
    max_limit: Optional[int] = None,
) -> PageRequest:
    """
    Normalizes client-supplied page/limit.

    page  < 1 or missing → 1
    limit < 1 or missing → default_limit
    limit > max_limit    → max_limit (settings.max_page_size by default)
    """
    ceiling = max_limit or settings.max_page_size
    page = page if page and page >= 1 else 1
    limit = limit if limit and limit >= 1 else default_limit
    return PageRequest(page=page, limit=min(limit, ceiling))


def build_pagination(request: PageRequest, total: int) -> Pagination:
    total_pages = math.ceil(total / request.limit) if total else 0
    return Pagination(
        current_page=request.page,
        total_pages=total_pages,
        total_items=total,
        has_next=request.page < total_pages,
        has_prev=request.page > 1,
        limit=request.limit,
    )
