"""Page/limit handling shared by the public listing endpoints"""

import math
from typing import Any, Sequence

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20


def normalize_page(page, limit, max_limit: int) -> tuple[int, int]:
    """Clamp page to >= 1 and limit to 1..max_limit; missing values take the defaults"""
    page = DEFAULT_PAGE if page is None else max(int(page), 1)
    limit = DEFAULT_LIMIT if limit is None else min(max(int(limit), 1), max_limit)
    return page, limit


def page_envelope(items: Sequence[Any], total: int, page: int, limit: int) -> dict:
    return {
        "items": list(items),
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if total else 0,
    }


def paginate(ranked: Sequence[Any], page: int, limit: int) -> dict:
    """Slice an already-ranked sequence into one page"""
    start = (page - 1) * limit
    return page_envelope(ranked[start : start + limit], len(ranked), page, limit)
