from __future__ import annotations

import math

from app.types.compliance_contract import PageMeta
from config import settings


def page_limit(page: int | None, limit: int | None) -> tuple[int, int, int]:
    """Clamp page/limit and return (page, limit, offset)."""
    page = max(page or 1, 1)
    limit = limit or settings.DEFAULT_PAGE_SIZE
    limit = max(1, min(limit, settings.MAX_PAGE_SIZE))
    return page, limit, (page - 1) * limit


def page_meta(page: int, limit: int, total: int) -> PageMeta:
    return PageMeta(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if total else 0)
