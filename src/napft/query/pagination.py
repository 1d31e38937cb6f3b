"""Offset pagination over SQLAlchemy selects.

Pages are 1-based. ``totalPages = ceil(total / limit)``; an empty result has
zero pages.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from napft.config import get_settings
from napft.query.envelope import Pagination


@dataclass(frozen=True)
class PageParams:
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
) -> PageParams:
    """FastAPI dependency: parse ``page``/``limit`` and clamp to the configured maximum."""
    settings = get_settings()
    if limit is None:
        limit = settings.default_page_limit
    return PageParams(page=page, limit=min(limit, settings.max_page_limit))


def build_pagination(total: int, params: PageParams) -> Pagination:
    return Pagination(
        total=total,
        page=params.page,
        limit=params.limit,
        total_pages=math.ceil(total / params.limit) if params.limit else 0,
    )


async def paginate(
    db: AsyncSession,
    query: Select[Any],
    params: PageParams,
) -> tuple[list[Any], Pagination]:
    """Run ``query`` for one page and count the full result set.

    The query must already carry a deterministic ORDER BY (ties broken on a
    unique column) so identical requests return identical pages.
    """
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar_one()

    result = await db.execute(query.offset(params.offset).limit(params.limit))
    items = list(result.scalars().all())
    return items, build_pagination(total, params)
