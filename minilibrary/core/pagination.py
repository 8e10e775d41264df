from dataclasses import dataclass
from typing import Optional
import math

from fastapi import Query

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def parse_positive_int(value: Optional[str], default: int) -> int:
    """Lenient query-string integer: absent, non-numeric or < 1 falls back to ``default``."""
    if value is None:
        return default
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit > 0 else 0


@dataclass(frozen=True)
class PageParams:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def meta(self, total: int) -> dict:
        return {
            "total": total,
            "page": self.page,
            "limit": self.limit,
            "total_pages": total_pages(total, self.limit),
        }


def page_params(page: Optional[str] = Query(None), limit: Optional[str] = Query(None)) -> PageParams:
    return PageParams(
        page=parse_positive_int(page, DEFAULT_PAGE),
        limit=parse_positive_int(limit, DEFAULT_LIMIT),
    )
