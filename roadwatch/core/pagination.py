"""Page parameters for list endpoints, capped by ``API_MAX_PAGE_SIZE``."""

from __future__ import annotations

import os
from dataclasses import dataclass

from fastapi import Query, Response


DEFAULT_PAGE_SIZE = 50
DEFAULT_MAX_PAGE_SIZE = 200


def get_max_page_size() -> int:
    try:
        val = int(os.getenv("API_MAX_PAGE_SIZE", str(DEFAULT_MAX_PAGE_SIZE)))
    except ValueError:
        return DEFAULT_MAX_PAGE_SIZE
    return val if val >= 1 else DEFAULT_MAX_PAGE_SIZE


@dataclass
class PageParams:
    page: int
    page_size: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.page_size

    def apply_headers(self, response: Response, total: int) -> None:
        response.headers["X-Total-Count"] = str(total)
        response.headers["X-Page"] = str(self.page)
        response.headers["X-Page-Size"] = str(self.page_size)


def page_params(
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1),
) -> PageParams:
    return PageParams(page=page, page_size=min(page_size, get_max_page_size()))
