from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from .cursor import Cursor


@dataclass(frozen=True)
class Pagination:
    offset: int = 0
    limit: Optional[int] = None

    def page_size(self, default: int, maximum: int) -> int:
        size = self.limit if self.limit is not None and self.limit > 0 else default
        return max(1, min(size, maximum))


@dataclass(frozen=True)
class ListResult:
    items: List[Mapping[str, Any]]
    cursor: Cursor
    has_previous_page: bool
    has_next_page: bool


def finalize_rows(
    rows: Sequence[Mapping[str, Any]], limit: int, cursor: Cursor
) -> Tuple[List[Mapping[str, Any]], bool]:
    """Drop the look-ahead row and restore forward order for backward pages.

    ``rows`` is what the executor returned for a ``limit + 1`` query.
    Returns (page rows, has_more).
    """
    page = list(rows)
    has_more = len(page) > limit
    if has_more:
        page = page[:limit]
    if not cursor.is_forward:
        page.reverse()
    return page, has_more
