"""Page/sort parameter normalisation for offset-paginated listings."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Collection, Optional

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
DEFAULT_SORT_FIELD = "created_at"

USER_SORT_FIELDS = frozenset({"created_at", "updated_at", "name", "email"})
CURRICULUM_SORT_FIELDS = frozenset({"created_at", "updated_at", "full_name", "email"})


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True)
class PageRequest:
    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE
    sort_by: str = DEFAULT_SORT_FIELD
    sort_order: SortOrder = SortOrder.DESC

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def _coerce_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def normalize_page_request(
    page: Any = None,
    page_size: Any = None,
    sort_by: Optional[str] = None,
    sort_order: Any = None,
    *,
    allowed_sort_fields: Collection[str],
) -> PageRequest:
    """Return a usable request for any input; bad values fall back instead of raising.

    - page below 1 (or not a number) becomes 1
    - page_size outside 1..100 becomes 10
    - a sort field outside ``allowed_sort_fields`` becomes ``created_at``
    - sort order is matched case-insensitively; anything else becomes DESC
    """
    page_value = _coerce_int(page)
    if page_value is None or page_value < 1:
        page_value = DEFAULT_PAGE

    size_value = _coerce_int(page_size)
    if size_value is None or size_value < 1 or size_value > MAX_PAGE_SIZE:
        size_value = DEFAULT_PAGE_SIZE

    field = sort_by if sort_by in allowed_sort_fields else DEFAULT_SORT_FIELD

    raw_order = sort_order.value if isinstance(sort_order, SortOrder) else str(sort_order or "")
    try:
        order = SortOrder(raw_order.strip().upper())
    except ValueError:
        order = SortOrder.DESC

    return PageRequest(page=page_value, page_size=size_value, sort_by=field, sort_order=order)


__all__ = [
    "CURRICULUM_SORT_FIELDS",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "PageRequest",
    "SortOrder",
    "USER_SORT_FIELDS",
    "normalize_page_request",
]
