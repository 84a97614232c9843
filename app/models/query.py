import re
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from app.services.sanitizer import sanitize_param

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 6
MAX_LIMIT = 100
ALLOWED_SORTS = ("date", "price", "title")
ALLOWED_ORDERS = ("asc", "desc")

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)", re.ASCII)


class HomepageQuery(BaseModel):
    """Request descriptor consumed by the query engine.

    Values are already defaulted and clamped; build instances from raw query
    strings with :meth:`from_params`.
    """

    page: int = Field(default=DEFAULT_PAGE, ge=1)
    limit: int = Field(default=DEFAULT_LIMIT, ge=1)
    category: Optional[str] = None
    level: Optional[str] = None
    sort: str = "date"
    order: str = "desc"

    @classmethod
    def from_params(
        cls,
        page: Any = None,
        limit: Any = None,
        category: Any = None,
        level: Any = None,
        sort: Any = None,
        order: Any = None,
        *,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
        allowed_sorts: Iterable[str] = ALLOWED_SORTS,
        allowed_orders: Iterable[str] = ALLOWED_ORDERS,
        default_sort: str = "date",
        default_order: str = "desc",
    ) -> "HomepageQuery":
        """Build a descriptor from untrusted query-string values.

        Bad input never raises: unparseable numbers fall back to their
        defaults, ``limit`` is clamped to *max_limit*, and unknown sort or
        order values fall back to *default_sort* / *default_order*.
        """
        parsed_page = _parse_int(page)
        if parsed_page is None or parsed_page < 1:
            parsed_page = DEFAULT_PAGE

        parsed_limit = _parse_int(limit)
        if parsed_limit is None or parsed_limit < 1:
            parsed_limit = default_limit
        parsed_limit = min(parsed_limit, max_limit)

        clean_sort = sanitize_param(sort)
        if clean_sort not in set(allowed_sorts):
            clean_sort = default_sort
        clean_order = sanitize_param(order)
        if clean_order not in set(allowed_orders):
            clean_order = default_order

        return cls(
            page=parsed_page,
            limit=parsed_limit,
            category=sanitize_param(category),
            level=sanitize_param(level),
            sort=clean_sort,
            order=clean_order,
        )


def _parse_int(value: Any) -> Optional[int]:
    """Parse a leading integer the way query strings are usually read ("3abc" -> 3)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        return None
    match = _LEADING_INT_RE.match(value)
    return int(match.group(1)) if match else None
