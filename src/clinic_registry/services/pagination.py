"""Forward cursor pagination keyed by UUIDv7 ids.

Ids are time-ordered and never change, so paging by ``id > cursor``
neither skips nor repeats rows when new ones are appended between
page fetches.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, TypeVar, Union
from uuid import UUID

from sqlalchemy.orm import Query

from ..core.errors import ValidationError
from ..core.ids import parse_uuid7

DEFAULT_LIMIT = 20
MAX_LIMIT = 100

T = TypeVar("T")


class InvalidPageParameter(ValidationError):
    """A limit or cursor value that cannot be used."""

    def __init__(self, param: str, reason: str):
        super().__init__(f"{param} {reason}")
        self.param = param
        self.reason = reason


@dataclass(frozen=True)
class PageRequest:
    limit: int = DEFAULT_LIMIT
    cursor: Optional[UUID] = None

    @classmethod
    def from_raw(
        cls,
        limit: Union[int, str, None] = None,
        cursor: Optional[str] = None,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ) -> "PageRequest":
        """Parse untrusted limit/cursor values.

        Raises:
            InvalidPageParameter: limit not an integer in [1, max_limit], or cursor
                not a UUIDv7
        """
        not_an_integer = f"must be an integer between 1 and {max_limit}"
        if limit is None or (isinstance(limit, str) and limit.strip() == ""):
            parsed_limit = default_limit
        elif isinstance(limit, bool):
            raise InvalidPageParameter("limit", not_an_integer)
        else:
            try:
                parsed_limit = int(str(limit).strip())
            except ValueError:
                raise InvalidPageParameter("limit", not_an_integer)
        if parsed_limit < 1 or parsed_limit > max_limit:
            raise InvalidPageParameter("limit", f"must be between 1 and {max_limit}")

        parsed_cursor = None
        if cursor is not None and str(cursor).strip() != "":
            parsed_cursor = parse_uuid7(cursor)
            if parsed_cursor is None:
                raise InvalidPageParameter("cursor", "must be a UUIDv7")

        return cls(limit=parsed_limit, cursor=parsed_cursor)


@dataclass
class Page(Generic[T]):
    items: List[T]
    next_cursor: Optional[str] = None
    limit: int = DEFAULT_LIMIT


def paginate(
    query: Query,
    id_column,
    request: PageRequest,
    cursor_of: Callable[[Any], UUID] = lambda item: item.id,
) -> Page:
    """Fetch one page from a query that already filters to active rows.

    One extra row is fetched to learn whether another page exists.
    ``cursor_of`` extracts the id from a row when the query yields tuples.
    """
    if request.cursor is not None:
        query = query.filter(id_column > request.cursor)
    rows = query.order_by(id_column.asc()).limit(request.limit + 1).all()

    if len(rows) <= request.limit:
        return Page(items=rows, limit=request.limit)

    items = rows[: request.limit]
    return Page(
        items=items, next_cursor=str(cursor_of(items[-1])), limit=request.limit
    )
