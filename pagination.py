"""
Pagination

PageRequest carries page index, size and sort order; count_and_fetch runs the
count on the bare predicate and then fetches a single page of the same query.
"""
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar

from pydantic.alias_generators import to_snake
from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection

from errors import BadRequestError

T = TypeVar("T")
R = TypeVar("R")

SortOrder = List[Tuple[str, int]]


@dataclass(frozen=True)
class PageRequest:
    page: int = 0
    size: int = 20
    sort: SortOrder = field(default_factory=list)

    def __post_init__(self):
        if self.page < 0:
            raise ValueError("page must not be negative")
        if self.size < 1:
            raise ValueError("size must be at least 1")

    @property
    def offset(self) -> int:
        return self.page * self.size


def parse_sort(params: Optional[Iterable[str]], allowed: Dict[str, str], entity_name: str) -> SortOrder:
    """
    Parse "field,asc" / "field,desc" parameters into a pymongo sort list.

    Args:
        params: raw sort values; field names may be camelCase or snake_case
        allowed: map of snake_case field name -> document field
        entity_name: used in the error raised for unknown fields

    Returns:
        List of (document_field, direction)
    """
    order: SortOrder = []
    for raw in params or []:
        parts = [p.strip() for p in raw.split(",") if p.strip()]
        if not parts:
            continue
        name = to_snake(parts[0])
        if name not in allowed:
            raise BadRequestError(f"Cannot sort by '{parts[0]}'", entity_name, "badsort")
        direction = ASCENDING
        if len(parts) > 1:
            if parts[1].lower() == "desc":
                direction = DESCENDING
            elif parts[1].lower() != "asc":
                raise BadRequestError(f"Invalid sort direction '{parts[1]}'", entity_name, "badsort")
        order.append((allowed[name], direction))
    return order


@dataclass
class Page(Generic[T]):
    content: List[T]
    page: int
    size: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.size) if self.size else 0

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 0

    def map(self, fn: Callable[[T], R]) -> "Page[R]":
        return Page([fn(item) for item in self.content], self.page, self.size, self.total)


def count_and_fetch(collection: Collection, query: dict, page_request: PageRequest) -> Page[dict]:
    """
    Count all matches of query, then fetch one page of them.

    The count must not see skip/limit/sort, so it runs on the bare predicate
    before the cursor is built.
    """
    total = collection.count_documents(query)

    cursor = collection.find(query)
    if page_request.sort:
        cursor = cursor.sort(page_request.sort)
    cursor = cursor.skip(page_request.offset).limit(page_request.size)

    return Page(list(cursor), page_request.page, page_request.size, total)
