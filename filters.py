"""
Filter-query builder

Search endpoints take many optional filters. Each present filter becomes a
predicate registered under a logical name; build() ANDs them into a single
MongoDB query. Absent or blank inputs are never registered, so they behave
exactly as if the caller had not sent them.
"""
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple, Union

from bson import Decimal128


def _has_text(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


def _bound(value: Any) -> Any:
    if isinstance(value, Decimal):
        return Decimal128(value)
    return value


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring match"""
    field: str
    text: str

    def to_query(self) -> dict:
        return {self.field: {"$regex": re.escape(self.text.strip()), "$options": "i"}}


@dataclass(frozen=True)
class ContainsAny:
    """Substring match on any of several fields"""
    fields: Tuple[str, ...]
    text: str

    def to_query(self) -> dict:
        return {"$or": [Contains(f, self.text).to_query() for f in self.fields]}


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any

    def to_query(self) -> dict:
        value = self.value.strip() if isinstance(self.value, str) else self.value
        return {self.field: value}


@dataclass(frozen=True)
class Between:
    """Inclusive range, either bound may be None"""
    field: str
    lower: Any = None
    upper: Any = None

    def to_query(self) -> dict:
        condition = {}
        if self.lower is not None:
            condition["$gte"] = _bound(self.lower)
        if self.upper is not None:
            condition["$lte"] = _bound(self.upper)
        return {self.field: condition}


Predicate = Union[Contains, ContainsAny, Equals, Between]


class FilterBuilder:
    """
    Accumulates optional filters and folds them into one query.

    Usage:
        query = (
            FilterBuilder()
            .contains("name", "name", name)
            .flag("active", "active", active)
            .between("price", "price", min_price, max_price)
            .build()
        )
    """

    def __init__(self):
        self._predicates: Dict[str, Predicate] = {}

    @property
    def predicates(self) -> Dict[str, Predicate]:
        return dict(self._predicates)

    def add(self, name: str, predicate: Predicate) -> "FilterBuilder":
        self._predicates[name] = predicate
        return self

    def contains(self, name: str, field: str, text: Optional[str]) -> "FilterBuilder":
        if _has_text(text):
            self.add(name, Contains(field, text.strip()))
        return self

    def contains_any(self, name: str, fields: Tuple[str, ...], text: Optional[str]) -> "FilterBuilder":
        if _has_text(text):
            self.add(name, ContainsAny(tuple(fields), text.strip()))
        return self

    def equals(self, name: str, field: str, value: Any) -> "FilterBuilder":
        if isinstance(value, str):
            if _has_text(value):
                self.add(name, Equals(field, value.strip()))
        elif value is not None:
            self.add(name, Equals(field, value))
        return self

    def flag(self, name: str, field: str, value: Optional[bool]) -> "FilterBuilder":
        # False is a real filter; only None means "both"
        if value is not None:
            self.add(name, Equals(field, bool(value)))
        return self

    def between(self, name: str, field: str, lower: Any = None, upper: Any = None) -> "FilterBuilder":
        if lower is not None or upper is not None:
            self.add(name, Between(field, lower, upper))
        return self

    def build(self) -> dict:
        clauses = [p.to_query() for p in self._predicates.values()]
        if not clauses:
            return {}
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}

    def __len__(self) -> int:
        return len(self._predicates)
