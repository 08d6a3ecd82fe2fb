"""
Typed filter expressions

Filters are small immutable values that compile to SQLAlchemy boolean clauses
against a mapped model. Layers (authorization scope, caller filter, search)
compose them with And/Or instead of merging dictionaries, e.g.

    And(scope.documents(), Equals("is_active", True), Or(Contains("title", q)))

Related() walks a relationship, so a filter can reach the target model:

    Related("categories", Equals("id", 3))      # Document.categories.any(Kategori.id == 3)
    Related("document", Related("categories", Equals("id", 3)))
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Sequence, Tuple

from sqlalchemy import and_, false, inspect, or_, true
from sqlalchemy.sql.elements import ColumnElement

from sinar.core.exceptions import ValidationError


def _column(model, field: str):
    columns = inspect(model).columns
    if field not in columns:
        raise ValidationError(f"Unknown field '{field}'")
    return getattr(model, field)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class Filter:
    """Base filter"""

    def compile(self, model) -> ColumnElement:
        raise NotImplementedError

    def __and__(self, other: "Filter") -> "Filter":
        return And(self, other)

    def __or__(self, other: "Filter") -> "Filter":
        return Or(self, other)


@dataclass(frozen=True)
class MatchAll(Filter):
    def compile(self, model) -> ColumnElement:
        return true()


@dataclass(frozen=True)
class MatchNothing(Filter):
    def compile(self, model) -> ColumnElement:
        return false()


@dataclass(frozen=True)
class Equals(Filter):
    field: str
    value: Any

    def compile(self, model) -> ColumnElement:
        column = _column(model, self.field)
        if self.value is None:
            return column.is_(None)
        return column == self.value


@dataclass(frozen=True)
class In(Filter):
    field: str
    values: Tuple[Any, ...]

    def __init__(self, field: str, values: Sequence[Any]):
        object.__setattr__(self, "field", field)
        object.__setattr__(self, "values", tuple(values))

    def compile(self, model) -> ColumnElement:
        if not self.values:
            return false()
        return _column(model, self.field).in_(self.values)


@dataclass(frozen=True)
class Contains(Filter):
    """Case-insensitive substring match"""

    field: str
    text: str

    def compile(self, model) -> ColumnElement:
        pattern = f"%{_escape_like(self.text)}%"
        return _column(model, self.field).ilike(pattern, escape="\\")


@dataclass(frozen=True)
class DateRange(Filter):
    """start <= field < end; either bound may be omitted"""

    field: str
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def compile(self, model) -> ColumnElement:
        column = _column(model, self.field)
        clauses = []
        if self.start is not None:
            clauses.append(column >= self.start)
        if self.end is not None:
            clauses.append(column < self.end)
        return and_(true(), *clauses)


@dataclass(frozen=True)
class And(Filter):
    filters: Tuple[Filter, ...]

    def __init__(self, *filters: Filter):
        object.__setattr__(self, "filters", tuple(filters))

    def compile(self, model) -> ColumnElement:
        return and_(true(), *(f.compile(model) for f in self.filters))


@dataclass(frozen=True)
class Or(Filter):
    """Or() with no members matches nothing"""

    filters: Tuple[Filter, ...]

    def __init__(self, *filters: Filter):
        object.__setattr__(self, "filters", tuple(filters))

    def compile(self, model) -> ColumnElement:
        return or_(false(), *(f.compile(model) for f in self.filters))


@dataclass(frozen=True)
class Related(Filter):
    relation: str
    filter: Filter

    def compile(self, model) -> ColumnElement:
        relationships = inspect(model).relationships
        if self.relation not in relationships:
            raise ValidationError(f"Unknown relation '{self.relation}'")
        prop = relationships[self.relation]
        attr = getattr(model, self.relation)
        inner = self.filter.compile(prop.mapper.class_)
        if prop.uselist:
            return attr.any(inner)
        return attr.has(inner)


def path_filter(path: str, make) -> Filter:
    """
    Build a filter for a dotted field path.

    path_filter("document.original_name", lambda f: Contains(f, "surat"))
    -> Related("document", Contains("original_name", "surat"))
    """
    *relations, field = path.split(".")
    result = make(field)
    for relation in reversed(relations):
        result = Related(relation, result)
    return result
