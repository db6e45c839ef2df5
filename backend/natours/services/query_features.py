"""
Natours Backend — List Query Features
=======================================

What:  Turns the sanitized query of a list request into a SQLAlchemy select:
       filtering, sorting, field limiting and pagination.
How:   `QueryFeatures(model, fields, query)` chains `.filter()`, `.sort()`,
       `.paginate()` on a `select()`, and `.project()` trims serialized rows.

Query syntax:
    ?difficulty=easy                 equality
    ?duration=5&duration=9           IN (whitelisted fields may repeat)
    ?price[lt]=1500&duration[gte]=5  gt / gte / lt / lte
    ?sort=-ratingsAverage,price      "-" for descending
    ?fields=name,price               only these fields in the response
    ?page=2&limit=10                 pagination (limit max 100)

Unknown filter fields are ignored. A value that can't be converted to the
column type raises BadRequestError ("Invalid price: abc").
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy import Select, select
from sqlalchemy.orm import InstrumentedAttribute

from natours.exceptions import BadRequestError

logger = logging.getLogger(__name__)

RESERVED_PARAMS = {"page", "sort", "limit", "fields"}
OPERATORS = {
    "gt": lambda column, value: column > value,
    "gte": lambda column, value: column >= value,
    "lt": lambda column, value: column < value,
    "lte": lambda column, value: column <= value,
}
DEFAULT_LIMIT = 100
MAX_LIMIT = 100


@dataclass(frozen=True)
class FilterField:
    """A query-visible field: its column and how to convert raw strings."""

    column: InstrumentedAttribute
    convert: Callable[[str], Any] = str


CONVERTERS: Dict[type, Callable[[str], Any]] = {int: int, float: float}


def filter_field(column: InstrumentedAttribute, python_type: type = str) -> FilterField:
    return FilterField(column=column, convert=CONVERTERS.get(python_type, str))


def _positive_int(query: Mapping[str, Any], key: str, default: int) -> int:
    raw = query.get(key)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise BadRequestError(f"Invalid {key}: {raw}")
    if value < 1:
        raise BadRequestError(f"Invalid {key}: {raw}")
    return value


class QueryFeatures:
    """
    Builder over one model's list query.

    Args:
        model:  ORM class being listed
        fields: camelCase query name → FilterField
        query:  sanitized query from the request context
    """

    def __init__(self, model: type, fields: Mapping[str, FilterField], query: Mapping[str, Any]):
        self.model = model
        self.fields = fields
        self.query = query
        self.stmt: Select = select(model)

    def _convert(self, name: str, field: FilterField, raw: Any) -> Any:
        if not isinstance(raw, str):
            raise BadRequestError(f"Invalid {name}: {raw}")
        try:
            return field.convert(raw)
        except ValueError:
            raise BadRequestError(f"Invalid {name}: {raw}")

    def filter(self) -> "QueryFeatures":
        for name, raw in self.query.items():
            if name in RESERVED_PARAMS:
                continue
            field = self.fields.get(name)
            if field is None:
                logger.debug("Ignoring unknown filter field %s", name)
                continue

            if isinstance(raw, dict):
                for op, operand in raw.items():
                    apply = OPERATORS.get(op)
                    if apply is None:
                        raise BadRequestError(f"Unsupported operator for {name}: {op}")
                    self.stmt = self.stmt.where(apply(field.column, self._convert(name, field, operand)))
            elif isinstance(raw, list):
                values = [self._convert(name, field, item) for item in raw]
                self.stmt = self.stmt.where(field.column.in_(values))
            else:
                self.stmt = self.stmt.where(field.column == self._convert(name, field, raw))
        return self

    def sort(self, default: Sequence[str] = ("-createdAt",)) -> "QueryFeatures":
        raw = self.query.get("sort")
        keys: Iterable[str] = raw.split(",") if isinstance(raw, str) and raw else default
        clauses = []
        for key in keys:
            key = key.strip()
            descending = key.startswith("-")
            field = self.fields.get(key.lstrip("-"))
            if field is None:
                continue
            clauses.append(field.column.desc() if descending else field.column.asc())
        if clauses:
            self.stmt = self.stmt.order_by(*clauses)
        return self

    def paginate(self) -> "QueryFeatures":
        page = _positive_int(self.query, "page", 1)
        limit = min(_positive_int(self.query, "limit", DEFAULT_LIMIT), MAX_LIMIT)
        self.stmt = self.stmt.offset((page - 1) * limit).limit(limit)
        return self

    def selected_fields(self) -> Optional[List[str]]:
        raw = self.query.get("fields")
        if not isinstance(raw, str) or not raw:
            return None
        return [name.strip() for name in raw.split(",") if name.strip()]

    def project(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """Keep `id` plus the requested fields; everything when none requested."""
        wanted = self.selected_fields()
        if not wanted:
            return item
        return {key: value for key, value in item.items() if key == "id" or key in wanted}
