# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Translation of service query parameters into TinyDB queries.

A query specification looks like::

    {
        "name": "Alice",                   # equality
        "age": {"$gte": 18, "$lt": 65},    # comparison operators
        "$or": [{"city": "NYC"}, {"city": "LA"}],
        "$not": {"name": "Bob"},
        "$sort": {"age": 1},
        "$limit": 10,
        "$skip": 20,
        "$select": ["name", "age"],
    }

``$sort``, ``$limit``, ``$skip`` and ``$select`` are pulled out by
``filter_query`` and never reach the TinyDB condition. Everything else is
turned into a TinyDB ``QueryInstance`` by ``build_condition``. Top-level keys
starting with ``$`` other than ``$or``, ``$and`` and ``$not`` are rejected.
"""

import operator
from collections.abc import Mapping
from dataclasses import dataclass
from functools import reduce
from typing import Any, Callable

from tinydb import Query
from tinydb.queries import QueryInstance

from .service import BadRequestError, StorageError

SPECIAL_KEYS = ("$sort", "$limit", "$skip", "$select")
LOGICAL_KEYS = ("$or", "$and")
NOT_KEY = "$not"


@dataclass(frozen=True)
class FilteredQuery:
    """A query specification split into filters and result instructions.

    Attributes:
        filters: Field conditions handed to the store
        sort: Field name -> direction (1 ascending, -1 descending)
        limit: Maximum number of records, or None
        skip: Number of records to skip
        select: Fields to keep in returned records, or None for all
    """
    filters: dict[str, Any]
    sort: dict[str, int] | None = None
    limit: int | None = None
    skip: int = 0
    select: tuple[str, ...] | None = None


def _to_int(key: str, value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise BadRequestError(f"Invalid {key} value: {value!r}") from e
    if number < 0 and key != "$sort":
        raise BadRequestError(f"Invalid {key} value: {value!r}")
    return number


def _as_list(key: str, value: Any) -> list[Any]:
    if not isinstance(value, (list, tuple)):
        raise BadRequestError(f"{key} expects a list, got {value!r}")
    return list(value)


def _parse_select(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    if isinstance(value, Mapping):
        return tuple(name for name, keep in value.items() if keep)
    return tuple(_as_list("$select", value))


def filter_query(query: Mapping[str, Any] | None) -> FilteredQuery:
    """Split special keys off a query specification.

    Args:
        query: Query specification, or None

    Returns:
        FilteredQuery whose ``filters`` no longer contain special keys

    Raises:
        BadRequestError: If a special key has a malformed value
    """
    filters = dict(query or {})
    sort = filters.pop("$sort", None)
    limit = filters.pop("$limit", None)
    skip = filters.pop("$skip", None)
    select = filters.pop("$select", None)

    if sort is not None:
        if not isinstance(sort, Mapping):
            raise BadRequestError(f"$sort expects a mapping, got {sort!r}")
        sort = {name: _to_int("$sort", direction) for name, direction in sort.items()}

    return FilteredQuery(
        filters=filters,
        sort=sort or None,
        limit=None if limit is None else _to_int("$limit", limit),
        skip=0 if skip is None else _to_int("$skip", skip),
        select=None if select is None else _parse_select(select),
    )


def _safe_compare(value: Any, compare: Callable[[Any, Any], bool], operand: Any) -> bool:
    # Values of different types never match an ordering comparison
    try:
        return bool(compare(value, operand))
    except TypeError:
        return False


_KNOWN_OPERATORS: dict[str, Callable[[Query, Any], QueryInstance]] = {
    "$lt": lambda path, value: path.test(_safe_compare, operator.lt, value),
    "$lte": lambda path, value: path.test(_safe_compare, operator.le, value),
    "$gt": lambda path, value: path.test(_safe_compare, operator.gt, value),
    "$gte": lambda path, value: path.test(_safe_compare, operator.ge, value),
    "$in": lambda path, value: path.one_of(_as_list("$in", value)),
    # $nin and $ne also match records that do not have the field at all
    "$nin": lambda path, value: ~path.one_of(_as_list("$nin", value)),
    "$ne": lambda path, value: ~(path == value),
}


@dataclass(frozen=True)
class KnownOperator:
    """An operator with a direct TinyDB counterpart."""
    op: str
    value: Any

    def apply(self, path: Query) -> QueryInstance:
        return _KNOWN_OPERATORS[self.op](path, self.value)


@dataclass(frozen=True)
class PassthroughOperator:
    """An operator handed to the TinyDB query method of the same name.

    ``{"$search": "^Al"}`` becomes ``path.search("^Al")``. Boolean operands
    call the method without arguments and negate it for False, so
    ``{"$exists": False}`` becomes ``~path.exists()``.
    """
    op: str
    value: Any

    @property
    def method_name(self) -> str:
        return self.op[1:] if self.op.startswith("$") else self.op

    def apply(self, path: Query) -> QueryInstance:
        name = self.method_name
        if name.startswith("_") or not callable(getattr(type(path), name, None)):
            raise StorageError(f"Unknown query operator '{self.op}'")

        method = getattr(path, name)
        try:
            if isinstance(self.value, bool):
                condition = method()
                if not self.value:
                    condition = ~condition
            else:
                condition = method(self.value)
        except TypeError as e:
            raise StorageError(f"Invalid operand for query operator '{self.op}': {e}") from e

        if not isinstance(condition, QueryInstance):
            raise StorageError(f"Unknown query operator '{self.op}'")
        return condition


def translate_operator(op: str, value: Any) -> KnownOperator | PassthroughOperator:
    """Tag an operator as known or passed through."""
    if op in _KNOWN_OPERATORS:
        return KnownOperator(op, value)
    return PassthroughOperator(op, value)


def field_path(name: str) -> Query:
    """Build a TinyDB query path; dots address nested fields."""
    path = Query()
    for part in name.split("."):
        path = path[part]
    return path


def resolve_field(record: Mapping[str, Any], name: str) -> Any:
    """Read a possibly nested field from a record, None when missing."""
    value: Any = record
    for part in name.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return None
        value = value[part]
    return value


def _is_operator_mapping(value: Any) -> bool:
    return isinstance(value, Mapping) and bool(value) and all(
        isinstance(key, str) and key.startswith("$") for key in value
    )


def _field_condition(name: str, value: Any) -> QueryInstance:
    path = field_path(name)
    if _is_operator_mapping(value):
        return reduce(
            operator.and_,
            (translate_operator(op, operand).apply(path) for op, operand in value.items()),
        )
    return path == value


def build_condition(filters: Mapping[str, Any]) -> QueryInstance:
    """Translate filter terms into a single TinyDB condition.

    Args:
        filters: Filter mapping with special keys already removed

    Returns:
        QueryInstance matching every term; matches everything when empty

    Raises:
        BadRequestError: If ``$or``/``$and`` are not lists of sub-queries or
                         ``$not`` is not a sub-query
        StorageError: If TinyDB does not support an operator
    """
    conditions = []
    for key, value in filters.items():
        if key in LOGICAL_KEYS:
            subqueries = _as_list(key, value)
            if not subqueries or not all(isinstance(sub, Mapping) for sub in subqueries):
                raise BadRequestError(f"{key} expects a list of sub-queries")
            combine = operator.or_ if key == "$or" else operator.and_
            conditions.append(reduce(combine, (build_condition(sub) for sub in subqueries)))
        elif key == NOT_KEY:
            if not isinstance(value, Mapping):
                raise BadRequestError(f"{key} expects a sub-query, got {value!r}")
            conditions.append(~build_condition(value))
        elif isinstance(key, str) and key.startswith("$"):
            raise StorageError(f"Unknown query operator '{key}'")
        else:
            conditions.append(_field_condition(key, value))

    if not conditions:
        return Query().noop()
    return reduce(operator.and_, conditions)


def _sort_key(value: Any) -> tuple:
    # Type ranks: missing/None < numbers < strings < booleans < lists < mappings
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (3, value)
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, (list, tuple)):
        return (4, tuple(_sort_key(item) for item in value))
    if isinstance(value, Mapping):
        return (5, tuple(sorted((str(key), _sort_key(item)) for key, item in value.items())))
    return (6, str(value))


def sort_records(records: list[dict[str, Any]], sort: Mapping[str, int]) -> list[dict[str, Any]]:
    """Order records by one or more fields.

    Args:
        records: Records to sort
        sort: Field name -> direction; later keys break ties of earlier ones

    Returns:
        New sorted list
    """
    ordered = list(records)
    for name, direction in reversed(list(sort.items())):
        ordered.sort(key=lambda record: _sort_key(resolve_field(record, name)), reverse=direction < 0)
    return ordered


def select_fields(record: dict[str, Any], select: tuple[str, ...] | None, id_field: str) -> dict[str, Any]:
    """Project a record onto the selected fields, always keeping the identifier.

    Dotted names select nested values and keep their enclosing structure, so
    ``("address.city",)`` yields ``{"address": {"city": ...}}``.
    """
    if select is None:
        return record

    selected = {key: value for key, value in record.items() if key == id_field or key in select}
    for name in select:
        if "." not in name:
            continue
        parts = name.split(".")
        value: Any = record
        for part in parts:
            if not isinstance(value, Mapping) or part not in value:
                break
            value = value[part]
        else:
            target = selected
            for part in parts[:-1]:
                target = target.setdefault(part, {})
            target[parts[-1]] = value
    return selected
