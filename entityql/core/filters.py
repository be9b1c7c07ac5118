from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import and_, func, or_

from ..errors import ErrorKind, Result
from ..schema import DataType, LoadedEntity
from .casting import cast_for, cast_value
from .paths import AttributeVector, resolve_vector

if TYPE_CHECKING:  # pragma: no cover
    from ..schema_service import EntitySchemaService

QUERYSTRING_PREFIX = 'querystring.'
TOKEN_PREFIX = 'token.'

AND = 'and'
OR = 'or'


def _first(v: Sequence[Any]) -> Any:
    return v[0]


def _day_range(v: Sequence[Any]) -> Tuple[datetime, datetime]:
    d = v[0]
    start = datetime(d.year, d.month, d.day)
    return start, start + timedelta(days=1)


# Match operator registry (extensible). Each builder receives the column and
# the tuple of already-cast values for one constraint.
OPERATOR_REGISTRY: Dict[str, Callable[[Any, Sequence[Any]], Any]] = {
    'eq': lambda col, v: col == _first(v),
    'ne': lambda col, v: col != _first(v),
    'lt': lambda col, v: col < _first(v),
    'lte': lambda col, v: col <= _first(v),
    'gt': lambda col, v: col > _first(v),
    'gte': lambda col, v: col >= _first(v),
    'in': lambda col, v: col.in_(list(v)),
    'notIn': lambda col, v: ~col.in_(list(v)),
    'between': lambda col, v: col.between(v[0], v[1]),
    'like': lambda col, v: col.like(_first(v)),
    'contains': lambda col, v: col.contains(_first(v), autoescape=True),
    'notContains': lambda col, v: ~col.contains(_first(v), autoescape=True),
    'startsWith': lambda col, v: col.startswith(_first(v), autoescape=True),
    'endsWith': lambda col, v: col.endswith(_first(v), autoescape=True),
    'ilike': lambda col, v: func.lower(col).like(func.lower(_first(v))),
    'isNull': lambda col, v: col.is_(None) if _first(v) else col.is_not(None),
    'dateIs': lambda col, v: and_(col >= _day_range(v)[0], col < _day_range(v)[1]),
    'dateIsNot': lambda col, v: or_(col < _day_range(v)[0], col >= _day_range(v)[1]),
    'dateBefore': lambda col, v: col < _first(v),
    'dateAfter': lambda col, v: col > _first(v),
}

# Aliases accepted from querystrings
OPERATOR_ALIASES: Dict[str, str] = {
    'equals': 'eq',
    'notEquals': 'ne',
    'not_in': 'notIn',
    'nin': 'notIn',
    'neq': 'ne',
    'starts_with': 'startsWith',
    'ends_with': 'endsWith',
    'not_contains': 'notContains',
}

# Operators whose values are not typed by the column: isNull takes a flag
BOOLEAN_OPERATORS = {'isNull'}

_TEXT_TYPES = frozenset({DataType.STRING, DataType.TEXT})
_DATE_TYPES = frozenset({DataType.DATE, DataType.DATETIME})

# Operators restricted to some column types; anything not listed applies to all
OPERATOR_TYPES: Dict[str, FrozenSet[DataType]] = {
    'like': _TEXT_TYPES,
    'ilike': _TEXT_TYPES,
    'contains': _TEXT_TYPES,
    'notContains': _TEXT_TYPES,
    'startsWith': _TEXT_TYPES,
    'endsWith': _TEXT_TYPES,
    'dateIs': _DATE_TYPES,
    'dateIsNot': _DATE_TYPES,
    'dateBefore': _DATE_TYPES,
    'dateAfter': _DATE_TYPES,
}
MULTI_VALUE_OPERATORS = {'in', 'notIn', 'between'}
ARITY = {'between': 2}


def canonical_operator(match: str) -> Optional[str]:
    name = OPERATOR_ALIASES.get(match, match)
    return name if name in OPERATOR_REGISTRY else None


def register_operator(
    name: str,
    fn: Callable[[Any, Sequence[Any]], Any],
    data_types: Optional[Iterable[DataType]] = None,
) -> None:
    """Add a match operator; ``data_types`` limits the leaf types it accepts."""
    OPERATOR_REGISTRY[name] = fn
    if data_types is None:
        OPERATOR_TYPES.pop(name, None)
    else:
        OPERATOR_TYPES[name] = frozenset(data_types)


def operator_accepts(match: str, data_type: DataType) -> bool:
    allowed = OPERATOR_TYPES.get(match)
    return allowed is None or data_type in allowed


@dataclass(frozen=True)
class Constraint:
    match: str
    values: Tuple[str, ...] = ()

    @property
    def value(self) -> str:
        return self.values[0] if self.values else ''


@dataclass(frozen=True)
class Filter:
    field_path: str
    operator: str = AND
    constraints: Tuple[Constraint, ...] = field(default_factory=tuple)

    @classmethod
    def parse(cls, field_path: str, pairs: Mapping[str, Sequence[str]]) -> 'Filter':
        """Build a filter from ``{match: [values...]}``; the ``operator`` key selects and/or."""
        operator = AND
        constraints: List[Constraint] = []
        for key, values in pairs.items():
            if isinstance(values, str):
                values = [values]
            if key == 'operator':
                if values:
                    operator = str(values[0]).strip().lower()
                continue
            if canonical_operator(key) in MULTI_VALUE_OPERATORS:
                constraints.append(Constraint(match=key, values=tuple(values)))
                continue
            for val in values:
                constraints.append(Constraint(match=key, values=(val,)))
        return cls(field_path=field_path.strip(), operator=operator, constraints=tuple(constraints))


@dataclass(frozen=True)
class ValidConstraint:
    match: str
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class ValidFilter:
    vector: AttributeVector
    operator: str
    constraints: Tuple[ValidConstraint, ...]

    def predicate(self, column) -> Any:
        """Combine this filter's constraints on ``column`` under its operator."""
        clauses = [OPERATOR_REGISTRY[c.match](column, c.values) for c in self.constraints]
        if len(clauses) == 1:
            return clauses[0]
        return or_(*clauses) if self.operator == OR else and_(*clauses)


def _resolve_values(
    vector: AttributeVector, match: str, raw: str, querystring: Optional[Mapping[str, Sequence[str]]]
) -> Result[Tuple[Any, ...]]:
    leaf = vector.leaf
    if raw is None or not str(raw).strip():
        return Result.fail(ErrorKind.INVALID_VALUE, f"Fail to resolve filter, value not set for field {vector.full_path}")
    raw = str(raw)

    if raw.startswith(TOKEN_PREFIX):
        raise NotImplementedError(f"token indirection is not supported yet: {raw}")

    if raw.startswith(QUERYSTRING_PREFIX):
        key = raw[len(QUERYSTRING_PREFIX):]
        if not querystring or key not in querystring:
            return Result.fail(ErrorKind.INVALID_VALUE, f"Fail to resolve filter: no key {key} in query string")
        candidates = querystring[key]
        candidates = [candidates] if isinstance(candidates, str) else list(candidates)
        if not candidates:
            return Result.fail(ErrorKind.INVALID_VALUE, f"Fail to resolve filter: key {key} has no value in query string")
    else:
        candidates = [raw]

    out: List[Any] = []
    for c in candidates:
        if c is None or not str(c).strip():
            return Result.fail(ErrorKind.INVALID_VALUE, f"Fail to resolve filter, value not set for field {vector.full_path}")
        if match in BOOLEAN_OPERATORS:
            res = cast_value(DataType.BOOL, c)
        else:
            res = cast_for(leaf, c)
        if res.is_failed:
            return Result.from_errors(res.errors)
        out.append(res.value)
    return Result.ok(tuple(out))


async def resolve_filters(
    service: 'EntitySchemaService',
    entity: LoadedEntity,
    filters: Sequence[Filter],
    querystring: Optional[Mapping[str, Sequence[str]]] = None,
) -> Result[List[ValidFilter]]:
    resolved: List[ValidFilter] = []
    for flt in filters:
        if flt.operator not in (AND, OR):
            return Result.fail(ErrorKind.INVALID_VALUE, f"invalid filter operator `{flt.operator}` for {flt.field_path}")
        vec = await resolve_vector(service, entity, flt.field_path)
        if vec.is_failed:
            return Result.fail(
                vec.error.kind,
                f"Fail to resolve filter: no field {flt.field_path} in {entity.name}: {vec.error}",
            )
        vector = vec.value
        if not flt.constraints:
            return Result.fail(ErrorKind.INVALID_VALUE, f"no constraint given for filter on {flt.field_path}")

        constraints: List[ValidConstraint] = []
        for con in flt.constraints:
            match = canonical_operator(con.match)
            if match is None:
                return Result.fail(ErrorKind.INVALID_VALUE, f"Unknown match operator `{con.match}` for {flt.field_path}")
            if not operator_accepts(match, vector.leaf.data_type):
                return Result.fail(
                    ErrorKind.INVALID_VALUE,
                    f"`{match}` can not be applied to {flt.field_path} of type {vector.leaf.data_type.value}",
                )
            # Multi-value constraints (in/between) may carry several literals
            values: List[Any] = []
            for raw in con.values or ('',):
                res = _resolve_values(vector, match, raw, querystring)
                if res.is_failed:
                    return Result.from_errors(res.errors)
                values.extend(res.value)
            need = ARITY.get(match)
            if need is not None and len(values) != need:
                return Result.fail(
                    ErrorKind.INVALID_VALUE,
                    f"`{match}` on {flt.field_path} expects {need} values, got {len(values)}",
                )
            constraints.append(ValidConstraint(match=match, values=tuple(values)))
        resolved.append(ValidFilter(vector=vector, operator=flt.operator, constraints=tuple(constraints)))
    return Result.ok(resolved)
