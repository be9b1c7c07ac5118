from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, String, Text, and_, column, false, or_, select, table
from sqlalchemy.sql import ColumnElement, FromClause, Select

from ..core.cursor import Cursor, ValidCursor, compare_operator
from ..core.filters import ValidFilter
from ..core.pagination import Pagination
from ..core.paths import SEPARATOR, AttributeVector
from ..core.sorts import ValidSort
from ..errors import ErrorKind, Result
from ..schema import DataType, LoadedAttribute, LoadedEntity

logger = logging.getLogger(__name__)

# Centralized SQL builders: resolved filters/sorts/cursor in, SQLAlchemy Core out.

SQL_TYPES = {
    DataType.STRING: String,
    DataType.TEXT: Text,
    DataType.INT: Integer,
    DataType.FLOAT: Float,
    DataType.BOOL: Boolean,
    DataType.DATETIME: DateTime,
    DataType.DATE: Date,
    DataType.LOOKUP: Integer,
}

JUNCTION_SUFFIX = '__junction'

_COMPARATORS = {
    '>': lambda col, v: col > v,
    '<': lambda col, v: col < v,
}


@dataclass(frozen=True)
class QueryDescriptor:
    """Everything the executor needs, plus what is needed to page its rows."""
    entity: LoadedEntity
    statement: Select
    limit: int
    sorts: List[ValidSort]
    cursor: ValidCursor

    @property
    def fetch_limit(self) -> int:
        return self.limit + 1


def entity_table(entity: LoadedEntity):
    """Lightweight table construct for an entity's own columns."""
    cols = []
    seen = set()
    for attr in entity.local_attributes():
        cols.append(column(attr.field, SQL_TYPES.get(attr.data_type, String)()))
        seen.add(attr.field)
    if entity.primary_key not in seen:
        cols.append(column(entity.primary_key, Integer()))
    return table(entity.table_name, *cols)


class _JoinPlan:
    """Aliased FROM clause grown one relationship path at a time."""

    def __init__(self, entity: LoadedEntity):
        self.entity = entity
        self.root = entity_table(entity)
        self.from_clause: FromClause = self.root
        self.aliases: Dict[str, Any] = {'': self.root}
        self.has_junction = False

    def _join(self, target, onclause) -> None:
        self.from_clause = self.from_clause.outerjoin(target, onclause)

    def _ensure_junction_table(self, owner, owner_entity_pk: str, attr: LoadedAttribute, path: str):
        key = path + JUNCTION_SUFFIX
        if key in self.aliases:
            return self.aliases[key]
        j = attr.junction
        jt = table(
            j.table_name,
            column(j.source_column, Integer()),
            column(j.target_column, Integer()),
        ).alias(key)
        self._join(jt, jt.c[j.source_column] == owner.c[owner_entity_pk])
        self.aliases[key] = jt
        self.has_junction = True
        return jt

    def owner_for(self, vector: AttributeVector):
        """Join every relationship in ``vector`` and return the alias owning its leaf."""
        owner = self.root
        owner_entity = self.entity
        path = ''
        for attr in vector.attributes:
            path = f"{path}{SEPARATOR}{attr.field}" if path else attr.field
            target = attr.target_entity
            if path not in self.aliases:
                tt = entity_table(target).alias(path)
                if attr.data_type is DataType.LOOKUP:
                    self._join(tt, tt.c[target.primary_key] == owner.c[attr.field])
                else:
                    jt = self._ensure_junction_table(owner, owner_entity.primary_key, attr, path)
                    self._join(tt, tt.c[target.primary_key] == jt.c[attr.junction.target_column])
                self.aliases[path] = tt
            owner = self.aliases[path]
            owner_entity = target
        return owner, owner_entity, path

    def column_for(self, vector: AttributeVector) -> ColumnElement:
        owner, owner_entity, path = self.owner_for(vector)
        leaf = vector.leaf
        if leaf.data_type is DataType.JUNCTION:
            leaf_path = f"{path}{SEPARATOR}{leaf.field}" if path else leaf.field
            jt = self._ensure_junction_table(owner, owner_entity.primary_key, leaf, leaf_path)
            return jt.c[leaf.junction.target_column]
        return owner.c[leaf.field]


class QueryBuilder:
    def build(
        self,
        entity: LoadedEntity,
        *,
        filters: Sequence[ValidFilter] = (),
        sorts: Sequence[ValidSort] = (),
        cursor: Optional[ValidCursor] = None,
        pagination: Optional[Pagination] = None,
        page_size: int = 20,
    ) -> Result[QueryDescriptor]:
        cursor = cursor or ValidCursor(Cursor())
        pagination = pagination or Pagination()
        plan = _JoinPlan(entity)

        where: List[Any] = []
        for flt in filters:
            where.append(flt.predicate(plan.column_for(flt.vector)))

        sort_cols = [(s, plan.column_for(s.vector)) for s in sorts]
        not_null = (entity.primary_key,)
        if not cursor.is_empty:
            boundary = self.keyset_predicate(cursor, sort_cols, not_null)
            if boundary.is_failed:
                return Result.from_errors(boundary.errors)
            where.append(boundary.value)

        projection = [plan.root.c[a.field] for a in entity.local_attributes()]
        if entity.find(entity.primary_key) is None:
            projection.append(plan.root.c[entity.primary_key])
        projected = {a.field for a in entity.local_attributes()} | {entity.primary_key}
        for s, col in sort_cols:
            if s.vector.is_local and s.field_path in projected:
                continue
            projection.append(col.label(s.field_path))
            projected.add(s.field_path)

        stmt = select(*projection).select_from(plan.from_clause)
        if where:
            stmt = stmt.where(and_(*where))
        if plan.has_junction:
            stmt = stmt.distinct()

        # NULL ranks below every value in both directions
        backward = not cursor.cursor.is_forward
        for s, col in sort_cols:
            desc = s.is_desc != backward
            clause = col.desc() if desc else col.asc()
            if s.field_path not in not_null:
                clause = clause.nulls_last() if desc else clause.nulls_first()
            stmt = stmt.order_by(clause)

        stmt = stmt.limit(page_size + 1)
        if cursor.is_empty and pagination.offset:
            if pagination.offset < 0:
                return Result.fail(ErrorKind.INVALID_VALUE, "offset must be non-negative")
            stmt = stmt.offset(pagination.offset)

        logger.debug("built query for %s: %s", entity.name, stmt)
        return Result.ok(
            QueryDescriptor(
                entity=entity,
                statement=stmt,
                limit=page_size,
                sorts=list(sorts),
                cursor=cursor,
            )
        )

    @staticmethod
    def keyset_predicate(cursor: ValidCursor, sort_cols, not_null: Sequence[str] = ()) -> Result[Any]:
        """OR over sort positions i of (all earlier keys equal AND key i past the edge).

        NULL ranks below every value, matching the ORDER BY emitted by ``build``:
        stepping up (``>``) NULLs lie behind the edge, stepping down (``<``)
        they lie ahead of any non-NULL edge. Columns in ``not_null`` skip the
        NULL branches.
        """
        if not sort_cols:
            return Result.fail(ErrorKind.INVALID_VALUE, "a cursor requires at least one sort field")
        branches = []
        equal_so_far: List[Any] = []
        for s, col in sort_cols:
            edge = cursor.edge(s.field_path)
            if edge.is_failed:
                return Result.fail(ErrorKind.DECODE_ERROR, str(edge.error))
            val = edge.value
            op = compare_operator(cursor.cursor, s.order)
            nullable = s.field_path not in not_null
            if val is None:
                # stepping down from NULL: no value lies past the edge
                past = col.is_not(None) if op == '>' else None
            elif op == '<' and nullable:
                past = or_(_COMPARATORS[op](col, val), col.is_(None))
            else:
                past = _COMPARATORS[op](col, val)
            if past is not None:
                branches.append(and_(*equal_so_far, past) if equal_so_far else past)
            equal_so_far.append(col.is_(None) if val is None else col == val)
        if not branches:
            return Result.ok(false())
        return Result.ok(or_(*branches) if len(branches) > 1 else branches[0])
