"""
Input types for exposing entity list queries over GraphQL.

This module defines Strawberry input types for filters, sorting, cursor and
offset pagination. They mirror the structured request shape consumed by
``EntityQueryService`` and are converted by ``input_converter``.
"""

from enum import Enum
from typing import List, Optional

import strawberry


class _DirectionEnum(Enum):
    asc = 'asc'
    desc = 'desc'


Direction = strawberry.enum(_DirectionEnum, name="Direction")  # type: ignore


class _BooleanOperatorEnum(Enum):
    AND = 'and'
    OR = 'or'


BooleanOperator = strawberry.enum(_BooleanOperatorEnum, name="BooleanOperator")  # type: ignore


@strawberry.input
class ConstraintInput:
    """One match operator with its raw values (literals or querystring.<key>)."""
    match: str
    values: List[str]


@strawberry.input
class FilterInput:
    """Constraints on one dot-path field, combined with and/or."""
    field: str
    constraints: List[ConstraintInput]
    operator: Optional[BooleanOperator] = None


@strawberry.input
class SortInput:
    """Input type for ordering specifications."""
    field: str
    order: Optional[Direction] = None


@strawberry.input
class CursorInput:
    """Opaque keyset cursor returned by a previous page."""
    first: Optional[str] = None
    last: Optional[str] = None


@strawberry.input
class PaginationInput:
    """Input type for pagination parameters."""
    offset: Optional[int] = None
    limit: Optional[int] = None


__all__ = [
    'Direction',
    'BooleanOperator',
    'ConstraintInput',
    'FilterInput',
    'SortInput',
    'CursorInput',
    'PaginationInput',
]
