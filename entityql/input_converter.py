"""
Input converter utilities for GraphQL input types.

This module converts Strawberry input objects into the structured request
shape (``{field: {match: [values]}}`` plus the sort key), the ``Cursor`` and
the ``Pagination`` consumed by ``EntityQueryService``.
"""

from typing import Dict, List, Optional

from .core.cursor import Cursor
from .core.pagination import Pagination
from .core.sorts import dir_value
from .input_types import CursorInput, FilterInput, PaginationInput, SortInput


def convert_filter_inputs(filters: Optional[List[FilterInput]]) -> Dict[str, Dict[str, List[str]]]:
    """
    Convert GraphQL filter inputs into structured filter args.

    Several inputs on the same field are merged; the last explicit operator wins.
    """
    result: Dict[str, Dict[str, List[str]]] = {}
    for flt in filters or []:
        pairs = result.setdefault(flt.field.strip(), {})
        if flt.operator is not None:
            pairs['operator'] = [str(getattr(flt.operator, 'value', flt.operator))]
        for con in flt.constraints or []:
            pairs.setdefault(con.match, []).extend(con.values or [])
    return result


def convert_sort_inputs(sorts: Optional[List[SortInput]]) -> Dict[str, List[str]]:
    """
    Convert GraphQL sort inputs, in order, to ``{field: [direction]}``.
    """
    return {s.field.strip(): [dir_value(s.order)] for s in (sorts or [])}


def convert_cursor_input(cursor: Optional[CursorInput]) -> Cursor:
    if cursor is None:
        return Cursor()
    return Cursor(first=cursor.first or '', last=cursor.last or '')


def convert_pagination_input(pagination: Optional[PaginationInput]) -> Pagination:
    if pagination is None:
        return Pagination()
    return Pagination(offset=pagination.offset or 0, limit=pagination.limit)


def convert_request(
    filters: Optional[List[FilterInput]] = None,
    sorts: Optional[List[SortInput]] = None,
    sort_key: str = 'sort',
) -> Dict[str, Dict[str, List[str]]]:
    """
    Build the structured args mapping from GraphQL filter and sort inputs.
    """
    args = convert_filter_inputs(filters)
    if sort_key in args:
        raise ValueError(f"'{sort_key}' is reserved for sorting and cannot be used as a filter field")
    sort_args = convert_sort_inputs(sorts)
    if sort_args:
        args[sort_key] = sort_args
    return args


__all__ = [
    'convert_filter_inputs',
    'convert_sort_inputs',
    'convert_cursor_input',
    'convert_pagination_input',
    'convert_request',
]
