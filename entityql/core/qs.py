"""Request-shape parsing.

Structured args look like::

    {
        "author.name": {"equals": ["admin"], "operator": ["or"]},
        "sort": {"published_at": ["desc"]},
    }

and can be produced from querystrings of the form
``author.name[equals]=admin&sort[published_at]=desc&last=<cursor>``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple, Union
from urllib.parse import parse_qsl

from .cursor import Cursor
from .filters import Filter
from .pagination import Pagination
from .sorts import Sort

QsDict = Dict[str, Dict[str, List[str]]]

_BRACKET = re.compile(r'^(?P<name>[^\[\]]+)\[(?P<key>[^\[\]]*)\]$')


@dataclass(frozen=True)
class QueryArgs:
    args: QsDict = field(default_factory=dict)
    cursor: Cursor = field(default_factory=Cursor)
    pagination: Pagination = field(default_factory=Pagination)
    querystring: Dict[str, List[str]] = field(default_factory=dict)


def split_args(args: Mapping[str, Mapping[str, Sequence[str]]], sort_key: str = 'sort') -> Tuple[List[Filter], List[Sort]]:
    filters: List[Filter] = []
    sorts: List[Sort] = []
    for name, pairs in (args or {}).items():
        if name == sort_key:
            sorts.extend(Sort.parse_many(pairs))
            continue
        filters.append(Filter.parse(name, pairs))
    return filters, sorts


def _int_or_none(values: List[str]) -> Union[int, None]:
    if not values:
        return None
    try:
        return int(values[-1])
    except ValueError:
        return None


def parse_query_args(
    query: Union[str, Iterable[Tuple[str, str]]],
    *,
    first_key: str = 'first',
    last_key: str = 'last',
) -> QueryArgs:
    pairs = parse_qsl(query, keep_blank_values=True) if isinstance(query, str) else list(query)

    args: QsDict = {}
    raw: Dict[str, List[str]] = {}
    for key, value in pairs:
        raw.setdefault(key, []).append(value)
        m = _BRACKET.match(key)
        if m is None:
            continue
        name, sub = m.group('name').strip(), m.group('key').strip()
        args.setdefault(name, {}).setdefault(sub, []).append(value)

    cursor = Cursor(
        first=(raw.get(first_key) or [''])[-1],
        last=(raw.get(last_key) or [''])[-1],
    )
    offset = _int_or_none(raw.get('offset', []))
    pagination = Pagination(
        offset=offset if offset is not None else 0,
        limit=_int_or_none(raw.get('limit', [])),
    )
    return QueryArgs(args=args, cursor=cursor, pagination=pagination, querystring=raw)
