"""Keyset pagination cursors.

A cursor side (``first`` or ``last``) is the unpadded base64url encoding of a
compact JSON object mapping each active sort field's full path to the value of
that field in the boundary row of the page it came from.
"""
from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Sequence, Tuple

from ..errors import ErrorKind, Result
from ..schema import LoadedEntity
from .casting import cast_for
from .paths import SEPARATOR, resolve_vector
from .sorts import ASC, ValidSort

if TYPE_CHECKING:  # pragma: no cover
    from ..schema_service import EntitySchemaService

CURSOR = 'cursor'
HAS_PREVIOUS_PAGE = 'hasPreviousPage'
HAS_NEXT_PAGE = 'hasNextPage'

_MISSING = object()


@dataclass(frozen=True)
class Cursor:
    first: str = ''
    last: str = ''

    @property
    def is_empty(self) -> bool:
        return not (self.first or '').strip() and not (self.last or '').strip()

    @property
    def is_forward(self) -> bool:
        return bool((self.last or '').strip()) or not (self.first or '').strip()


@dataclass(frozen=True)
class ValidCursor:
    cursor: Cursor
    edge_item: Optional[Mapping[str, Any]] = None

    @property
    def is_empty(self) -> bool:
        return self.edge_item is None

    def edge(self, field_path: str) -> Result[Any]:
        if not self.edge_item or field_path not in self.edge_item:
            return Result.fail(ErrorKind.DECODE_ERROR, f"cursor has no value for `{field_path}`")
        return Result.ok(self.edge_item[field_path])


def compare_operator(cursor: Cursor, order: str) -> str:
    asc = order == ASC
    if cursor.is_forward:
        return '>' if asc else '<'
    return '<' if asc else '>'


def page_flags(cursor: Cursor, has_more: bool) -> Tuple[bool, bool]:
    """Return (has_previous, has_next) for a page fetched with ``cursor``."""
    first_set = bool((cursor.first or '').strip())
    last_set = bool((cursor.last or '').strip())
    if not first_set and not last_set:
        # home page never has a previous page
        return False, has_more
    if has_more:
        return True, True
    if first_set and not last_set:
        # went backward and ran out: only forward remains
        return False, True
    if last_set and not first_set:
        return True, False
    return False, False


def _json_default(val: Any) -> Any:
    if isinstance(val, (datetime, date)):
        return val.isoformat()
    if isinstance(val, Decimal):
        return str(val)
    raise TypeError(f"value of type {type(val).__name__} is not cursor-serializable")


def value_by_path(row: Mapping[str, Any], path: str) -> Any:
    """Read ``path`` from a flat row (key == full path) or from nested mappings."""
    if path in row:
        return row[path]
    cur: Any = row
    for part in path.split(SEPARATOR):
        if not isinstance(cur, Mapping) or part not in cur:
            return _MISSING
        cur = cur[part]
    return cur


def _b64encode(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode('utf-8')).rstrip(b'=').decode('ascii')


def _b64decode(token: str) -> str:
    token = token.strip()
    padded = token + '=' * (-len(token) % 4)
    return base64.b64decode(padded, altchars=b'-_', validate=True).decode('utf-8')


def encode_record(row: Mapping[str, Any], sorts: Sequence[ValidSort]) -> Result[str]:
    edge: Dict[str, Any] = {}
    for sort in sorts:
        val = value_by_path(row, sort.field_path)
        if val is _MISSING:
            return Result.fail(ErrorKind.DECODE_ERROR, f"row has no value for sort field `{sort.field_path}`")
        edge[sort.field_path] = val
    try:
        payload = json.dumps(edge, separators=(',', ':'), default=_json_default)
    except (TypeError, ValueError) as e:
        return Result.fail(ErrorKind.DECODE_ERROR, f"can not encode cursor: {e}")
    return Result.ok(_b64encode(payload))


def next_cursor(
    cursor: Cursor,
    rows: Sequence[Mapping[str, Any]],
    sorts: Optional[Sequence[ValidSort]],
    has_more: bool,
) -> Result[Cursor]:
    if not sorts:
        return Result.fail(ErrorKind.INVALID_VALUE, "Can not generate next cursor, sort was not set")
    if not rows:
        return Result.fail(ErrorKind.INVALID_VALUE, "No result, can not generate cursor")

    has_previous, has_next = page_flags(cursor, has_more)
    first = last = ''
    if has_previous:
        res = encode_record(rows[0], sorts)
        if res.is_failed:
            return Result.from_errors(res.errors)
        first = res.value
    if has_next:
        res = encode_record(rows[-1], sorts)
        if res.is_failed:
            return Result.from_errors(res.errors)
        last = res.value
    return Result.ok(Cursor(first=first, last=last))


async def decode_cursor(
    service: 'EntitySchemaService', cursor: Cursor, entity: LoadedEntity
) -> Result[ValidCursor]:
    if cursor.is_empty:
        return Result.ok(ValidCursor(cursor))

    token = cursor.last if cursor.is_forward else cursor.first
    try:
        element = json.loads(_b64decode(token))
    except (binascii.Error, ValueError) as e:
        return Result.fail(ErrorKind.DECODE_ERROR, f"invalid cursor: {e}")
    if not isinstance(element, dict) or not element:
        return Result.fail(ErrorKind.DECODE_ERROR, "invalid cursor: expected a non-empty JSON object")

    edge: Dict[str, Any] = {}
    for path, raw in element.items():
        vec = await resolve_vector(service, entity, path)
        if vec.is_failed:
            return Result.fail(ErrorKind.DECODE_ERROR, f"invalid cursor field `{path}`: {vec.error}")
        if raw is None:
            edge[path] = None
            continue
        res = cast_for(vec.value.leaf, raw)
        if res.is_failed:
            return Result.fail(ErrorKind.DECODE_ERROR, f"invalid cursor value: {res.error}")
        edge[path] = res.value
    return Result.ok(ValidCursor(cursor, edge))
