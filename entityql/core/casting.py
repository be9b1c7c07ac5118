from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Dict

from ..errors import ErrorKind, Result
from ..schema import Attribute, DataType

Caster = Callable[[Any], Any]

_TRUE = ('true', 't', '1', 'yes', 'y')
_FALSE = ('false', 'f', '0', 'no', 'n')


def _to_str(val: Any) -> str:
    if isinstance(val, (dict, list, tuple, set)):
        raise ValueError(f"expected a scalar, got {type(val).__name__}")
    return val if isinstance(val, str) else str(val)


def _to_int(val: Any) -> int:
    if isinstance(val, bool):
        raise ValueError("expected an integer, got a boolean")
    if isinstance(val, int):
        return val
    if isinstance(val, float):
        if not val.is_integer():
            raise ValueError(f"{val!r} is not an integer")
        return int(val)
    return int(str(val).strip())


def _to_float(val: Any) -> float:
    if isinstance(val, bool):
        raise ValueError("expected a number, got a boolean")
    if isinstance(val, (int, float)):
        return float(val)
    return float(str(val).strip())


def _to_bool(val: Any) -> bool:
    if isinstance(val, bool):
        return val
    lv = str(val).strip().lower()
    if lv in _TRUE:
        return True
    if lv in _FALSE:
        return False
    raise ValueError(f"{val!r} is not a boolean")


def _to_datetime(val: Any) -> datetime:
    if isinstance(val, datetime):
        return val
    if isinstance(val, date):
        return datetime(val.year, val.month, val.day)
    s = str(val).strip()
    if s.endswith('Z'):
        s = s[:-1] + '+00:00'
    return datetime.fromisoformat(s)


def _to_date(val: Any) -> date:
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    s = str(val).strip()
    # Accept full timestamps for date columns, keep the calendar day
    if 'T' in s or ' ' in s:
        return _to_datetime(s).date()
    return date.fromisoformat(s)


# Lookup columns store the target's primary key; Junction values address target keys
CASTERS: Dict[DataType, Caster] = {
    DataType.STRING: _to_str,
    DataType.TEXT: _to_str,
    DataType.INT: _to_int,
    DataType.FLOAT: _to_float,
    DataType.BOOL: _to_bool,
    DataType.DATETIME: _to_datetime,
    DataType.DATE: _to_date,
    DataType.LOOKUP: _to_int,
    DataType.JUNCTION: _to_int,
}


def cast_value(data_type: DataType, raw: Any) -> Result[Any]:
    """Cast an untyped value into the database type for ``data_type``."""
    caster = CASTERS.get(data_type)
    if caster is None:
        return Result.fail(ErrorKind.INVALID_VALUE, f"no caster registered for data type {data_type}")
    try:
        return Result.ok(caster(raw))
    except (TypeError, ValueError, OverflowError) as e:
        return Result.fail(
            ErrorKind.INVALID_VALUE,
            f"can not cast {raw!r} to {data_type.value}: {e}",
        )


def cast_for(attr: Attribute, raw: Any) -> Result[Any]:
    res = cast_value(attr.data_type, raw)
    if res.is_failed:
        return Result.fail(ErrorKind.INVALID_VALUE, f"invalid value for `{attr.field}`: {res.error}")
    return res


def register_caster(data_type: DataType, fn: Caster) -> None:
    CASTERS[data_type] = fn
