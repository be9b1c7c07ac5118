from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Mapping, Sequence

from ..errors import ErrorKind, Result
from ..schema import LoadedEntity
from .paths import AttributeVector, resolve_vector

if TYPE_CHECKING:  # pragma: no cover
    from ..schema_service import EntitySchemaService

ASC = 'asc'
DESC = 'desc'

_ORDER_ALIASES = {
    'asc': ASC,
    'ascending': ASC,
    '1': ASC,
    'desc': DESC,
    'descending': DESC,
    '-1': DESC,
}


def dir_value(order_dir: Any) -> str:
    """Normalize an order direction (enum, string, +/-1) to 'asc' or 'desc'.

    Returns the lowered raw string when it is not a known direction so the
    caller can report it.
    """
    if order_dir is None:
        return ASC
    val = getattr(order_dir, 'value', order_dir)
    s = str(val).strip().lower()
    return _ORDER_ALIASES.get(s, s)


@dataclass(frozen=True)
class Sort:
    field_path: str
    order: str = ASC

    @classmethod
    def parse_many(cls, pairs: Mapping[str, Sequence[str]]) -> List['Sort']:
        """Parse ``{field_path: [order]}``; an empty value means ascending."""
        out: List[Sort] = []
        for path, values in pairs.items():
            if isinstance(values, str):
                values = [values]
            order = values[0] if values else ASC
            out.append(cls(field_path=path.strip(), order=dir_value(order)))
        return out


@dataclass(frozen=True)
class ValidSort:
    vector: AttributeVector
    order: str = ASC

    @property
    def field_path(self) -> str:
        return self.vector.full_path

    @property
    def is_desc(self) -> bool:
        return self.order == DESC

    def flipped(self) -> 'ValidSort':
        return ValidSort(vector=self.vector, order=ASC if self.is_desc else DESC)


async def resolve_sorts(
    service: 'EntitySchemaService', entity: LoadedEntity, sorts: Sequence[Sort]
) -> Result[List[ValidSort]]:
    resolved: List[ValidSort] = []
    for sort in sorts:
        order = dir_value(sort.order)
        if order not in (ASC, DESC):
            return Result.fail(ErrorKind.INVALID_VALUE, f"Invalid sort order '{sort.order}' for {sort.field_path}. Use asc or desc")
        vec = await resolve_vector(service, entity, sort.field_path)
        if vec.is_failed:
            return Result.fail(vec.error.kind, f"Fail to resolve sort {sort.field_path}: {vec.error}")
        resolved.append(ValidSort(vector=vec.value, order=order))
    return Result.ok(resolved)


def with_primary_key(entity: LoadedEntity, sorts: Sequence[ValidSort]) -> List[ValidSort]:
    """Append the primary key ascending so the ordering is total."""
    out = list(sorts)
    if any(s.field_path == entity.primary_key for s in out):
        return out
    pk = entity.primary_key_attribute
    out.append(
        ValidSort(
            vector=AttributeVector(full_path=pk.field, prefix='', attributes=(), leaf=pk),
            order=ASC,
        )
    )
    return out
