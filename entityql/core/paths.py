from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Tuple

from ..errors import ErrorKind, Result
from ..schema import DataType, LoadedAttribute, LoadedEntity

if TYPE_CHECKING:  # pragma: no cover
    from ..schema_service import EntitySchemaService

SEPARATOR = '.'

__all__ = ['AttributeVector', 'SEPARATOR', 'resolve_vector']


@dataclass(frozen=True)
class AttributeVector:
    """A dot path resolved against a starting entity.

    ``attributes`` holds the compound attributes walked through, in order;
    ``leaf`` is the attribute named by the last segment.
    """
    full_path: str
    prefix: str
    attributes: Tuple[LoadedAttribute, ...]
    leaf: LoadedAttribute

    @property
    def is_local(self) -> bool:
        return not self.attributes


async def resolve_vector(
    service: 'EntitySchemaService', entity: LoadedEntity, path: str
) -> Result[AttributeVector]:
    fields = (path or '').split(SEPARATOR)
    if any(not f.strip() for f in fields):
        return Result.fail(ErrorKind.INVALID_PATH, f"invalid field path `{path}`")

    walked: List[LoadedAttribute] = []
    current = entity
    for segment in fields[:-1]:
        attr = current.find(segment)
        if attr is None:
            return Result.fail(ErrorKind.NOT_FOUND, f"can not find {segment} in {current.name}")
        if not attr.is_compound:
            return Result.fail(
                ErrorKind.INVALID_PATH,
                f"can not resolve {path}, {segment} is not a composite type",
            )
        if not attr.is_loaded:
            # Fresh visited set: a cycle-guarded junction still has to be walkable
            res = await service.load_one_compound_attribute(current, attr, set())
            if res.is_failed:
                return Result.from_errors(res.errors)
            attr = res.value
        walked.append(attr)
        if attr.data_type is DataType.JUNCTION:
            current = attr.junction.target_entity
        else:
            current = attr.lookup

    leaf = current.find(fields[-1])
    if leaf is None:
        return Result.fail(ErrorKind.NOT_FOUND, f"can not find {fields[-1]} in {current.name}")
    if leaf.data_type is DataType.JUNCTION and not leaf.is_loaded:
        # filtering on a junction leaf addresses its join table
        res = await service.load_one_compound_attribute(current, leaf, set())
        if res.is_failed:
            return Result.from_errors(res.errors)
        leaf = res.value
    return Result.ok(
        AttributeVector(
            full_path=path,
            prefix=SEPARATOR.join(fields[:-1]),
            attributes=tuple(walked),
            leaf=leaf,
        )
    )
