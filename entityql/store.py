from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Protocol

from .schema import Entity

__all__ = ['SchemaStore', 'InMemorySchemaStore']


class SchemaStore(Protocol):
    """Persistence for entity definitions, owned outside the query core."""

    async def get_entity_by_name(self, name: str) -> Optional[Entity]:
        ...

    async def all_entities(self) -> List[Entity]:
        ...

    async def save_entity(self, entity: Entity) -> Entity:
        ...

    async def delete_entity(self, name: str) -> bool:
        ...


class InMemorySchemaStore:
    """Dictionary-backed store, suitable for tests and static schemas."""

    def __init__(self, entities: Iterable[Entity] = ()):
        self._entities: Dict[str, Entity] = {e.name: e for e in entities}
        self.reads = 0

    async def get_entity_by_name(self, name: str) -> Optional[Entity]:
        self.reads += 1
        return self._entities.get(name)

    async def all_entities(self) -> List[Entity]:
        self.reads += 1
        return list(self._entities.values())

    async def save_entity(self, entity: Entity) -> Entity:
        self._entities[entity.name] = entity
        return entity

    async def delete_entity(self, name: str) -> bool:
        return self._entities.pop(name, None) is not None
