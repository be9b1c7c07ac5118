"""Entity loading and compound attribute resolution.

``EntitySchemaService`` is the single entry point the resolvers use to reach
schema definitions. Entity snapshots come from the injected cache (filled from
the store on a miss); saves and deletes go to the store and invalidate the
cache key afterwards.

Junction attributes are expanded recursively. Each top-level call owns a set
of visited join-table names; a junction whose join table was already visited
in that call is returned unexpanded, which is how self-referencing and
mutually-referencing entity graphs terminate.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Set, Tuple

from .cache import SchemaCache
from .errors import ErrorKind, Result
from .schema import DataType, Entity, Junction, LoadedAttribute, LoadedEntity, junction_table_name
from .store import SchemaStore

logger = logging.getLogger(__name__)

__all__ = ['EntitySchemaService']


class EntitySchemaService:
    def __init__(self, store: SchemaStore, cache: SchemaCache, cache_key: str = ''):
        self.store = store
        self.cache = cache
        self.cache_key = cache_key

    # --- reads -------------------------------------------------------------
    async def get_or_create(self) -> Tuple[Entity, ...]:
        async def _load() -> Tuple[Entity, ...]:
            return tuple(await self.store.all_entities())

        return await self.cache.get_or_create(self.cache_key, _load)

    async def get_entity(self, name: str) -> Result[Entity]:
        if not name or not name.strip():
            return Result.fail(ErrorKind.NOT_FOUND, "entity name was not set")
        for entity in await self.get_or_create():
            if entity.name == name:
                return Result.ok(entity)
        # Snapshot may predate a save made through another process
        entity = await self.store.get_entity_by_name(name)
        if entity is None:
            return Result.fail(ErrorKind.NOT_FOUND, f"can not find entity {name}")
        return Result.ok(entity)

    async def get_loaded_entity(self, name: str) -> Result[LoadedEntity]:
        res = await self.get_entity(name)
        if res.is_failed:
            return Result.from_errors(res.errors)
        return await self.load_compound_attributes(res.value.to_loaded(), set())

    # --- compound attributes ----------------------------------------------
    async def load_compound_attributes(
        self, entity: LoadedEntity, visited: Optional[Set[str]] = None
    ) -> Result[LoadedEntity]:
        visited = set() if visited is None else visited
        loaded: List[LoadedAttribute] = []
        for attr in entity.attributes:
            if not attr.is_compound:
                loaded.append(attr)
                continue
            res = await self.load_one_compound_attribute(entity, attr, visited)
            if res.is_failed:
                return Result.from_errors(res.errors)
            loaded.append(res.value)
        return Result.ok(entity.with_attributes(loaded))

    async def load_one_compound_attribute(
        self, entity: LoadedEntity, attr: LoadedAttribute, visited: Optional[Set[str]] = None
    ) -> Result[LoadedAttribute]:
        visited = set() if visited is None else visited
        if attr.data_type is DataType.LOOKUP:
            return await self._load_lookup(attr)
        if attr.data_type is DataType.JUNCTION:
            return await self._load_junction(entity, attr, visited)
        return Result.ok(attr)

    async def _load_lookup(self, attr: LoadedAttribute) -> Result[LoadedAttribute]:
        if attr.lookup is not None:
            return Result.ok(attr)
        target_name = attr.target_name()
        if target_name is None:
            return Result.fail(ErrorKind.NOT_FOUND, f"Lookup option was not set for attribute `{attr.field}`")
        res = await self.get_entity(target_name)
        if res.is_failed:
            return Result.fail(
                ErrorKind.NOT_FOUND,
                f"not find entity by name {target_name} for lookup {attr.field}",
            )
        return Result.ok(attr.with_lookup(res.value.to_loaded()))

    async def _load_junction(
        self, entity: LoadedEntity, attr: LoadedAttribute, visited: Set[str]
    ) -> Result[LoadedAttribute]:
        if attr.junction is not None:
            return Result.ok(attr)
        target_name = attr.target_name()
        if target_name is None:
            return Result.fail(
                ErrorKind.NOT_FOUND,
                f"Junction option was not set for attribute `{entity.name}.{attr.field}`",
            )
        table_name = junction_table_name(entity.name, target_name, attr.field)
        if table_name in visited:
            logger.debug("junction %s already visited, leaving %s.%s unexpanded", table_name, entity.name, attr.field)
            return Result.ok(attr)
        visited.add(table_name)

        res = await self.get_entity(target_name)
        if res.is_failed:
            return Result.fail(ErrorKind.NOT_FOUND, f"not find entity by name {target_name}, err = {res.error}")
        target = await self.load_compound_attributes(res.value.to_loaded(), visited)
        if target.is_failed:
            return Result.from_errors(target.errors)
        return Result.ok(attr.with_junction(Junction.between(entity, target.value, attr)))

    # --- writes ------------------------------------------------------------
    async def verify_entity(self, entity: Entity) -> Result[Entity]:
        message = entity.validate()
        if message is not None:
            return Result.fail(ErrorKind.INVALID_VALUE, message)
        for attr in entity.attributes:
            if not attr.is_compound:
                continue
            target_name = attr.target_name()
            if target_name is None:
                return Result.fail(
                    ErrorKind.NOT_FOUND,
                    f"{attr.data_type.value} option was not set for attribute `{attr.field}`",
                )
            # Self references are valid before the entity itself is stored
            if target_name == entity.name:
                continue
            if (await self.get_entity(target_name)).is_failed:
                return Result.fail(ErrorKind.NOT_FOUND, f"not find entity by name {target_name}")
        return Result.ok(entity)

    async def save_entity(self, entity: Entity) -> Result[Entity]:
        entity = entity.with_default_attributes()
        verified = await self.verify_entity(entity)
        if verified.is_failed:
            return verified
        saved = await self.store.save_entity(entity)
        await self.cache.remove(self.cache_key)
        logger.info("saved entity %s, schema cache invalidated", entity.name)
        return Result.ok(saved)

    async def delete_entity(self, name: str) -> bool:
        deleted = await self.store.delete_entity(name)
        await self.cache.remove(self.cache_key)
        logger.info("deleted entity %s (existed=%s), schema cache invalidated", name, deleted)
        return deleted
