"""End-to-end list queries.

``EntityQueryService`` resolves a request against the schema, assembles the
SQL descriptor, hands it to the executor and turns the returned rows into a
page with next/previous cursors. Resolution is fail-fast: the first failing
filter, sort or cursor aborts the request and no descriptor is built.
"""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence

from .config import Settings
from .core.cursor import Cursor, decode_cursor, next_cursor
from .core.filters import resolve_filters
from .core.pagination import ListResult, Pagination, finalize_rows
from .core.qs import QueryArgs, parse_query_args, split_args
from .core.sorts import resolve_sorts, with_primary_key
from .errors import Result
from .executor import QueryExecutor
from .schema_service import EntitySchemaService
from .sql.builders import QueryBuilder, QueryDescriptor

logger = logging.getLogger(__name__)

__all__ = ['EntityQueryService']


class EntityQueryService:
    def __init__(
        self,
        schema: EntitySchemaService,
        executor: Optional[QueryExecutor] = None,
        settings: Optional[Settings] = None,
        builder: Optional[QueryBuilder] = None,
    ):
        self.schema = schema
        self.executor = executor
        self.settings = settings or Settings()
        self.builder = builder or QueryBuilder()

    def _page_size(self, entity_default: int, pagination: Pagination) -> int:
        default = entity_default if entity_default > 0 else self.settings.default_page_size
        size = pagination.page_size(default, self.settings.max_page_size)
        if pagination.limit is not None and pagination.limit > self.settings.max_page_size:
            logger.warning("page size %d clamped to %d", pagination.limit, self.settings.max_page_size)
        return size

    async def build(
        self,
        name: str,
        args: Optional[Mapping[str, Mapping[str, Sequence[str]]]] = None,
        *,
        cursor: Optional[Cursor] = None,
        pagination: Optional[Pagination] = None,
        querystring: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> Result[QueryDescriptor]:
        """Resolve a list request into a descriptor without executing it."""
        cursor = cursor or Cursor()
        pagination = pagination or Pagination()

        loaded = await self.schema.get_loaded_entity(name)
        if loaded.is_failed:
            return Result.from_errors(loaded.errors)
        entity = loaded.value

        raw_filters, raw_sorts = split_args(args or {}, self.settings.sort_key)
        filters = await resolve_filters(self.schema, entity, raw_filters, querystring)
        if filters.is_failed:
            return Result.from_errors(filters.errors)
        sorts = await resolve_sorts(self.schema, entity, raw_sorts)
        if sorts.is_failed:
            return Result.from_errors(sorts.errors)
        valid_cursor = await decode_cursor(self.schema, cursor, entity)
        if valid_cursor.is_failed:
            return Result.from_errors(valid_cursor.errors)

        return self.builder.build(
            entity,
            filters=filters.value,
            sorts=with_primary_key(entity, sorts.value),
            cursor=valid_cursor.value,
            pagination=pagination,
            page_size=self._page_size(entity.default_page_size, pagination),
        )

    async def list(
        self,
        name: str,
        args: Optional[Mapping[str, Mapping[str, Sequence[str]]]] = None,
        *,
        cursor: Optional[Cursor] = None,
        pagination: Optional[Pagination] = None,
        querystring: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> Result[ListResult]:
        if self.executor is None:
            raise RuntimeError("EntityQueryService.list requires a query executor")
        cursor = cursor or Cursor()
        built = await self.build(name, args, cursor=cursor, pagination=pagination, querystring=querystring)
        if built.is_failed:
            return Result.from_errors(built.errors)
        descriptor = built.value

        rows = await self.executor.execute(descriptor)
        return self.page(descriptor, rows)

    async def list_from_query(self, name: str, query: str) -> Result[ListResult]:
        """Parse a raw querystring and list ``name`` with it."""
        parsed: QueryArgs = parse_query_args(
            query,
            first_key=self.settings.cursor_first_key,
            last_key=self.settings.cursor_last_key,
        )
        return await self.list(
            name,
            parsed.args,
            cursor=parsed.cursor,
            pagination=parsed.pagination,
            querystring=parsed.querystring,
        )

    @staticmethod
    def page(descriptor: QueryDescriptor, rows: Sequence[Mapping[str, Any]]) -> Result[ListResult]:
        """Turn executor rows for ``descriptor`` into a page with its next cursor."""
        cursor = descriptor.cursor.cursor
        items, has_more = finalize_rows(rows, descriptor.limit, cursor)
        if not items:
            return Result.ok(ListResult(items=[], cursor=Cursor(), has_previous_page=False, has_next_page=False))
        nxt = next_cursor(cursor, items, descriptor.sorts, has_more)
        if nxt.is_failed:
            return Result.from_errors(nxt.errors)
        items_out: List[Mapping[str, Any]] = list(items)
        return Result.ok(
            ListResult(
                items=items_out,
                cursor=nxt.value,
                has_previous_page=bool(nxt.value.first),
                has_next_page=bool(nxt.value.last),
            )
        )
