"""EntityQL public API and lightweight lazy exports.

Schema model and result types are imported eagerly; the services, SQL
builder and GraphQL input layers are resolved on first attribute access so
importing ``entityql.schema`` does not pull in SQLAlchemy or Strawberry.
"""
from __future__ import annotations

from .errors import ErrorKind, QueryError, QueryResolutionError, Result
from .schema import Attribute, DataType, DisplayType, Entity, Junction, LoadedAttribute, LoadedEntity

_LAZY = {
    'Settings': 'config',
    'KeyValueCache': 'cache',
    'SchemaCache': 'cache',
    'InMemorySchemaStore': 'store',
    'SchemaStore': 'store',
    'EntitySchemaService': 'schema_service',
    'EntityQueryService': 'query_service',
    'QueryExecutor': 'executor',
    'SessionQueryExecutor': 'executor',
    'QueryBuilder': 'sql.builders',
    'QueryDescriptor': 'sql.builders',
    'Cursor': 'core.cursor',
    'ValidCursor': 'core.cursor',
    'Filter': 'core.filters',
    'Constraint': 'core.filters',
    'ValidFilter': 'core.filters',
    'Sort': 'core.sorts',
    'ValidSort': 'core.sorts',
    'AttributeVector': 'core.paths',
    'Pagination': 'core.pagination',
    'ListResult': 'core.pagination',
}


def __getattr__(name: str):  # PEP 562 lazy exports
    import importlib as _importlib
    module = _LAZY.get(name)
    if module is None:
        raise AttributeError(name)
    return getattr(_importlib.import_module(f"{__name__}.{module}"), name)


__all__ = [
    'ErrorKind', 'QueryError', 'QueryResolutionError', 'Result',
    'Attribute', 'DataType', 'DisplayType', 'Entity', 'Junction', 'LoadedAttribute', 'LoadedEntity',
    *_LAZY,
]
