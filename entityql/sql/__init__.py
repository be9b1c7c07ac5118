from __future__ import annotations

from .builders import QueryBuilder, QueryDescriptor, entity_table

__all__ = ['QueryBuilder', 'QueryDescriptor', 'entity_table']
