"""Query executor collaborator.

The resolution core only builds descriptors. Running them belongs to the
caller; ``SessionQueryExecutor`` is the reference implementation on top of an
SQLAlchemy ``AsyncSession``.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from .sql.builders import QueryDescriptor

logger = logging.getLogger(__name__)

__all__ = ['QueryExecutor', 'SessionQueryExecutor']


class QueryExecutor(Protocol):
    async def execute(self, descriptor: QueryDescriptor) -> List[Mapping[str, Any]]:
        """Run the descriptor's statement (limit + 1 rows) and return plain mappings."""
        ...


class SessionQueryExecutor:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def execute(self, descriptor: QueryDescriptor) -> List[Dict[str, Any]]:
        result = await self.session.execute(descriptor.statement)
        rows = [dict(r) for r in result.mappings().all()]
        logger.debug("executed %s query: %d rows", descriptor.entity.name, len(rows))
        return rows
