"""Test configuration and fixtures for EntityQL."""

from dotenv import load_dotenv
import pytest
import asyncio
import os
import sys
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from entityql.cache import KeyValueCache
from entityql.config import Settings
from entityql.executor import SessionQueryExecutor
from entityql.query_service import EntityQueryService
from entityql.schema_service import EntitySchemaService
from entityql.store import InMemorySchemaStore
from tests.models import Base
from tests.schema import ALL_ENTITIES

# Try to load environment variables from .env file
load_dotenv()


@pytest.fixture(scope="session", autouse=True)
def event_loop_policy():
    """Set event loop policy for Windows compatibility."""
    if sys.platform.startswith("win"):
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    yield


@pytest.fixture(scope="function")
async def engine():
    """Create a test database engine for each test function."""
    test_db_url = os.getenv('ENTITYQL_TEST_DATABASE_URL')
    is_external_db = bool(test_db_url)
    if is_external_db:
        engine = create_async_engine(test_db_url, echo=False, pool_size=1, max_overflow=0)
        # Clean slate: drop then create all tables
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    else:
        # In-memory SQLite for tests
        engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    yield engine

    if is_external_db:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a new database session for each test function."""
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session


@pytest.fixture
def schema_store():
    return InMemorySchemaStore(ALL_ENTITIES)


@pytest.fixture
def schema_cache():
    return KeyValueCache()


@pytest.fixture
def schema_service(schema_store, schema_cache):
    return EntitySchemaService(schema_store, schema_cache)


@pytest.fixture
def settings():
    return Settings(default_page_size=5, max_page_size=50)


@pytest.fixture
def query_service(schema_service, db_session, settings):
    return EntityQueryService(schema_service, SessionQueryExecutor(db_session), settings)


@pytest.fixture
async def post(schema_service):
    """Post with its compound attributes expanded."""
    return (await schema_service.get_loaded_entity('Post')).unwrap()


# Import fixtures from fixtures module
from tests.fixtures import (  # noqa: E402,F401
    sample_users,
    populated_db,
)
