"""
Basic example of using EntityQL with SQLAlchemy.

This example demonstrates:
- Declaring entities with Lookup and Junction attributes
- Listing rows with filters that traverse relationships
- Walking forward and backward with keyset cursors
- Parsing the same request from a querystring
"""

import asyncio
import logging
from datetime import datetime, timedelta

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from entityql import (
    Attribute,
    Cursor,
    DataType,
    Entity,
    EntityQueryService,
    EntitySchemaService,
    InMemorySchemaStore,
    KeyValueCache,
    SessionQueryExecutor,
    Settings,
)


# SQLAlchemy Models (the tables the entities describe)
class Base(DeclarativeBase):
    pass


class Author(Base):
    __tablename__ = 'authors'

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)


class Article(Base):
    __tablename__ = 'articles'

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    published_at = Column(DateTime, nullable=False)
    author = Column(Integer, ForeignKey('authors.id'), nullable=False)


class Label(Base):
    __tablename__ = 'labels'

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False)


class ArticleLabel(Base):
    # join table name follows <source>_<target>_<field>
    __tablename__ = 'article_label_labels'

    article_id = Column(Integer, ForeignKey('articles.id'), primary_key=True)
    label_id = Column(Integer, ForeignKey('labels.id'), primary_key=True)


# Entity schema
ENTITIES = [
    Entity(
        name='Author',
        table_name='authors',
        title_attribute='name',
        attributes=(Attribute('id', data_type=DataType.INT), Attribute('name')),
    ),
    Entity(
        name='Label',
        table_name='labels',
        title_attribute='name',
        attributes=(Attribute('id', data_type=DataType.INT), Attribute('name')),
    ),
    Entity(
        name='Article',
        table_name='articles',
        title_attribute='title',
        default_page_size=3,
        attributes=(
            Attribute('id', data_type=DataType.INT),
            Attribute('title'),
            Attribute('published_at', data_type=DataType.DATETIME),
            Attribute('author', data_type=DataType.LOOKUP, options='Author'),
            Attribute('labels', data_type=DataType.JUNCTION, options='Label'),
        ),
    ),
]


async def setup_database(engine):
    """Create tables and sample rows."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        session.add_all([Author(id=1, name='Alice'), Author(id=2, name='Bob')])
        session.add_all([Label(id=1, name='news'), Label(id=2, name='howto')])
        start = datetime(2024, 5, 1, 9, 0, 0)
        session.add_all([
            Article(id=i, title=f'Article {i}', published_at=start + timedelta(days=i), author=1 + i % 2)
            for i in range(1, 9)
        ])
        await session.flush()
        session.add_all([ArticleLabel(article_id=i, label_id=1 + i % 2) for i in range(1, 9)])
        await session.commit()
    return session_factory


async def main():
    """Main demo function."""
    logging.basicConfig(level=logging.INFO)

    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    session_factory = await setup_database(engine)

    schema = EntitySchemaService(InMemorySchemaStore(ENTITIES), KeyValueCache())
    settings = Settings.from_env()

    async with session_factory() as session:
        service = EntityQueryService(schema, SessionQueryExecutor(session), settings)

        args = {
            'author.name': {'equals': ['Alice', 'Bob'], 'operator': ['or']},
            'sort': {'published_at': ['desc']},
        }
        first = (await service.list('Article', args)).unwrap()
        print("Page 1:", [a['title'] for a in first.items], first.has_next_page)

        second = (await service.list('Article', args, cursor=Cursor(last=first.cursor.last))).unwrap()
        print("Page 2:", [a['title'] for a in second.items], second.has_previous_page)

        back = (await service.list('Article', args, cursor=Cursor(first=second.cursor.first))).unwrap()
        print("Back to page 1:", [a['title'] for a in back.items])

        howto = (await service.list_from_query('Article', 'labels.name[eq]=howto&sort[id]=asc')).unwrap()
        print("Labelled howto:", [a['id'] for a in howto.items])

        failed = await service.list('Article', {'editor.name': {'eq': ['x']}})
        print("Unknown path:", failed.error)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
