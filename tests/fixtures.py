"""Database fixtures for EntityQL tests (shared)."""

import pytest
from datetime import datetime, timedelta
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Country, User, Post, Tag, PostTag

BASE_TIME = datetime(2024, 1, 1, 8, 0, 0)


async def create_sample_users(session: AsyncSession):
    """Create and commit countries and the users living in them."""
    countries = [Country(id=1, name="Canada"), Country(id=2, name="Japan")]
    session.add_all(countries)
    users = [
        User(id=1, name="admin", email="admin@example.com", country=1),
        User(id=2, name="bob", email="bob@example.com", country=2),
        User(id=3, name="carol", email="carol@example.com", country=1),
    ]
    session.add_all(users)
    await session.flush()
    await session.commit()
    return users


@pytest.fixture(scope="function")
async def sample_users(db_session: AsyncSession):
    return await create_sample_users(db_session)


async def create_sample_posts(session: AsyncSession):
    """Twelve posts, one hour apart; authors rotate admin, bob, carol.

    Views repeat every three posts so sorting by views needs the id tie-breaker.
    """
    posts = [
        Post(
            id=i,
            title=f"Post {i:02d}",
            body=f"Body of post {i}",
            views=(i % 3) * 10,
            published_at=BASE_TIME + timedelta(hours=i),
            author=((i - 1) % 3) + 1,
        )
        for i in range(1, 13)
    ]
    session.add_all(posts)
    tags = [Tag(id=1, name="python"), Tag(id=2, name="sql")]
    session.add_all(tags)
    await session.flush()
    session.add_all([
        PostTag(post_id=1, tag_id=1),
        PostTag(post_id=1, tag_id=2),
        PostTag(post_id=2, tag_id=1),
        PostTag(post_id=3, tag_id=2),
    ])
    await session.flush()
    await session.commit()
    return posts


@pytest.fixture(scope="function")
async def populated_db(db_session: AsyncSession, sample_users):
    posts = await create_sample_posts(db_session)
    return {'users': sample_users, 'posts': posts}
