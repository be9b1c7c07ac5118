import re

import pytest
from sqlalchemy.dialects import sqlite

from entityql.core.cursor import Cursor, ValidCursor
from entityql.core.filters import Constraint, Filter, resolve_filters
from entityql.core.pagination import Pagination
from entityql.core.sorts import Sort, resolve_sorts, with_primary_key
from entityql.errors import ErrorKind
from entityql.query_service import EntityQueryService
from entityql.sql.builders import QueryBuilder


def sql_of(stmt) -> str:
    text = str(stmt.compile(dialect=sqlite.dialect(), compile_kwargs={'literal_binds': True}))
    return re.sub(r'\s+', ' ', text).strip().lower()


async def _build(schema_service, post, filters=(), sorts=(), cursor=None, pagination=None, page_size=5):
    fs = (await resolve_filters(schema_service, post, list(filters))).unwrap()
    ss = (await resolve_sorts(schema_service, post, list(sorts))).unwrap()
    return QueryBuilder().build(
        post,
        filters=fs,
        sorts=with_primary_key(post, ss),
        cursor=cursor,
        pagination=pagination,
        page_size=page_size,
    )


@pytest.mark.asyncio
async def test_lookup_filter_joins_target(schema_service, post):
    res = await _build(schema_service, post, filters=[Filter('author.name', constraints=(Constraint('eq', ('admin',)),))])
    sql = sql_of(res.unwrap().statement)
    assert 'left outer join users as author on author.id = posts.author' in sql
    assert "where author.name = 'admin'" in sql
    assert sql.endswith('order by posts.id asc limit 6 offset 0') or sql.endswith('order by posts.id asc limit 6')
    assert 'distinct' not in sql


@pytest.mark.asyncio
async def test_descriptor_shape(schema_service, post):
    descriptor = (await _build(schema_service, post, page_size=7)).unwrap()
    assert descriptor.limit == 7
    assert descriptor.fetch_limit == 8
    assert [s.field_path for s in descriptor.sorts] == ['id']
    assert descriptor.cursor.is_empty
    # junction attributes are not projected
    names = [c.name for c in descriptor.statement.selected_columns]
    assert names == ['id', 'title', 'body', 'views', 'published_at', 'author']


@pytest.mark.asyncio
async def test_junction_filter_uses_distinct(schema_service, post):
    res = await _build(schema_service, post, filters=[Filter('tags.name', constraints=(Constraint('eq', ('python',)),))])
    sql = sql_of(res.unwrap().statement)
    assert sql.startswith('select distinct')
    assert 'post_tag_tags as tags__junction on tags__junction.post_id = posts.id' in sql
    assert 'tags as tags on tags.id = tags__junction.tag_id' in sql


@pytest.mark.asyncio
async def test_related_sort_is_projected_under_its_path(schema_service, post):
    res = await _build(schema_service, post, sorts=[Sort('author.name', 'desc')])
    descriptor = res.unwrap()
    assert 'author.name' in [c.name for c in descriptor.statement.selected_columns]
    sql = sql_of(descriptor.statement)
    assert 'order by author.name desc nulls last, posts.id asc' in sql


@pytest.mark.asyncio
async def test_or_filter(schema_service, post):
    flt = Filter.parse('title', {'eq': ['Post 01', 'Post 02'], 'operator': ['or']})
    sql = sql_of((await _build(schema_service, post, filters=[flt])).unwrap().statement)
    assert "posts.title = 'post 01' or posts.title = 'post 02'" in sql


@pytest.mark.asyncio
async def test_backward_cursor_flips_order(schema_service, post):
    cursor = ValidCursor(Cursor(first='x'), {'views': 10, 'id': 3})
    res = await _build(schema_service, post, sorts=[Sort('views', 'desc')], cursor=cursor)
    sql = sql_of(res.unwrap().statement)
    assert 'order by posts.views asc nulls first, posts.id desc' in sql
    assert 'posts.views > 10 or posts.views = 10 and posts.id < 3' in sql


@pytest.mark.asyncio
async def test_forward_cursor_predicate(schema_service, post):
    cursor = ValidCursor(Cursor(last='x'), {'views': 10, 'id': 3})
    res = await _build(schema_service, post, sorts=[Sort('views', 'desc')], cursor=cursor)
    sql = sql_of(res.unwrap().statement)
    # NULL views rank below 10, so they are still ahead when stepping down
    assert 'posts.views < 10 or posts.views is null' in sql
    assert 'posts.views = 10 and posts.id > 3' in sql
    assert 'order by posts.views desc nulls last, posts.id asc' in sql


@pytest.mark.asyncio
async def test_nullable_sort_pins_null_ordering(schema_service, post):
    res = await _build(schema_service, post, sorts=[Sort('body')])
    assert 'order by posts.body asc nulls first, posts.id asc' in sql_of(res.unwrap().statement)
    res = await _build(schema_service, post, sorts=[Sort('body', 'desc')])
    assert 'order by posts.body desc nulls last, posts.id asc' in sql_of(res.unwrap().statement)


@pytest.mark.asyncio
async def test_null_edge_steps_into_values(schema_service, post):
    cursor = ValidCursor(Cursor(last='x'), {'body': None, 'id': 3})
    res = await _build(schema_service, post, sorts=[Sort('body')], cursor=cursor)
    sql = sql_of(res.unwrap().statement)
    assert 'posts.body is not null or posts.body is null and posts.id > 3' in sql


@pytest.mark.asyncio
async def test_null_edge_at_the_tail(schema_service, post):
    # descending: NULLs come last, only the rest of the NULL group remains
    cursor = ValidCursor(Cursor(last='x'), {'body': None, 'id': 3})
    res = await _build(schema_service, post, sorts=[Sort('body', 'desc')], cursor=cursor)
    sql = sql_of(res.unwrap().statement)
    assert 'where posts.body is null and posts.id > 3' in sql


@pytest.mark.asyncio
async def test_cursor_missing_sort_value(schema_service, post):
    cursor = ValidCursor(Cursor(last='x'), {'id': 3})
    res = await _build(schema_service, post, sorts=[Sort('views')], cursor=cursor)
    assert res.error.kind is ErrorKind.DECODE_ERROR


@pytest.mark.asyncio
async def test_offset_only_without_cursor(schema_service, post):
    sql = sql_of((await _build(schema_service, post, pagination=Pagination(offset=10))).unwrap().statement)
    assert 'limit 6 offset 10' in sql
    cursor = ValidCursor(Cursor(last='x'), {'id': 3})
    sql = sql_of((await _build(schema_service, post, cursor=cursor, pagination=Pagination(offset=10))).unwrap().statement)
    assert 'offset 10' not in sql
    res = await _build(schema_service, post, pagination=Pagination(offset=-1))
    assert res.error.kind is ErrorKind.INVALID_VALUE


@pytest.mark.asyncio
async def test_page_without_more_rows_has_empty_cursor(schema_service, post):
    descriptor = (await _build(schema_service, post)).unwrap()
    rows = [{'id': i, 'title': f'Post {i:02d}'} for i in range(1, 6)]
    page = EntityQueryService.page(descriptor, rows).unwrap()
    assert page.cursor == Cursor('', '')
    assert not page.has_previous_page and not page.has_next_page
    assert [r['id'] for r in page.items] == [1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_page_trims_look_ahead_row(schema_service, post):
    descriptor = (await _build(schema_service, post)).unwrap()
    rows = [{'id': i} for i in range(1, 7)]
    page = EntityQueryService.page(descriptor, rows).unwrap()
    assert [r['id'] for r in page.items] == [1, 2, 3, 4, 5]
    assert page.has_next_page and not page.has_previous_page
    assert page.cursor.first == ''


@pytest.mark.asyncio
async def test_empty_page(schema_service, post):
    descriptor = (await _build(schema_service, post)).unwrap()
    page = EntityQueryService.page(descriptor, []).unwrap()
    assert page.items == [] and page.cursor.is_empty
