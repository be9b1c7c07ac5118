import pytest

from entityql.schema import (
    Attribute,
    DataType,
    Entity,
    Junction,
    LoadedAttribute,
    find_attribute,
    full_path_name,
    junction_table_name,
)
from tests.schema import PERSON, POST, TAG


def test_junction_table_name_is_deterministic():
    assert junction_table_name('Post', 'Tag', 'tags') == 'post_tag_tags'
    assert junction_table_name('Post', 'Tag', 'tags') == junction_table_name('Post', 'Tag', 'tags')
    assert junction_table_name('Tag', 'Post', 'posts') == 'tag_post_posts'
    assert junction_table_name('BlogPost', 'Tag', 'tags') == 'blog_post_tag_tags'


def test_junction_columns_for_self_reference():
    person = PERSON.to_loaded()
    j = Junction.between(person, person, person.find('friends'))
    assert j.table_name == 'person_person_friends'
    assert (j.source_column, j.target_column) == ('source_id', 'target_id')

    post, tag = POST.to_loaded(), TAG.to_loaded()
    j = Junction.between(post, tag, post.find('tags'))
    assert (j.source_column, j.target_column) == ('post_id', 'tag_id')


def test_loaded_attribute_cannot_carry_both_relationships():
    post, tag = POST.to_loaded(), TAG.to_loaded()
    junction = Junction.between(post, tag, post.find('tags'))
    with pytest.raises(ValueError):
        LoadedAttribute(field='x', data_type=DataType.JUNCTION, lookup=tag, junction=junction)
    with pytest.raises(ValueError):
        LoadedAttribute(field='x', data_type=DataType.STRING, lookup=tag)


def test_loaded_attribute_state():
    post = POST.to_loaded()
    author = post.find('author')
    assert author.table_name == 'posts'
    assert author.is_compound and not author.is_loaded
    assert post.find('title').is_loaded


def test_entity_validation():
    assert POST.validate() is None
    broken = Entity(name='Broken', title_attribute='missing', attributes=(Attribute('id', data_type=DataType.INT),))
    assert '`missing` was not in attributes list' in broken.validate()
    dup = Entity(name='Dup', attributes=(Attribute('id'), Attribute('id')))
    assert 'declared twice' in dup.validate()


def test_entity_defaults():
    e = Entity(name='BlogPost', attributes=(Attribute('title'),))
    assert e.table_name == 'blog_post'
    with_pk = e.with_default_attributes()
    assert with_pk.attributes[0].field == 'id'
    assert with_pk.attributes[0].data_type is DataType.INT
    assert with_pk.with_default_attributes() is with_pk


def test_attribute_from_column_titles_header():
    a = Attribute.from_column('published_at', DataType.DATETIME)
    assert a.header == 'Published At'
    assert a.data_type is DataType.DATETIME


def test_helpers():
    assert find_attribute(POST.attributes, 'title').field == 'title'
    assert find_attribute(POST.attributes, 'nope') is None
    assert full_path_name('', 'name') == 'name'
    assert full_path_name('author', 'name') == 'author.name'
    assert POST.find('tags').target_name() == 'Tag'
    assert POST.find('title').target_name() is None
    assert [a.field for a in POST.to_loaded().local_attributes()] == [
        'id', 'title', 'body', 'views', 'published_at', 'author',
    ]
