"""
Tests for the SQL emitted by DiscussionSearchType.generate_sql().

Statements are compiled with the SQLite dialect and inlined values.
"""

import pytest
from sqlalchemy.dialects import sqlite

from forum_api.models.user import User
from forum_api.search.discussions import DiscussionSearchType
from forum_api.search.query import SqlSearchQuery


class FakeCategories:
    def __init__(self, category_ids: list[int]):
        self.category_ids = category_ids

    async def search_category_ids(self, user, **kwargs) -> list[int]:
        return list(self.category_ids)


def compile_sql(statement) -> str:
    return str(statement.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))


@pytest.fixture
def user() -> User:
    return User(user_id=1, username="searcher")


async def generate(params: dict, user: User, category_ids=()) -> str:
    search_type = DiscussionSearchType(
        discussions=None,
        categories=FakeCategories(list(category_ids)),
        tags=None,
        breadcrumbs=None,
    )
    return compile_sql(await search_type.generate_sql(SqlSearchQuery(params, user)))


async def test_result_columns(user):
    sql = await generate({}, user)
    for column in ("PrimaryID", "Title", "Summary", "CategoryID", "Url", "DateInserted", "RecordType"):
        assert f'"{column}"' in sql or f" {column}" in sql
    assert "'Discussion'" in sql
    assert "'/discussion/'" in sql


async def test_newest_first(user):
    sql = await generate({}, user)
    assert "ORDER BY discussions.date_inserted DESC, discussions.discussion_id DESC" in sql


async def test_category_restriction(user):
    sql = await generate({}, user, category_ids=[2, 5])
    assert "discussions.category_id IN (2, 5)" in sql


async def test_no_categories_adds_no_restriction(user):
    sql = await generate({}, user)
    assert "category_id IN" not in sql


async def test_terms_match_title_or_body(user):
    sql = await generate({"query": "python"}, user)
    assert "lower(discussions.name) LIKE" in sql
    assert "lower(discussions.body) LIKE" in sql
    assert " OR " in sql


async def test_users_and_discussion_id(user):
    sql = await generate({"users": [3, 4], "discussionID": 9}, user)
    assert "discussions.insert_user_id IN (3, 4)" in sql
    assert "discussions.discussion_id = 9" in sql


async def test_limit_covers_offset(user):
    sql = await generate({"limit": 10, "offset": 5}, user)
    assert "LIMIT 15" in sql
