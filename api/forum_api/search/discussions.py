"""Search record type for discussions."""

import logging
from typing import Literal

from fastapi import HTTPException
from pydantic import Field
from sqlalchemy import Select, String, cast, literal, or_, select

from forum_api.errors import permission_denied
from forum_api.models.discussion import Discussion
from forum_api.models.user import User
from forum_api.schemas.search import SearchResultItem
from forum_api.search.query import (
    FILTER_OP_OR,
    FilterSearchQuery,
    SearchQuery,
    SqlSearchQuery,
)
from forum_api.search.types import AbstractSearchType, QueryFields
from forum_api.services.breadcrumbs import BreadcrumbService
from forum_api.services.categories import CategoryService
from forum_api.services.discussions import VIEW_PERMISSION, DiscussionService, to_response
from forum_api.services.tags import TagService

logger = logging.getLogger(__name__)

RESULT_LIMIT = 100


class DiscussionSearchType(AbstractSearchType):
    """Search record type for a discussion."""

    def __init__(
        self,
        discussions: DiscussionService,
        categories: CategoryService,
        tags: TagService,
        breadcrumbs: BreadcrumbService,
    ):
        self.discussions = discussions
        self.categories = categories
        self.tags = tags
        self.breadcrumbs = breadcrumbs

    def get_key(self) -> str:
        return "discussion"

    def get_search_group(self) -> str:
        return "discussion"

    def get_type(self) -> str:
        return "discussion"

    async def get_result_items(self, record_ids: list[int], user: User) -> list[SearchResultItem]:
        try:
            discussions = await self.discussions.index(
                user, discussion_ids=record_ids, limit=RESULT_LIMIT
            )
        except HTTPException as exc:
            logger.warning("Could not load discussion search results: %s", exc.detail)
            return []

        items = []
        for discussion in discussions:
            record = to_response(discussion)
            items.append(
                SearchResultItem(
                    record_id=record.discussion_id,
                    record_type=self.get_search_group(),
                    type=self.get_type(),
                    name=record.name,
                    body=record.body,
                    url=record.url,
                    category_id=record.category_id,
                    insert_user_id=record.insert_user_id,
                    date_inserted=record.date_inserted,
                    breadcrumbs=await self.breadcrumbs.get_for_category(record.category_id),
                )
            )
        return items

    async def apply_to_query(self, query: SearchQuery) -> None:
        if not self.applies_to(query):
            return

        tag_names = query.get_query_parameter("tags", [])
        tag_ids = await self.tags.get_tag_ids_by_name(tag_names)
        tag_op = query.get_query_parameter("tagOperator", FILTER_OP_OR)

        if isinstance(query, FilterSearchQuery):
            discussion_id = query.get_query_parameter("discussionID")
            if discussion_id:
                query.set_filter("DiscussionID", [discussion_id])

            category_ids = await self.get_category_ids(query)
            if category_ids:
                query.set_filter("CategoryID", category_ids)
            else:
                # Only content outside of any category.
                query.set_filter("CategoryID", [0])

            if tag_ids:
                query.set_filter("Tags", tag_ids, filter_op=tag_op)
        elif isinstance(query, SqlSearchQuery):
            query.add_sql(await self.generate_sql(query))

    def get_query_schema(self) -> QueryFields:
        return self.schema_with_types(
            {
                "discussion_id": (
                    int | None,
                    Field(default=None, json_schema_extra={"x-search-scope": True}),
                ),
                "category_id": (
                    int | None,
                    Field(default=None, json_schema_extra={"x-search-scope": True}),
                ),
                "followed_categories": (
                    bool | None,
                    Field(default=None, json_schema_extra={"x-search-filter": True}),
                ),
                "include_child_categories": (
                    bool | None,
                    Field(default=None, json_schema_extra={"x-search-filter": True}),
                ),
                "include_archived_categories": (
                    bool | None,
                    Field(default=None, json_schema_extra={"x-search-filter": True}),
                ),
                "tags": (
                    list[str] | None,
                    Field(default=None, json_schema_extra={"x-search-filter": True}),
                ),
                "tag_operator": (
                    Literal["or", "and"],
                    Field(default=FILTER_OP_OR),
                ),
            }
        )

    async def validate_query(self, query: SearchQuery) -> None:
        category_id = query.get_query_parameter("categoryID")
        if category_id is not None and not await self.categories.check_permission(category_id, query.user):
            raise permission_denied(VIEW_PERMISSION)

    async def generate_sql(self, query: SearchQuery) -> Select:
        """Build the discussion half of a database search."""
        category_ids = await self.get_category_ids(query)

        sql = select(
            Discussion.discussion_id.label("PrimaryID"),
            Discussion.name.label("Title"),
            Discussion.body.label("Summary"),
            Discussion.format.label("Format"),
            Discussion.category_id.label("CategoryID"),
            Discussion.score.label("Score"),
            (literal("/discussion/", String) + cast(Discussion.discussion_id, String)).label("Url"),
            Discussion.date_inserted.label("DateInserted"),
            Discussion.type.label("Type"),
            Discussion.insert_user_id.label("UserID"),
            literal("Discussion", String).label("RecordType"),
        ).order_by(Discussion.date_inserted.desc(), Discussion.discussion_id.desc())

        terms = query.get_query_parameter("query")
        if terms:
            sql = sql.where(
                or_(
                    Discussion.name.icontains(terms, autoescape=True),
                    Discussion.body.icontains(terms, autoescape=True),
                )
            )

        title = query.get_query_parameter("title")
        if title:
            sql = sql.where(Discussion.name.icontains(title, autoescape=True))

        users = query.get_query_parameter("users")
        if users:
            sql = sql.where(Discussion.insert_user_id.in_(users))

        discussion_id = query.get_query_parameter("discussionID")
        if discussion_id:
            sql = sql.where(Discussion.discussion_id == discussion_id)

        if category_ids:
            sql = sql.where(Discussion.category_id.in_(category_ids))

        limit = query.get_query_parameter("limit", RESULT_LIMIT)
        offset = query.get_query_parameter("offset", 0)
        return sql.limit(limit + offset)

    async def get_category_ids(self, query: SearchQuery) -> list[int]:
        return await self.categories.search_category_ids(
            query.user,
            category_id=query.get_query_parameter("categoryID"),
            followed_categories=query.get_query_parameter("followedCategories"),
            include_child_categories=query.get_query_parameter("includeChildCategories"),
            include_archived_categories=query.get_query_parameter("includeArchivedCategories"),
        )

