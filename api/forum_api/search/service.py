"""Search service: parameter validation and backend drivers."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, get_args, get_origin

from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model
from sqlalchemy import and_, exists, not_, or_, select, union_all
from sqlalchemy.ext.asyncio import AsyncSession

from forum_api.models.discussion import Discussion
from forum_api.models.tag import DiscussionTag
from forum_api.models.user import User
from forum_api.schemas.base import to_wire_name
from forum_api.schemas.search import SearchResultItem
from forum_api.search.query import (
    FILTER_OP_AND,
    FilterSearchQuery,
    SearchFilter,
    SearchQuery,
    SqlSearchQuery,
)
from forum_api.search.types import AbstractSearchType, QueryFields

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100

# Parameters shared by every search type
COMMON_FIELDS: QueryFields = {
    "query": (str | None, Field(default=None)),
    "title": (str | None, Field(default=None)),
    "users": (list[int] | None, Field(default=None)),
    "limit": (int, Field(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)),
    "offset": (int, Field(default=0, ge=0)),
}

# A search hit: (search group, record ID)
Hit = tuple[str, int]


def _is_list_annotation(annotation: Any) -> bool:
    if get_origin(annotation) is list:
        return True
    return any(get_origin(arg) is list for arg in get_args(annotation))


class SearchServerClient(ABC):
    """Executes a filter-dialect query against a search index."""

    @abstractmethod
    async def search(self, query: FilterSearchQuery, offset: int, limit: int) -> list[Hit]:
        """Return hits in rank order."""


class DatabaseFilterClient(SearchServerClient):
    """Evaluates search-server filters directly against the forum tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def search(self, query: FilterSearchQuery, offset: int, limit: int) -> list[Hit]:
        if "discussion" not in query.indexes:
            return []

        sql = select(Discussion.discussion_id)
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

        for search_filter in query.filters.values():
            sql = sql.where(self._discussion_condition(search_filter))

        sql = sql.order_by(Discussion.date_inserted.desc(), Discussion.discussion_id.desc())
        result = await self.db.execute(sql.offset(offset).limit(limit))
        return [("discussion", discussion_id) for discussion_id in result.scalars().all()]

    @staticmethod
    def _discussion_condition(search_filter: SearchFilter):
        values = list(search_filter.values)
        if search_filter.attribute == "DiscussionID":
            condition = Discussion.discussion_id.in_(values)
        elif search_filter.attribute == "CategoryID":
            condition = Discussion.category_id.in_(values)
            if 0 in values:
                condition = or_(condition, Discussion.category_id.is_(None))
        elif search_filter.attribute == "Tags":
            def has_tags(tag_ids: list[int]):
                return exists().where(
                    DiscussionTag.discussion_id == Discussion.discussion_id,
                    DiscussionTag.tag_id.in_(tag_ids),
                )

            if search_filter.filter_op == FILTER_OP_AND:
                condition = and_(*(has_tags([tag_id]) for tag_id in values))
            else:
                condition = has_tags(values)
        else:
            raise ValueError(f"Unknown discussion filter attribute: {search_filter.attribute}")
        return not_(condition) if search_filter.exclude else condition


class SearchService:
    """Runs searches across the registered record types."""

    def __init__(
        self,
        db: AsyncSession,
        search_types: list[AbstractSearchType],
        driver: str = "sql",
        client: SearchServerClient | None = None,
    ):
        if driver not in ("sql", "filter"):
            raise ValueError(f"Unknown search driver: {driver}")
        self.db = db
        self.search_types = search_types
        self.driver = driver
        self.client = client or DatabaseFilterClient(db)

    def query_model(self) -> type[BaseModel]:
        """Pydantic model combining every type's query parameters."""
        fields: QueryFields = dict(COMMON_FIELDS)
        for search_type in self.search_types:
            fields.update(search_type.get_query_schema())
        return create_model(
            "SearchQueryParams",
            __config__=ConfigDict(alias_generator=to_wire_name, populate_by_name=True),
            **fields,
        )

    def parse_params(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        """
        Validate raw query-string parameters.

        List parameters accept repeated keys and comma-separated values.
        Returns validated values keyed by wire name.

        Raises:
            RequestValidationError: if a parameter is invalid
        """
        model = self.query_model()
        getlist = getattr(raw, "getlist", None)
        values: dict[str, Any] = {}
        for name, field in model.model_fields.items():
            alias = field.alias or name
            if alias not in raw:
                continue
            items = getlist(alias) if getlist else raw[alias]
            if not isinstance(items, list):
                items = [items]
            if _is_list_annotation(field.annotation):
                values[alias] = [
                    part.strip()
                    for item in items
                    for part in str(item).split(",")
                    if part.strip()
                ]
            else:
                values[alias] = items[-1]

        try:
            params = model.model_validate(values)
        except ValidationError as exc:
            errors = [{**error, "loc": ("query", *error["loc"])} for error in exc.errors()]
            raise RequestValidationError(errors) from exc
        return params.model_dump(by_alias=True)

    async def search(self, params: dict[str, Any], user: User) -> list[SearchResultItem]:
        """Run a search with validated parameters."""
        limit = params.get("limit", DEFAULT_LIMIT)
        offset = params.get("offset", 0)

        if self.driver == "filter":
            query: SearchQuery = FilterSearchQuery(params, user)
        else:
            query = SqlSearchQuery(params, user)

        for search_type in self.search_types:
            await search_type.validate_query(query)
        for search_type in self.search_types:
            await search_type.apply_to_query(query)

        if isinstance(query, FilterSearchQuery):
            query.indexes = [t.get_search_group() for t in self.search_types if t.applies_to(query)]
            hits = await self.client.search(query, offset, limit)
        else:
            hits = await self._run_sql(query, offset, limit)

        logger.debug("Search via %s driver matched %d records", self.driver, len(hits))
        return await self._load_results(hits, user)

    async def _run_sql(self, query: SqlSearchQuery, offset: int, limit: int) -> list[Hit]:
        if not query.selects:
            return []
        members = [select(sql.subquery()) for sql in query.selects]
        combined = (union_all(*members) if len(members) > 1 else members[0]).subquery("results")
        result = await self.db.execute(
            select(combined.c.RecordType, combined.c.PrimaryID)
            .order_by(combined.c.DateInserted.desc(), combined.c.PrimaryID.desc())
            .offset(offset)
            .limit(limit)
        )
        return [(record_type.lower(), primary_id) for record_type, primary_id in result.all()]

    async def _load_results(self, hits: list[Hit], user: User) -> list[SearchResultItem]:
        by_group: dict[str, list[int]] = {}
        for group, record_id in hits:
            by_group.setdefault(group, []).append(record_id)

        loaded: dict[Hit, SearchResultItem] = {}
        for search_type in self.search_types:
            record_ids = by_group.get(search_type.get_search_group())
            if not record_ids:
                continue
            for item in await search_type.get_result_items(record_ids, user):
                loaded[(item.record_type, item.record_id)] = item

        return [loaded[hit] for hit in hits if hit in loaded]
