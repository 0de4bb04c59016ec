"""Base class for search record types."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import Field

from forum_api.models.user import User
from forum_api.schemas.search import SearchResultItem
from forum_api.search.query import SearchQuery

# Field name -> (annotation, FieldInfo), as accepted by pydantic.create_model
QueryFields = dict[str, tuple[Any, Any]]


class AbstractSearchType(ABC):
    """Plugs one kind of record into the search service."""

    @abstractmethod
    def get_key(self) -> str:
        """Unique key of the type."""

    @abstractmethod
    def get_search_group(self) -> str:
        """Group the type's results are reported under (``recordType``)."""

    @abstractmethod
    def get_type(self) -> str:
        """Value accepted in the ``types`` parameter and reported as ``type``."""

    @abstractmethod
    async def get_result_items(self, record_ids: list[int], user: User) -> list[SearchResultItem]:
        """Load result items for matched record IDs."""

    @abstractmethod
    async def apply_to_query(self, query: SearchQuery) -> None:
        """Translate search parameters into the query's dialect."""

    @abstractmethod
    def get_query_schema(self) -> QueryFields:
        """Query parameters this type understands."""

    async def validate_query(self, query: SearchQuery) -> None:
        """Reject queries the user may not run. Raises HTTPException."""

    def get_sorts(self) -> list[str]:
        return []

    def applies_to(self, query: SearchQuery) -> bool:
        """Whether the ``types`` parameter selects this type (empty selects all)."""
        types = query.get_query_parameter("types", [])
        return not types or self.get_type() in types

    def schema_with_types(self, fields: QueryFields) -> QueryFields:
        return {
            "types": (
                list[str] | None,
                Field(default=None, json_schema_extra={"x-search-filter": True}),
            ),
            **fields,
        }
