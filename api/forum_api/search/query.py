"""Search queries in the two backend dialects.

``FilterSearchQuery`` collects attribute filters for a search server;
``SqlSearchQuery`` collects one SQL ``Select`` per record type.
"""

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select

from forum_api.models.user import User

FILTER_OP_OR = "or"
FILTER_OP_AND = "and"


class SearchQuery:
    """Validated search parameters, keyed by their wire names."""

    def __init__(self, params: dict[str, Any], user: User):
        self.params = params
        self.user = user

    def get_query_parameter(self, name: str, default: Any = None) -> Any:
        value = self.params.get(name)
        return default if value is None else value


@dataclass(frozen=True)
class SearchFilter:
    """Restrict an index attribute to (or, with ``exclude``, away from) a set of values."""

    attribute: str
    values: tuple[int, ...]
    exclude: bool = False
    filter_op: str = FILTER_OP_OR


class FilterSearchQuery(SearchQuery):
    """Search-server query: terms plus attribute filters over named indexes."""

    def __init__(self, params: dict[str, Any], user: User):
        super().__init__(params, user)
        self.filters: dict[str, SearchFilter] = {}
        self.indexes: list[str] = []

    def set_filter(
        self,
        attribute: str,
        values: list[int],
        exclude: bool = False,
        filter_op: str = FILTER_OP_OR,
    ) -> None:
        """Set the filter for an attribute, replacing any earlier one."""
        if filter_op not in (FILTER_OP_OR, FILTER_OP_AND):
            raise ValueError(f"Unknown filter operator: {filter_op}")
        self.filters[attribute] = SearchFilter(attribute, tuple(values), exclude, filter_op)


class SqlSearchQuery(SearchQuery):
    """Database query: one select per record type, unioned by the driver."""

    def __init__(self, params: dict[str, Any], user: User):
        super().__init__(params, user)
        self.selects: list[Select] = []

    def add_sql(self, select: Select) -> None:
        self.selects.append(select)
