"""Search-related Pydantic schemas."""

from forum_api.schemas.base import ApiModel


class Breadcrumb(ApiModel):
    name: str
    url: str


class SearchResultItem(ApiModel):
    """A single search hit, normalized across record types."""

    record_id: int
    record_type: str
    type: str
    name: str
    body: str | None = None
    url: str
    category_id: int | None = None
    insert_user_id: int | None = None
    date_inserted: str | None = None
    breadcrumbs: list[Breadcrumb] = []


class SearchResponse(ApiModel):
    """Search results response."""

    items: list[SearchResultItem]
    total_count: int
