"""Discussion-related Pydantic schemas."""

from pydantic import Field, field_validator

from forum_api.schemas.base import ApiModel


def _validate_tag_names(v: list[str] | None) -> list[str] | None:
    if v is None:
        return v
    names = [name.strip() for name in v]
    if any(not name for name in names):
        raise ValueError("Tag names cannot be empty")
    if any(len(name) > 100 for name in names):
        raise ValueError("Tag names must be 100 characters or less")
    return names


class CreateDiscussionRequest(ApiModel):
    """Request to create a discussion."""

    name: str
    body: str
    category_id: int
    format: str = "markdown"
    tags: list[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate title length."""
        if not v.strip():
            raise ValueError("Name cannot be empty")
        if len(v) > 255:
            raise ValueError("Name must be 255 characters or less")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return _validate_tag_names(v)


class UpdateDiscussionRequest(ApiModel):
    """Request to update a discussion."""

    name: str | None = None
    body: str | None = None
    category_id: int | None = None
    tags: list[str] | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        """Validate title length."""
        if v is not None:
            if not v.strip():
                raise ValueError("Name cannot be empty")
            if len(v) > 255:
                raise ValueError("Name must be 255 characters or less")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str] | None:
        return _validate_tag_names(v)


class TagFragment(ApiModel):
    tag_id: int
    name: str


class DiscussionResponse(ApiModel):
    """Full discussion response."""

    discussion_id: int
    category_id: int | None
    name: str
    body: str
    format: str
    type: str
    score: float | None
    url: str
    insert_user_id: int | None
    author: str | None
    date_inserted: str
    date_updated: str | None
    tags: list[TagFragment]
