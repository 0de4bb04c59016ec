"""Category-related Pydantic schemas."""

import re

from pydantic import field_validator

from forum_api.schemas.base import ApiModel


class CreateCategoryRequest(ApiModel):
    """Request to create a category."""

    name: str
    url_code: str
    parent_category_id: int | None = None
    archived: bool = False
    view_role: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v

    @field_validator("url_code")
    @classmethod
    def validate_url_code(cls, v: str) -> str:
        """Validate url code format."""
        if not re.match(r"^[a-z0-9-]{1,255}$", v):
            raise ValueError("URL code must be lowercase letters, numbers, and hyphens only")
        return v


class CategoryResponse(ApiModel):
    """Category response."""

    category_id: int
    parent_category_id: int | None
    name: str
    url_code: str
    url: str
    archived: bool
    followed: bool
