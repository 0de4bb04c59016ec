"""Theme-related Pydantic schemas."""

from typing import Any, Literal

from pydantic import Field, field_validator

from forum_api.schemas.base import ApiModel

AssetType = Literal["html", "css", "js", "json", "image"]


class AssetInput(ApiModel):
    """JSON form of an asset body, used when the asset path has no extension."""

    type: AssetType
    data: str | dict[str, Any] | list[Any]


class CreateThemeRequest(ApiModel):
    """Request to create a database theme."""

    name: str
    parent_theme: str | None = None
    parent_version: str | None = None
    assets: dict[str, AssetInput] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name length."""
        if not v.strip():
            raise ValueError("Name cannot be empty")
        if len(v) > 255:
            raise ValueError("Name must be 255 characters or less")
        return v


class UpdateThemeRequest(ApiModel):
    """Request to update a database theme."""

    name: str | None = None
    assets: dict[str, AssetInput] | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        """Validate name length."""
        if v is not None:
            if not v.strip():
                raise ValueError("Name cannot be empty")
            if len(v) > 255:
                raise ValueError("Name must be 255 characters or less")
        return v


class SetCurrentThemeRequest(ApiModel):
    """Request to make a theme the site's current theme."""

    theme_id: int | str


class SetPreviewThemeRequest(ApiModel):
    """Request to preview a theme for the calling user only.

    An empty ``themeID`` clears the preview.
    """

    theme_id: int | str | None = None
    revision_id: int | None = None


class ThemePreviewInfo(ApiModel):
    """Preview card data for theme pickers."""

    info: dict[str, Any] = Field(default_factory=dict)
    image_url: str | None = None


class ThemeResponse(ApiModel):
    """Theme record with its assets."""

    theme_id: int | str
    type: Literal["themeDB", "themeFile"]
    name: str
    version: str | None = None
    current: bool = False
    active: bool | None = None
    parent_theme: str | None = None
    parent_version: str | None = None
    revision_id: int | None = None
    revision_name: str | None = None
    insert_user_id: int | None = None
    date_inserted: str | None = None
    date_updated: str | None = None
    assets: dict[str, dict[str, Any]]
    preview: ThemePreviewInfo
